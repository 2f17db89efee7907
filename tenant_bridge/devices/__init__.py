"""Device records, label categories and metadata aggregation."""
from .categories import LabelCategory, classify_labels, display_name
from .models import Device, domain_of
from .aggregator import DeviceAggregator

__all__ = [
    "LabelCategory",
    "classify_labels",
    "display_name",
    "Device",
    "domain_of",
    "DeviceAggregator",
]
