"""
Tenant Bridge Package

Device access and command bridge between a household's Home Assistant hub
and its tenants:
- Hub: authenticated REST client for one hub per household
- Devices: state + area/label enrichment, label categories
- Households: membership lookup and access filtering
- Bridge: direct control, Alexa Smart Home and Google Smart Home adapters
"""

__version__ = "1.2.0"
