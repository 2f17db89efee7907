"""GET /api/v1/categories: the closed label category catalog."""
from __future__ import annotations

from flask import Blueprint, jsonify

from ...devices.categories import (
    ALL_CATEGORIES,
    alexa_display_category,
    display_name,
    google_device_type,
    synonyms_for,
)
from ..security import require_token

bp = Blueprint("categories", __name__, url_prefix="/categories")


@bp.get("")
@require_token
def list_categories():
    return jsonify({
        "ok": True,
        "categories": [
            {
                "key": category.value,
                "name": display_name(category),
                "synonyms": synonyms_for(category),
                "alexa_display_category": alexa_display_category(category),
                "google_device_type": google_device_type(category),
            }
            for category in ALL_CATEGORIES
        ],
    })
