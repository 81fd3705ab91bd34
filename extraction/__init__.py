"""Markup parsing and ranked pattern extraction."""

from extraction.patterns import (
    extract_identifiers,
    extract_item_details,
    extract_weight,
    has_materialized_content,
    warehouse_from_location,
)

__all__ = [
    "extract_identifiers",
    "extract_item_details",
    "extract_weight",
    "has_materialized_content",
    "warehouse_from_location",
]
