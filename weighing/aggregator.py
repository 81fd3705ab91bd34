"""Aggregator.

Reduces a batch's item identifiers and their resolved weights to summary
statistics. Repeated identifiers count once per occurrence.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from core.errors import NoWeightsResolved
from models.weights import BatchResult

TWO_PLACES = Decimal("0.01")


def round_weight(value: Decimal) -> float:
    """Round to two decimals, halves away from zero."""
    return float(value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def aggregate(
    batch_id: str,
    item_ids: List[str],
    weights: Dict[str, float],
    warehouse_id: Optional[str] = None,
) -> BatchResult:
    """Summarize the weights of a batch.

    Args:
        batch_id: Batch the identifiers belong to
        item_ids: Identifiers in batch order, repeats included
        weights: Resolved weight per distinct identifier; unresolved ids are absent
        warehouse_id: Warehouse the batch was resolved in

    Raises:
        NoWeightsResolved: No identifier has a weight
    """
    # str() first so 0.1 stays 0.1 rather than its binary expansion
    found = [Decimal(str(weights[item_id])) for item_id in item_ids if item_id in weights]
    if not found:
        raise NoWeightsResolved(
            f"Could not resolve weights for any items in batch {batch_id}",
            {"batch_id": batch_id, "total_items": len(item_ids)},
        )

    total = sum(found, Decimal("0"))

    return BatchResult(
        batch_id=batch_id,
        warehouse_id=warehouse_id,
        total_items=len(item_ids),
        items_with_weight=len(found),
        average_weight=round_weight(total / len(found)),
        total_weight=round_weight(total),
        min_weight=round_weight(min(found)),
        max_weight=round_weight(max(found)),
        unique_item_count=len(set(item_ids)),
    )
