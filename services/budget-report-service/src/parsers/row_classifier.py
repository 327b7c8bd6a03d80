from __future__ import annotations

from dataclasses import dataclass

from models.ledger import TOTAL_SENTINEL, LedgerRow


@dataclass(frozen=True, slots=True)
class RowClassification:
    is_category_header: bool = False
    is_item_candidate: bool = False
    is_total_row: bool = False
    is_blank: bool = False


def classify_row(row: LedgerRow, category_open: bool) -> RowClassification:
    """
    Decide what role a ledger row plays in the category block structure.

    Rules are applied in precedence order: a label starting with "Total" closes
    a block; any other non-empty label without "Total" in it opens one; rows
    with an item label or a non-zero amount are items while a block is open;
    everything else is a separator.
    """

    label = row.category_label
    if label.startswith(TOTAL_SENTINEL):
        return RowClassification(is_total_row=True)

    if label and TOTAL_SENTINEL not in label:
        return RowClassification(is_category_header=True)

    if category_open and (row.item_label or row.planned != 0 or row.actual != 0):
        return RowClassification(is_item_candidate=True)

    return RowClassification(is_blank=True)
