from __future__ import annotations

"""
Single-pass reconstruction of category blocks from a ledger row stream.

The ledger has no schema markers beyond the "Total" sentinel, so blocks are
recovered with a two-state machine: either no category is open, or one is
open and collecting items. The state is an immutable value threaded through
`step`, which keeps the parser independent of any workbook and makes every
transition testable on its own.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from models.ledger import Category, Item, LedgerRow
from parsers.row_classifier import classify_row

logger = logging.getLogger(__name__)

DEFAULT_FIRST_DATA_ROW = 5


@dataclass(frozen=True, slots=True)
class OpenCategory:
    name: str
    items: Tuple[Item, ...] = ()
    running_planned: float = 0.0
    running_actual: float = 0.0

    def close(self) -> Category:
        return Category(
            name=self.name,
            items=self.items,
            total_planned=self.running_planned,
            total_actual=self.running_actual,
        )


# None means no category is open.
ParserState = Optional[OpenCategory]


def step(state: ParserState, row: LedgerRow) -> Tuple[ParserState, List[Category]]:
    """
    Apply one row to the parser state.

    Returns the next state plus the categories closed by this row (zero, or
    one; a header arriving while a block is still open flushes that block
    before opening its own).
    """

    classification = classify_row(row, category_open=state is not None)

    if classification.is_total_row:
        if state is None:
            logger.debug({"event": "orphan_total_row", "source_row_index": row.source_row_index})
            return None, []
        closed = OpenCategory(
            name=state.name,
            items=state.items,
            running_planned=row.planned,
            running_actual=row.actual,
        ).close()
        return None, [closed]

    if classification.is_category_header:
        emitted: List[Category] = []
        if state is not None:
            logger.debug(
                {
                    "event": "category_closed_without_total",
                    "category": state.name,
                    "source_row_index": row.source_row_index,
                }
            )
            emitted.append(state.close())
        return OpenCategory(name=row.category_label), emitted

    if classification.is_item_candidate:
        item = Item(description=row.item_label, planned=row.planned, actual=row.actual)
        return (
            OpenCategory(
                name=state.name,
                items=state.items + (item,),
                running_planned=state.running_planned,
                running_actual=state.running_actual,
            ),
            [],
        )

    return state, []


def parse_categories(rows: Iterable[LedgerRow]) -> List[Category]:
    """
    Fold the row stream into an ordered list of Category records.

    Every opened category is emitted exactly once: on its Total row, when the
    next header appears, or at the end of the stream. Duplicate names are kept
    as distinct entries in ledger order.
    """

    state: ParserState = None
    categories: List[Category] = []
    for row in rows:
        state, emitted = step(state, row)
        categories.extend(emitted)

    if state is not None:
        logger.debug({"event": "category_open_at_end_of_ledger", "category": state.name})
        categories.append(state.close())

    return categories


def ledger_rows_from_grid(
    grid: Sequence[Sequence[Any]],
    first_data_row: int = DEFAULT_FIRST_DATA_ROW,
) -> List[LedgerRow]:
    """Coerce raw grid rows (1-indexed from `first_data_row`) into LedgerRows."""

    start = max(first_data_row, 1) - 1
    return [
        LedgerRow.from_cells(cells, source_row_index=row_index)
        for row_index, cells in enumerate(grid[start:], start=start + 1)
    ]


def parse_grid(grid: Sequence[Sequence[Any]], first_data_row: int = DEFAULT_FIRST_DATA_ROW) -> List[Category]:
    """Parse a raw 2-D cell grid whose ledger data starts at `first_data_row`."""

    return parse_categories(ledger_rows_from_grid(grid, first_data_row))
