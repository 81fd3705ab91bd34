"""Ranked pattern extraction.

Turns identifier-source and weight-source pages into typed values. Each
extractor runs an ordered list of strategies, most specific first, and
returns the result of the first strategy that finds something. Looser
strategies only run when the tighter ones find nothing, so incidental
matches in free text never override structured markup.

Examples:
    >>> extract_weight("<table><tr><td>Weight</td><td>0.79 pounds</td></tr></table>")
    0.79
    >>> extract_identifiers("<p>Scanned X001ABCDEF2 twice</p>")
    ['X001ABCDEF2']
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import urlsplit

from core.observability.logging import get_logger
from extraction.markup import Cell, ParsedMarkup, parse_markup
from models.weights import ItemDetails

logger = get_logger(__name__)

T = TypeVar("T")

# Item identifiers: uppercase alphanumeric, at least 10 characters
ITEM_ID_PATTERN = re.compile(r"^[A-Z0-9]{10,}$")

# Free-text identifiers also need the conventional X/B prefix
FREE_TEXT_ITEM_ID = re.compile(r"\b[XB][A-Z0-9]{9,}\b")

# Weights outside this open range are parsing noise
WEIGHT_MIN_EXCLUSIVE = 0.0
WEIGHT_MAX_EXCLUSIVE = 1000.0

# A leading minus is captured so negative values fail the range check
_NUMBER = r"(-?\d+(?:\.\d+)?|-?\.\d+)"
_WEIGHT_WITH_UNIT = re.compile(_NUMBER + r"\s*(?:pounds?|lbs?)\b", re.IGNORECASE)
_BARE_NUMBER = re.compile(_NUMBER)
_WEIGHT_MARKUP = re.compile(
    r"Weight</t[dh]>\s*<td[^>]*>\s*" + _NUMBER + r"\s*(?:pounds?|lbs?)",
    re.IGNORECASE,
)
_WEIGHT_TEXT = re.compile(r"Weight[:\s]+" + _NUMBER + r"\s*(?:pounds?|lbs?)", re.IGNORECASE)

_IDENTIFIER_HEADER_TERMS = ("fn sku", "fnsku")

# Column holding the identifier when no header names it
DEFAULT_IDENTIFIER_COLUMN = 1

_WAREHOUSE_SEGMENT = re.compile(r"/([A-Z0-9]+)/")


# =============================================================================
# Strategy chain
# =============================================================================

@dataclass
class Page:
    """Raw markup plus its parsed form, parsed once per extraction."""
    raw: str
    parsed: ParsedMarkup = field(init=False)

    def __post_init__(self):
        self.parsed = parse_markup(self.raw)


@dataclass(frozen=True)
class Strategy(Generic[T]):
    """One named extraction strategy."""
    name: str
    run: Callable[[Page], Optional[T]]


def run_ranked(strategies: Sequence[Strategy], page: Page) -> Tuple[Optional[str], Optional[T]]:
    """Return (strategy name, result) of the first strategy with a match.

    Empty lists and None count as no match.
    """
    for strategy in strategies:
        result = strategy.run(page)
        if result:
            logger.debug(f"Strategy '{strategy.name}' matched")
            return strategy.name, result
    return None, None


# =============================================================================
# Validation helpers
# =============================================================================

def is_valid_item_id(text: str) -> bool:
    return bool(text) and bool(ITEM_ID_PATTERN.match(text))


def validate_weight(value: float) -> Optional[float]:
    """Return the value if it is a plausible weight in pounds, else None."""
    if WEIGHT_MIN_EXCLUSIVE < value < WEIGHT_MAX_EXCLUSIVE:
        return value
    return None


def parse_weight_text(text: str) -> Optional[float]:
    """Parse "0.79 pounds" style text, falling back to the first bare number.

    Returns None when there is no number or when the number is out of range.
    """
    match = _WEIGHT_WITH_UNIT.search(text) or _BARE_NUMBER.search(text)
    if not match:
        return None
    return validate_weight(float(match.group(1)))


# =============================================================================
# Identifier strategies
# =============================================================================

def _header_column(header: List[Cell]) -> Optional[int]:
    index = None
    for i, cell in enumerate(header):
        text = cell.text.lower()
        if any(term in text for term in _IDENTIFIER_HEADER_TERMS) or text == "fn_sku":
            index = i
    return index


def _column_values(rows: List[List[Cell]], column: int) -> List[str]:
    values = []
    for row in rows:
        cells = [c for c in row if not c.is_header]
        if len(cells) > column:
            value = cells[column].value.strip()
            if is_valid_item_id(value):
                values.append(value)
    return values


def identifiers_by_header_label(page: Page) -> List[str]:
    """Column whose header names the FN SKU, in every table that has one."""
    found: List[str] = []
    for table in page.parsed.tables:
        column = _header_column(table.header)
        if column is not None:
            found.extend(_column_values(table.rows[1:], column))
    return found


def identifiers_by_column_position(page: Page) -> List[str]:
    """Second column of every table's data rows."""
    found: List[str] = []
    for table in page.parsed.tables:
        found.extend(_column_values(table.data_rows, DEFAULT_IDENTIFIER_COLUMN))
    return found


def identifiers_by_text_search(page: Page) -> List[str]:
    """Prefixed identifiers anywhere in the visible text."""
    return [m for m in FREE_TEXT_ITEM_ID.findall(page.parsed.text) if is_valid_item_id(m)]


IDENTIFIER_STRATEGIES: List[Strategy[List[str]]] = [
    Strategy("header_label", identifiers_by_header_label),
    Strategy("column_position", identifiers_by_column_position),
    Strategy("text_search", identifiers_by_text_search),
]


# =============================================================================
# Weight strategies
# =============================================================================

def weight_by_labelled_row(page: Page) -> Optional[float]:
    """Cell following a cell labelled exactly "weight"."""
    for row in page.parsed.rows:
        for i in range(len(row) - 1):
            if row[i].text.lower() != "weight":
                continue
            value_text = row[i + 1].text
            if _BARE_NUMBER.search(value_text):
                # The first parseable labelled value decides this strategy
                return parse_weight_text(value_text)
    return None


def weight_by_markup_proximity(page: Page) -> Optional[float]:
    """Weight label cell immediately followed by a value cell in raw markup."""
    match = _WEIGHT_MARKUP.search(page.raw)
    if not match:
        return None
    return validate_weight(float(match.group(1)))


def weight_by_text_proximity(page: Page) -> Optional[float]:
    """ "Weight: 0.79 pounds" anywhere in the visible text."""
    match = _WEIGHT_TEXT.search(page.parsed.text)
    if not match:
        return None
    return validate_weight(float(match.group(1)))


WEIGHT_STRATEGIES: List[Strategy[float]] = [
    Strategy("labelled_row", weight_by_labelled_row),
    Strategy("markup_proximity", weight_by_markup_proximity),
    Strategy("text_proximity", weight_by_text_proximity),
]


# =============================================================================
# Public extractors
# =============================================================================

def extract_identifiers(markup: str) -> List[str]:
    """Extract item identifiers from an identifier-source page.

    Repeats are kept in page order; they stand for repeated physical items.

    Args:
        markup: Raw page HTML

    Returns:
        Identifiers from the highest-ranked strategy that found any, or []
    """
    name, found = run_ranked(IDENTIFIER_STRATEGIES, Page(markup))
    if name:
        logger.debug(f"Extracted {len(found)} identifiers via {name}")
    return list(found or [])


def extract_weight(markup: str) -> Optional[float]:
    """Extract an item weight in pounds from a weight-source page.

    Returns:
        Weight from the highest-ranked strategy that found one, or None
    """
    _, weight = run_ranked(WEIGHT_STRATEGIES, Page(markup))
    return weight


def extract_item_details(markup: str) -> ItemDetails:
    """Read the label/value rows of a weight-source detail page."""
    values = {}
    for row in Page(markup).parsed.rows:
        if len(row) < 2:
            continue
        label = row[0].text.lower()
        value = row[1].text

        if label == "asin":
            values["asin"] = value
        elif label == "fnsku":
            values["item_id"] = value
        elif label == "title":
            values["title"] = value
        elif label == "weight":
            match = _WEIGHT_WITH_UNIT.search(value)
            values["weight"] = validate_weight(float(match.group(1))) if match else None
        elif label == "dimensions":
            values["dimensions"] = value
        elif label == "binding":
            values["binding"] = value
        elif label == "list price":
            match = _BARE_NUMBER.search(value)
            values["list_price"] = float(match.group(1)) if match else None

    return ItemDetails(**values)


def has_materialized_content(markup: str) -> bool:
    """True once a page shows a table row or weight text."""
    page = Page(markup)
    if page.parsed.rows:
        return True
    return "Weight" in page.parsed.text or "pounds" in page.parsed.text


def warehouse_from_location(location: Optional[str], default: str) -> str:
    """Warehouse id from the first all-caps path segment of a location."""
    if not location:
        return default
    match = _WAREHOUSE_SEGMENT.search(urlsplit(location).path + "/")
    return match.group(1) if match else default
