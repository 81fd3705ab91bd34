"""Markup reader.

Reduces raw HTML into the pieces the extraction strategies look at: tables
made of rows and cells (with the text of the first link in each cell), every
row on the page, and the page's visible text. Built on the standard library
HTMLParser, which tolerates the unclosed <td>/<tr> tags the source pages use.
"""

import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import List, Optional

_WHITESPACE = re.compile(r"\s+")

# Elements whose text is never visible
_SKIP_TAGS = {"script", "style", "noscript", "template", "head"}

# Elements that break visible text into separate lines
_BLOCK_TAGS = {
    "br", "p", "div", "tr", "td", "th", "li", "table", "section",
    "h1", "h2", "h3", "h4", "h5", "h6", "dt", "dd",
}


def _clean(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


@dataclass
class Cell:
    """One <td> or <th>."""
    text: str = ""
    link_text: Optional[str] = None
    is_header: bool = False

    @property
    def value(self) -> str:
        """Link text when the cell holds a link, otherwise the cell text."""
        return self.link_text if self.link_text else self.text


@dataclass
class Table:
    """Rows of one <table>, header row included."""
    rows: List[List[Cell]] = field(default_factory=list)

    @property
    def header(self) -> List[Cell]:
        return self.rows[0] if self.rows else []

    @property
    def data_rows(self) -> List[List[Cell]]:
        """Rows after the header; every row when the first has no <th>."""
        if self.rows and any(cell.is_header for cell in self.rows[0]):
            return self.rows[1:]
        return self.rows


@dataclass
class ParsedMarkup:
    """Structured view of a page."""
    tables: List[Table] = field(default_factory=list)
    rows: List[List[Cell]] = field(default_factory=list)
    text: str = ""


class _Frame:
    """Open row/cell state for one table (or the page outside any table)."""

    def __init__(self, table: Optional[Table]):
        self.table = table
        self.row: Optional[List[Cell]] = None
        self.cell_parts: Optional[List[str]] = None
        self.cell_is_header = False
        self.link_parts: Optional[List[str]] = None
        self.link_text: Optional[str] = None


class _MarkupParser(HTMLParser):

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.tables: List[Table] = []
        self.rows: List[List[Cell]] = []
        self._frames: List[_Frame] = [_Frame(None)]
        self._skip_depth = 0
        self._text_parts: List[str] = []

    @property
    def _frame(self) -> _Frame:
        return self._frames[-1]

    # -- cells and rows -----------------------------------------------------

    def _close_link(self, frame: _Frame):
        if frame.link_parts is None:
            return
        text = _clean("".join(frame.link_parts))
        if text and frame.link_text is None:
            frame.link_text = text
        frame.link_parts = None

    def _close_cell(self, frame: _Frame):
        if frame.cell_parts is None:
            return
        self._close_link(frame)
        if frame.row is None:
            frame.row = []
        frame.row.append(Cell(
            text=_clean("".join(frame.cell_parts)),
            link_text=frame.link_text,
            is_header=frame.cell_is_header,
        ))
        frame.cell_parts = None
        frame.link_text = None

    def _close_row(self, frame: _Frame):
        self._close_cell(frame)
        if frame.row:
            self.rows.append(frame.row)
            if frame.table is not None:
                frame.table.rows.append(frame.row)
        frame.row = None

    # -- HTMLParser hooks ---------------------------------------------------

    def handle_starttag(self, tag, attrs):
        if tag in _SKIP_TAGS:
            self._skip_depth += 1
            return
        if tag in _BLOCK_TAGS:
            self._text_parts.append("\n")

        frame = self._frame
        if tag == "table":
            table = Table()
            self.tables.append(table)
            self._frames.append(_Frame(table))
        elif tag == "tr":
            self._close_row(frame)
            frame.row = []
        elif tag in ("td", "th"):
            self._close_cell(frame)
            frame.cell_parts = []
            frame.cell_is_header = tag == "th"
        elif tag == "a" and frame.cell_parts is not None:
            self._close_link(frame)
            frame.link_parts = []

    def handle_endtag(self, tag):
        if tag in _SKIP_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if tag in _BLOCK_TAGS:
            self._text_parts.append("\n")

        frame = self._frame
        if tag == "table":
            if frame.table is not None:
                self._close_row(frame)
                self._frames.pop()
        elif tag == "tr":
            self._close_row(frame)
        elif tag in ("td", "th"):
            self._close_cell(frame)
        elif tag == "a":
            self._close_link(frame)

    def handle_data(self, data):
        if self._skip_depth:
            return
        self._text_parts.append(data)
        # Outer cells see the text of tables nested inside them
        for frame in self._frames:
            if frame.cell_parts is not None:
                frame.cell_parts.append(data)
            if frame.link_parts is not None:
                frame.link_parts.append(data)

    def close(self):
        super().close()
        while self._frames:
            self._close_row(self._frames.pop())


def parse_markup(markup: str) -> ParsedMarkup:
    """Parse raw HTML into tables, rows and visible text."""
    parser = _MarkupParser()
    parser.feed(markup or "")
    parser.close()

    lines = (_clean(line) for line in "".join(parser._text_parts).split("\n"))
    text = "\n".join(line for line in lines if line)

    return ParsedMarkup(tables=parser.tables, rows=parser.rows, text=text)
