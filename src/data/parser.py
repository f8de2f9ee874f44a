import io
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Sequence

import pandas as pd

from src.errors import MalformedInput
from src.log import get_logger


logger = get_logger("parser")

# A quoted field (may contain commas and "" escapes) or a run of non-comma text.
_CELL_PATTERN = re.compile(r'("(?:[^"]*(?:""[^"]*)*)")|([^,]+)')
_LINE_BREAK = re.compile(r"\r?\n")

TEXT_EXTENSIONS = (".csv", ".txt")
SPREADSHEET_EXTENSIONS = (".xlsx",)

SpreadsheetReader = Callable[[bytes], List[List[Any]]]


@dataclass(frozen=True)
class ParsedTable:
    headers: List[str]
    rows: List[List[str]]


def read_first_sheet(data: bytes) -> List[List[Any]]:
    """Raw cell values of the first worksheet, header row included."""
    frame = pd.read_excel(
        io.BytesIO(data),
        sheet_name=0,
        header=None,
        dtype=object,
        engine="openpyxl",
    )
    return frame.values.tolist()


def _split_line(line: str) -> List[str]:
    cells = []
    for match in _CELL_PATTERN.finditer(line):
        cell = match.group(1) or match.group(2) or ""
        if len(cell) >= 2 and cell.startswith('"') and cell.endswith('"'):
            cell = cell[1:-1].replace('""', '"')
        cells.append(cell.strip())
    return cells


def _cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def _drop_trailing_blanks(cells: Sequence[str]) -> List[str]:
    cells = list(cells)
    while cells and cells[-1] == "":
        cells.pop()
    return cells


def parse_text(content: str) -> ParsedTable:
    lines = [
        line
        for line in _LINE_BREAK.split(content.strip())
        if line.strip()
    ]

    if len(lines) < 2:
        raise MalformedInput(
            "Delimited file must contain a header line and at least one data row"
        )

    headers = [h.strip() for h in lines[0].split(",")]
    rows = [_split_line(line) for line in lines[1:]]
    return ParsedTable(headers=headers, rows=rows)


class TabularParser:
    """
    Turns uploaded files into (headers, rows).

    Spreadsheet decoding is injected so the service resolves it once at
    startup; tests can pass a plain function returning nested lists.
    """

    def __init__(self, spreadsheet_reader: SpreadsheetReader = read_first_sheet):
        self.spreadsheet_reader = spreadsheet_reader

    def parse_text(self, content: str) -> ParsedTable:
        return parse_text(content)

    def parse_spreadsheet(self, data: bytes) -> ParsedTable:
        try:
            raw_rows = self.spreadsheet_reader(data)
        except MalformedInput:
            raise
        except Exception as exc:
            raise MalformedInput(f"Could not read spreadsheet: {exc}") from exc

        cells = [[_cell_to_text(cell) for cell in row] for row in raw_rows]
        cells = [row for row in cells if any(row)]

        if len(cells) < 2:
            raise MalformedInput(
                "Spreadsheet must contain a header row and at least one data row"
            )

        # Empty data cells produce no value, as in the text tokeniser.
        headers = _drop_trailing_blanks(cells[0])
        rows = [[cell for cell in row if cell != ""] for row in cells[1:]]
        return ParsedTable(headers=headers, rows=rows)

    def parse_file(self, filename: str, data: bytes) -> ParsedTable:
        suffix = Path(filename or "").suffix.lower()

        if suffix in TEXT_EXTENSIONS:
            try:
                content = data.decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                raise MalformedInput(f"{filename} is not valid UTF-8 text") from exc
            table = self.parse_text(content)
        elif suffix in SPREADSHEET_EXTENSIONS:
            table = self.parse_spreadsheet(data)
        else:
            raise MalformedInput(
                f"Unsupported file type '{suffix or filename}'; expected CSV or XLSX"
            )

        logger.info(
            "Parsed %s: %d columns, %d data rows",
            filename,
            len(table.headers),
            len(table.rows),
        )
        return table
