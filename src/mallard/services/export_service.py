"""
Spreadsheet export service.

Writes a query result to an .xlsx workbook with two sheets:
- "Results": the rows, with typed cells, a styled header and frozen top row
- "Query Info": execution metadata and the SQL that produced the rows

Values arrive as text from the CSV decoder; this is the layer that
interprets them as numbers, dates and booleans.

The exporter is a scoped resource: shared cell styles are created on first
use and dropped on close.

Usage:
    with SpreadsheetExporter(config) as exporter:
        path = exporter.export(result, "orders.xlsx", sql)
"""

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional, Tuple

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from mallard.config import ExportConfig
from mallard.domain.errors import ExportError, NoDataToExportError
from mallard.domain.results import QueryResult
from mallard.utils.logging import get_module_logger
from mallard.utils.tracing import current_trace_id

logger = get_module_logger()

XLSX_SUFFIX = ".xlsx"
RESULTS_SHEET = "Results"
QUERY_INFO_SHEET = "Query Info"
NULL_TEXT = "NULL"

INTEGER_FORMAT = "#,##0"
DECIMAL_FORMAT = "#,##0.00"
DATETIME_FORMAT = "yyyy-mm-dd hh:mm:ss"

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")
# Dates need at least YYYY-MM-DD so values like "2024" stay numbers
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def clean_text(text: str) -> str:
    """Remove control characters that worksheet cells can't hold."""
    return ILLEGAL_CHARACTERS_RE.sub("", text)


@dataclass(frozen=True)
class CellStyles:
    """Styles shared by every workbook written in one exporter scope."""

    header_font: Font
    header_fill: PatternFill
    null_font: Font
    border: Border
    title_font: Font
    label_font: Font
    sql_font: Font
    sql_fill: PatternFill
    sql_alignment: Alignment


def _build_styles() -> CellStyles:
    thin = Side(style="thin")
    return CellStyles(
        header_font=Font(bold=True),
        header_fill=PatternFill(fill_type="solid", start_color="D3D3D3", end_color="D3D3D3"),
        null_font=Font(italic=True, color="808080"),
        border=Border(top=thin, left=thin, right=thin, bottom=thin),
        title_font=Font(size=16, bold=True),
        label_font=Font(bold=True),
        sql_font=Font(name="Consolas", size=10),
        sql_fill=PatternFill(fill_type="solid", start_color="F0F0F0", end_color="F0F0F0"),
        sql_alignment=Alignment(wrap_text=True, vertical="top"),
    )


def coerce_cell_value(text: Optional[str]) -> Tuple[Any, Optional[str]]:
    """
    Interpret a text value for a spreadsheet cell.

    Args:
        text: Value from a result row (None when missing)

    Returns:
        (value, number_format); number_format is None for plain cells.
        Missing and empty values return (None, None).
    """
    if text is None or text == "":
        return None, None

    stripped = text.strip()

    if _INTEGER_RE.match(stripped):
        return int(stripped), INTEGER_FORMAT

    if _DECIMAL_RE.match(stripped):
        try:
            return Decimal(stripped), DECIMAL_FORMAT
        except InvalidOperation:
            pass

    lowered = stripped.lower()
    if lowered in ("true", "false"):
        return lowered == "true", None

    if _DATE_RE.match(stripped):
        try:
            parsed = datetime.fromisoformat(stripped)
        except ValueError:
            pass
        else:
            # Excel cells can't hold timezone-aware datetimes
            return parsed.replace(tzinfo=None), DATETIME_FORMAT

    return clean_text(text), None


class SpreadsheetExporter:
    """
    Exports query results to Excel workbooks.

    Initialized lazily on the first export; close() (or leaving the
    context manager) releases the shared styles.
    """

    def __init__(self, config: Optional[ExportConfig] = None):
        self.config = config or ExportConfig()
        self._styles: Optional[CellStyles] = None

    def __enter__(self) -> "SpreadsheetExporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_initialized(self) -> bool:
        return self._styles is not None

    def close(self) -> None:
        if self._styles is not None:
            logger.debug("Spreadsheet exporter closed")
        self._styles = None

    def _ensure_initialized(self) -> CellStyles:
        if self._styles is None:
            self._styles = _build_styles()
            logger.debug("Spreadsheet exporter initialized")
        return self._styles

    def default_filename(self, now: Optional[datetime] = None) -> str:
        """Timestamped filename used when "export" is given no name."""
        now = now or datetime.now()
        return f"{self.config.default_filename_prefix}_{now:%Y%m%d_%H%M%S}{XLSX_SUFFIX}"

    def resolve_path(self, filename: str) -> Path:
        """Absolute output path, with the .xlsx extension added if missing."""
        if not filename.lower().endswith(XLSX_SUFFIX):
            filename += XLSX_SUFFIX
        path = Path(filename).expanduser()
        if not path.is_absolute():
            path = Path(self.config.output_directory) / path
        return path.resolve()

    def export(self, result: QueryResult, filename: str, sql: str) -> Path:
        """
        Write result to an .xlsx file.

        Args:
            result: Successful result with at least one row
            filename: Target filename (".xlsx" appended when missing)
            sql: Query that produced the result

        Returns:
            Absolute path of the written file

        Raises:
            NoDataToExportError: If the result has no rows
            ExportError: If the workbook can't be written
        """
        if not result.has_rows:
            raise NoDataToExportError()

        styles = self._ensure_initialized()
        path = self.resolve_path(filename)

        try:
            workbook = Workbook()
            results_sheet = workbook.active
            results_sheet.title = RESULTS_SHEET
            self._write_results_sheet(results_sheet, result, styles)
            self._write_query_info_sheet(workbook.create_sheet(QUERY_INFO_SHEET), result, sql, styles)
            workbook.save(path)
        except (OSError, ValueError) as e:
            logger.error(
                "Failed to write workbook",
                path=str(path),
                error=str(e),
                error_type=type(e).__name__,
                trace_id=current_trace_id(),
            )
            raise ExportError(f"Error exporting to Excel: {e}", details={"path": str(path)}) from e

        logger.info(
            "Exported query results",
            path=str(path),
            row_count=result.row_count,
            column_count=len(result.column_names),
            trace_id=current_trace_id(),
        )
        return path

    def _write_results_sheet(self, sheet: Worksheet, result: QueryResult, styles: CellStyles) -> None:
        widths = [len(name) for name in result.column_names]

        for col_index, name in enumerate(result.column_names, start=1):
            cell = sheet.cell(row=1, column=col_index, value=clean_text(name))
            cell.font = styles.header_font
            cell.fill = styles.header_fill
            cell.border = styles.border

        for row_index, row in enumerate(result.rows, start=2):
            for col_index, name in enumerate(result.column_names, start=1):
                text = row.get(name)
                value, number_format = coerce_cell_value(text)
                cell = sheet.cell(row=row_index, column=col_index)
                cell.border = styles.border

                if value is None:
                    cell.value = NULL_TEXT
                    cell.font = styles.null_font
                    continue

                cell.value = value
                if number_format:
                    cell.number_format = number_format
                widths[col_index - 1] = max(widths[col_index - 1], len(text or ""))

        sheet.freeze_panes = "A2"

        for col_index, width in enumerate(widths, start=1):
            sheet.column_dimensions[get_column_letter(col_index)].width = min(width + 2, self.config.max_column_width)

    def _write_query_info_sheet(self, sheet: Worksheet, result: QueryResult, sql: str, styles: CellStyles) -> None:
        title = sheet.cell(row=1, column=1, value="Query Execution Information")
        title.font = styles.title_font

        info = [
            ("Executed At:", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
            ("Rows Returned:", f"{result.row_count:,}"),
            ("Execution Time:", f"{result.execution_time_ms:.2f} ms"),
            ("Status:", "Success" if result.success else "Failed"),
        ]
        if result.error_text:
            info.append(("Error:", clean_text(result.error_text)))

        row = 3
        for label, value in info:
            sheet.cell(row=row, column=1, value=label).font = styles.label_font
            sheet.cell(row=row, column=2, value=value)
            row += 1

        row += 2
        sheet.cell(row=row, column=1, value="SQL Query:").font = styles.label_font
        row += 1

        sql_cell = sheet.cell(row=row, column=1, value=clean_text(sql))
        sql_cell.font = styles.sql_font
        sql_cell.fill = styles.sql_fill
        sql_cell.alignment = styles.sql_alignment
        sheet.merge_cells(start_row=row, start_column=1, end_row=row, end_column=5)

        sheet.column_dimensions["A"].width = 20
        sheet.column_dimensions["B"].width = 60
