"""Spreadsheet export of the finalized menu items."""

from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Sequence

from openpyxl import Workbook

from menu_advisor.core.exceptions import ParseError
from menu_advisor.schemas.export import MAX_TAGS, ExportRow
from menu_advisor.utils.logging import get_logger
from menu_advisor.utils.text_transforms import has_priced_tag, strip_decorative

LOGGER = get_logger(__name__)

SHEET_TITLE = "優化建議"
COLUMN_WIDTH = 20
HEADERS = [
    "商品名稱(半型字)",
    "價格",
    "稅別(TX應稅,TF稅率)",
    "稅率",
    *[f"標籤{i}" for i in range(1, MAX_TAGS + 1)],
]

NAME_KEYS = ("商品名稱(半型字)", "Item", "品項")
PRICE_KEYS = ("價格", "Price")


def build_export_rows(items: Sequence[Dict[str, Any]]) -> List[ExportRow]:
    """Convert parsed items into fixed-column export rows.

    Only priced tags are kept. They are left-packed in their original order
    and the remaining slots are empty strings.

    Args:
        items: Item dictionaries parsed from the completion

    Returns:
        One row per item, order preserved

    Raises:
        ParseError: If there are no items
    """
    if not items:
        raise ParseError("No menu items were found in the response")

    rows = []
    for item in items:
        priced_tags = []
        for i in range(1, MAX_TAGS + 1):
            tag = _first_present(item, (f"標籤{i}", f"Tag{i}"))
            if has_priced_tag(tag):
                priced_tags.append(tag)

        rows.append(
            ExportRow(
                name=_as_text(strip_decorative(_as_text(_first_present(item, NAME_KEYS)))),
                price=_as_text(_first_present(item, PRICE_KEYS)),
                tags=priced_tags + [""] * (MAX_TAGS - len(priced_tags)),
            )
        )
    return rows


class SpreadsheetExportService:
    """Encodes export rows as an .xlsx workbook."""

    def render(self, rows: Sequence[ExportRow]) -> bytes:
        """Write the rows under the fixed header into a single worksheet.

        Args:
            rows: Rows produced by ``build_export_rows``

        Returns:
            Workbook bytes
        """
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE

        sheet.append(HEADERS)
        for row in rows:
            sheet.append(row.to_cells())

        for column_cells in sheet.iter_cols(min_row=1, max_row=1):
            sheet.column_dimensions[column_cells[0].column_letter].width = COLUMN_WIDTH

        buffer = BytesIO()
        workbook.save(buffer)
        LOGGER.info("Spreadsheet generated", extra={"row_count": len(rows)})
        return buffer.getvalue()


def export_file_name(document_filename: str) -> str:
    """Name the export after the uploaded menu, without its extension."""
    stem = Path(document_filename or "").stem or "menu"
    return f"{stem}_優化建議.xlsx"


def _first_present(item: Dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return ""


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
