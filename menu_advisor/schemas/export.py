"""Transient structures produced by the export generators."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

MAX_TAGS = 12
TAX_TYPE = "TX"
TAX_RATE = "0.05"


class ExportRow(BaseModel):
    """One fixed-column spreadsheet row derived from a parsed menu item."""

    name: str = Field(default="", description="Item name with decorative symbols removed")
    price: str = Field(default="", description="Price copied verbatim from the item")
    tax_type: str = Field(default=TAX_TYPE, description="Tax category code")
    tax_rate: str = Field(default=TAX_RATE, description="Fixed tax rate")
    tags: List[str] = Field(
        default_factory=lambda: [""] * MAX_TAGS,
        description="Priced tags, left-packed and padded to twelve slots",
    )

    def to_cells(self) -> List[str]:
        """Return the row in spreadsheet column order."""
        return [self.name, self.price, self.tax_type, self.tax_rate, *self.tags]


class BlockKind(str, Enum):
    """Kinds of blocks in a generated report document."""

    IMAGE = "image"
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    HEADING_4 = "heading_4"
    SEPARATOR = "separator"
    BULLET = "bullet"
    NUMBERED = "numbered"
    BLANK = "blank"
    PARAGRAPH = "paragraph"


@dataclass
class DocumentBlock:
    """One typed unit of the report document."""

    kind: BlockKind
    text: str = ""
    image: Optional[bytes] = None

    @property
    def heading_level(self) -> Optional[int]:
        if self.kind.value.startswith("heading_"):
            return int(self.kind.value.rsplit("_", 1)[1])
        return None
