"""Closing-report document generation.

Markdown from the completion service is redacted, split into typed blocks
line by line and encoded as a .docx file.
"""

import re
from io import BytesIO
from pathlib import Path
from typing import List, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.image import Image
from docx.shared import Pt

from menu_advisor.schemas.export import BlockKind, DocumentBlock
from menu_advisor.utils.logging import get_logger

LOGGER = get_logger(__name__)

STRATEGY_TABLE_MARKER = "核心邏輯與優化重點"
PHOTO_MARKER = "📸"
PHOTO_PLACEHOLDER = "[建議搭配圖片]"
SEPARATOR_TEXT = "___________________________________"

_HEADING_PREFIXES = (
    ("#### ", BlockKind.HEADING_4),
    ("### ", BlockKind.HEADING_3),
    ("## ", BlockKind.HEADING_2),
    ("# ", BlockKind.HEADING_1),
)
_BULLET_PREFIXES = ("* ", "- ")
_NUMBERED_PATTERN = re.compile(r"^\d+\.\s")

# Logo box at 96 dpi: 100 x 50 px
LOGO_WIDTH = Pt(75)
LOGO_HEIGHT = Pt(37.5)


def _is_strategy_table_heading(line: str) -> bool:
    label = line.strip().lstrip("#").strip().lstrip("🎯").strip().lstrip("*_").strip()
    return label.startswith(STRATEGY_TABLE_MARKER)


def redact_strategy_table(markdown: str) -> str:
    """Remove the internal strategy-table section.

    The section starts at the strategy heading, in heading or emphasis form,
    and runs through the following pipe-delimited rows plus one optional
    ``---`` line. Blank lines between the heading and the table are dropped.
    """
    lines = (markdown or "").split("\n")
    kept = []
    i = 0
    while i < len(lines):
        if not _is_strategy_table_heading(lines[i]):
            kept.append(lines[i])
            i += 1
            continue

        i += 1
        j = i
        while j < len(lines) and not lines[j].strip():
            j += 1
        if j < len(lines) and lines[j].strip().startswith("|"):
            i = j
        while i < len(lines) and lines[i].strip().startswith("|"):
            i += 1
        if i < len(lines) and lines[i].strip() == "---":
            i += 1
    return "\n".join(kept)


def replace_photo_markers(markdown: str) -> str:
    """Replace the photo-suggestion pictogram with a bracketed label."""
    return (markdown or "").replace(PHOTO_MARKER, PHOTO_PLACEHOLDER)


def markdown_to_blocks(markdown: str) -> List[DocumentBlock]:
    """Classify each Markdown line into exactly one block.

    Precedence: headings (longest marker first), ``---``, bullets, numbered
    items, blank lines, then plain paragraphs.
    """
    blocks = []
    for line in (markdown or "").split("\n"):
        blocks.append(_classify_line(line))
    return blocks


def _classify_line(line: str) -> DocumentBlock:
    trimmed = line.strip()

    for prefix, kind in _HEADING_PREFIXES:
        if trimmed.startswith(prefix):
            return DocumentBlock(kind, trimmed[len(prefix):].strip())

    if trimmed == "---":
        return DocumentBlock(BlockKind.SEPARATOR)

    if trimmed.startswith(_BULLET_PREFIXES):
        return DocumentBlock(BlockKind.BULLET, trimmed[2:].strip())

    if _NUMBERED_PATTERN.match(trimmed):
        return DocumentBlock(BlockKind.NUMBERED, _NUMBERED_PATTERN.sub("", trimmed, count=1).strip())

    if not trimmed:
        return DocumentBlock(BlockKind.BLANK)

    return DocumentBlock(BlockKind.PARAGRAPH, line.rstrip())


def build_report_blocks(markdown: str, logo: Optional[bytes] = None) -> List[DocumentBlock]:
    """Run both redaction passes, classify, and prepend the logo when given."""
    cleaned = replace_photo_markers(redact_strategy_table(markdown))
    blocks = markdown_to_blocks(cleaned)
    if logo:
        blocks.insert(0, DocumentBlock(BlockKind.IMAGE, image=logo))
    return blocks


def load_logo(logo_path: Optional[str]) -> Optional[bytes]:
    """Read and validate the brand logo; any failure only logs a warning."""
    if not logo_path:
        return None
    try:
        data = Path(logo_path).read_bytes()
        Image.from_blob(data)
        return data
    except Exception as e:
        LOGGER.warning(f"Could not load or add logo: {e}", extra={"logo_path": logo_path})
        return None


class ReportDocumentService:
    """Encodes the closing report as a .docx file."""

    def __init__(self, logo_path: Optional[str] = None):
        self.logo_path = logo_path

    def render(self, markdown: str, logo_path: Optional[str] = None) -> bytes:
        """Build the report document from the extracted Markdown.

        Args:
            markdown: Report Markdown, already pulled out of its fence
            logo_path: Overrides the configured brand logo

        Returns:
            Document bytes
        """
        blocks = build_report_blocks(markdown, load_logo(logo_path or self.logo_path))

        document = Document()
        for block in blocks:
            self._add_block(document, block)

        buffer = BytesIO()
        document.save(buffer)
        LOGGER.info("Report document generated", extra={"block_count": len(blocks)})
        return buffer.getvalue()

    def _add_block(self, document, block: DocumentBlock) -> None:
        if block.kind == BlockKind.IMAGE:
            paragraph = document.add_paragraph()
            paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
            paragraph.add_run().add_picture(BytesIO(block.image), width=LOGO_WIDTH, height=LOGO_HEIGHT)
            document.add_paragraph(" ")
        elif block.heading_level:
            document.add_heading(block.text, level=block.heading_level)
        elif block.kind == BlockKind.SEPARATOR:
            paragraph = document.add_paragraph(SEPARATOR_TEXT)
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        elif block.kind == BlockKind.BULLET:
            document.add_paragraph(block.text, style="List Bullet")
        elif block.kind == BlockKind.NUMBERED:
            document.add_paragraph(block.text, style="List Number")
        elif block.kind == BlockKind.BLANK:
            document.add_paragraph(" ")
        else:
            document.add_paragraph(block.text)


def report_file_name(subject_name: str) -> str:
    """Name the report after the restaurant."""
    safe_subject = re.sub(r'[\\/:*?"<>|]', "_", (subject_name or "").strip()) or "report"
    return f"{safe_subject}_結案報告.docx"
