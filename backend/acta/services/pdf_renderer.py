"""Render the acta PDF from a meeting."""
import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    HRFlowable,
    Image,
    ListFlowable,
    ListItem,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from ..models.meeting import Meeting
from ..schemas.signature import strip_data_url
from ..utils.dates import format_long_date_es, format_time_es

logger = logging.getLogger("acta.pdf")

PLACEHOLDER_CONTENT = "Contenido del acta no disponible."

_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")
_BULLET = re.compile(r"^[-*•]\s+(.*)$")
_NUMBERED = re.compile(r"^(\d+)[.)]\s+(.*)$")
_BOLD = re.compile(r"\*\*(.+?)\*\*")


@dataclass
class SignatureBlock:
    label: str
    signer_name: Optional[str] = None
    image: Optional[bytes] = None


@dataclass
class ActaDocument:
    acta_number: str
    title: str
    intro: str
    attendees_summary: Optional[str]
    content: Optional[str]
    signatures: List[SignatureBlock] = field(default_factory=list)


def escape(s: str) -> str:
    """Escape HTML entities for ReportLab."""
    return str(s).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def inline_markup(text: str) -> str:
    """Escape text and turn ``**bold**`` into ReportLab's ``<b>`` tags."""
    return _BOLD.sub(r"<b>\1</b>", escape(text))


def parse_markup(text: str) -> List[Tuple]:
    """Split lightweight markup into blocks.

    Blocks are ``("heading", level, text)``, ``("bullet", text)``,
    ``("numbered", number, text)`` and ``("paragraph", [lines])``.
    """
    blocks: List[Tuple] = []
    paragraph: List[str] = []

    def flush():
        if paragraph:
            blocks.append(("paragraph", list(paragraph)))
            paragraph.clear()

    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            flush()
            continue
        heading = _HEADING.match(line)
        bullet = _BULLET.match(line)
        numbered = _NUMBERED.match(line)
        if heading:
            flush()
            blocks.append(("heading", len(heading.group(1)), heading.group(2).strip()))
        elif bullet:
            flush()
            blocks.append(("bullet", bullet.group(1)))
        elif numbered:
            flush()
            blocks.append(("numbered", int(numbered.group(1)), numbered.group(2)))
        else:
            paragraph.append(line)
    flush()
    return blocks


def decode_signature(image: Optional[str]) -> Optional[bytes]:
    if not image:
        return None
    try:
        return base64.b64decode(strip_data_url(image), validate=True) or None
    except (binascii.Error, ValueError):
        logger.warning("Stored signature is not valid base64, leaving the line blank")
        return None


def document_filename(meeting: Meeting) -> str:
    building = re.sub(r"\s+", "_", meeting.building_name.strip())
    return f"Acta_{building}_{meeting.id}.pdf"


def build_document(meeting: Meeting) -> ActaDocument:
    """Project the meeting's current state into the sections of the acta."""
    long_date = format_long_date_es(meeting.date)
    time = format_time_es(meeting.date)
    building = escape(meeting.building_name)
    intro = (
        f"En <b>{building}</b>, a <b>{long_date}</b>, siendo las <b>{time} horas</b>, "
        f"se reúne la junta de propietarios de la comunidad {building}."
    )
    attendees = None
    if meeting.attendees_count:
        attendees = f"Total de asistentes: {meeting.attendees_count} personas."

    return ActaDocument(
        acta_number=f"ACTA OFICIAL NO. {meeting.id}",
        title="ACTA DE REUNIÓN",
        intro=intro,
        attendees_summary=attendees,
        content=meeting.acta_content,
        signatures=[
            SignatureBlock(
                label="FIRMA PRESIDENTE",
                signer_name=meeting.president_name,
                image=decode_signature(meeting.president_signature),
            ),
            SignatureBlock(
                label="FIRMA SECRETARIA",
                signer_name=meeting.secretary_name,
                image=decode_signature(meeting.secretary_signature),
            ),
        ],
    )


class PdfRenderer:
    """Draws an ActaDocument on A4 pages with ReportLab."""

    def __init__(self, pagesize=A4, margin: float = 20 * mm):
        self.pagesize = pagesize
        self.margin = margin
        self.styles = self._build_styles()

    @staticmethod
    def _build_styles() -> dict:
        base = getSampleStyleSheet()
        body = ParagraphStyle(
            "ActaBody", parent=base["BodyText"], fontName="Times-Roman",
            fontSize=11, leading=17, alignment=TA_JUSTIFY, spaceAfter=8,
        )
        return {
            "number": ParagraphStyle(
                "ActaNumber", parent=base["Normal"], fontSize=8,
                textColor=colors.HexColor("#9ca3af"), alignment=TA_CENTER, spaceAfter=10,
            ),
            "title": ParagraphStyle(
                "ActaTitle", parent=base["Title"], fontName="Times-Bold", fontSize=24, leading=28,
            ),
            "body": body,
            "h1": ParagraphStyle("ActaH1", parent=body, fontName="Times-Bold", fontSize=16, leading=20, spaceBefore=12),
            "h2": ParagraphStyle("ActaH2", parent=body, fontName="Times-Bold", fontSize=14, leading=18, spaceBefore=10),
            "h3": ParagraphStyle("ActaH3", parent=body, fontName="Times-Bold", fontSize=12, leading=16, spaceBefore=8),
            "box_title": ParagraphStyle(
                "ActaBoxTitle", parent=base["Normal"], fontName="Helvetica-Bold", fontSize=8,
                textColor=colors.HexColor("#6b7280"), spaceAfter=6,
            ),
            "box_text": ParagraphStyle(
                "ActaBoxText", parent=base["Normal"], fontSize=10, textColor=colors.HexColor("#374151"),
            ),
            "sig_label": ParagraphStyle(
                "ActaSignatureLabel", parent=base["Normal"], fontName="Helvetica-Bold", fontSize=8,
                textColor=colors.HexColor("#6b7280"), alignment=TA_CENTER,
            ),
            "sig_name": ParagraphStyle(
                "ActaSignatureName", parent=base["Normal"], fontSize=9, alignment=TA_CENTER,
            ),
        }

    def _content_flowables(self, content: Optional[str]) -> list:
        if not content or not content.strip():
            return [Paragraph(escape(PLACEHOLDER_CONTENT), self.styles["body"])]

        story = []
        pending_list: List[Tuple[str, str, Optional[int]]] = []

        def flush_list():
            if not pending_list:
                return
            kind = pending_list[0][0]
            items = [ListItem(Paragraph(inline_markup(text), self.styles["body"])) for _, text, _start in pending_list]
            if kind == "numbered":
                story.append(ListFlowable(items, bulletType="1", start=pending_list[0][2]))
            else:
                story.append(ListFlowable(items, bulletType="bullet", start="•"))
            pending_list.clear()

        for block in parse_markup(content):
            kind = block[0]
            if kind == "bullet":
                if pending_list and pending_list[0][0] != "bullet":
                    flush_list()
                pending_list.append(("bullet", block[1], None))
                continue
            if kind == "numbered":
                if pending_list and pending_list[0][0] != "numbered":
                    flush_list()
                pending_list.append(("numbered", block[2], block[1]))
                continue
            flush_list()
            if kind == "heading":
                style = self.styles["h%d" % min(block[1], 3)]
                story.append(Paragraph(inline_markup(block[2]), style))
            else:
                story.append(Paragraph("<br/>".join(inline_markup(l) for l in block[1]), self.styles["body"]))
        flush_list()
        return story

    def _signature_cell(self, block: SignatureBlock, width: float) -> list:
        cell = []
        if block.image:
            try:
                cell.append(Image(BytesIO(block.image), width=width * 0.8, height=22 * mm, kind="proportional"))
            except Exception as exc:
                logger.warning("Could not embed %s signature image: %s", block.label, exc)
        if not cell:
            cell.append(Spacer(1, 22 * mm))
        cell.append(HRFlowable(width="100%", thickness=1.5, color=colors.HexColor("#9ca3af"), spaceAfter=6))
        cell.append(Paragraph(escape(block.label), self.styles["sig_label"]))
        if block.signer_name:
            cell.append(Paragraph(escape(block.signer_name), self.styles["sig_name"]))
        return cell

    def render(self, document: ActaDocument) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.pagesize,
            leftMargin=self.margin,
            rightMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=document.title,
        )
        story = [
            Paragraph(escape(document.acta_number), self.styles["number"]),
            Paragraph(escape(document.title), self.styles["title"]),
            HRFlowable(width=60 * mm, thickness=2, color=colors.black, hAlign="CENTER", spaceAfter=18),
            Paragraph(document.intro, self.styles["body"]),
            Spacer(1, 12),
        ]

        if document.attendees_summary:
            box = Table(
                [[Paragraph("ASISTENTES", self.styles["box_title"])],
                 [Paragraph(escape(document.attendees_summary), self.styles["box_text"])]],
                colWidths=[doc.width],
            )
            box.setStyle(TableStyle([
                ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#f9fafb")),
                ("BOX", (0, 0), (-1, -1), 0.5, colors.HexColor("#e5e7eb")),
                ("LEFTPADDING", (0, 0), (-1, -1), 12),
                ("RIGHTPADDING", (0, 0), (-1, -1), 12),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]))
            story.extend([box, Spacer(1, 16)])

        story.extend(self._content_flowables(document.content))

        if document.signatures:
            col_width = doc.width / len(document.signatures)
            signatures = Table(
                [[self._signature_cell(block, col_width * 0.8) for block in document.signatures]],
                colWidths=[col_width] * len(document.signatures),
            )
            signatures.setStyle(TableStyle([
                ("VALIGN", (0, 0), (-1, -1), "BOTTOM"),
                ("LEFTPADDING", (0, 0), (-1, -1), col_width * 0.1),
                ("RIGHTPADDING", (0, 0), (-1, -1), col_width * 0.1),
                ("LINEABOVE", (0, 0), (-1, 0), 1, colors.HexColor("#d1d5db")),
                ("TOPPADDING", (0, 0), (-1, -1), 30),
            ]))
            story.extend([Spacer(1, 40), signatures])

        doc.build(story)
        return buffer.getvalue()

    def render_meeting(self, meeting: Meeting) -> bytes:
        return self.render(build_document(meeting))
