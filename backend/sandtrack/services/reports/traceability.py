"""
Traceability report rendering.

Turns a delivered DeliverySnapshot into a paginated A4 PDF (or a JSON
export with the same content). The builder never touches the store and
never mutates the snapshot; missing checkpoints or signature still yield a
valid document that states the absence.
"""

import json
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from sandtrack.core.clock import Clock, utc_now
from sandtrack.core.config import Settings, get_settings
from sandtrack.core.logging import get_logger
from sandtrack.services.reports.snapshot import DeliverySnapshot

logger = get_logger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
JSON_MEDIA_TYPE = "application/json"

NO_SIGNATURE_TEXT = "No signature information recorded for this delivery."
NO_CHECKPOINTS_TEXT = "No checkpoints recorded for this delivery."

HEADER_BLUE = colors.Color(25 / 255, 118 / 255, 210 / 255)
TABLE_HEADER_FILL = colors.Color(240 / 255, 248 / 255, 1)
STRIPE_FILL = colors.Color(250 / 255, 250 / 255, 250 / 255)
RULE_GREY = colors.Color(200 / 255, 200 / 255, 200 / 255)
FOOTER_GREY = colors.Color(100 / 255, 100 / 255, 100 / 255)

# Column offsets from the left margin: time, name, type, location
TABLE_COLUMNS = (2 * mm, 40 * mm, 100 * mm, 135 * mm)


@dataclass(frozen=True)
class TraceabilityReport:
    filename: str
    media_type: str
    content: bytes
    page_count: int = 1


def _fmt_datetime(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC") if value else "N/A"


def _fmt_coords(lat: float, lng: float) -> str:
    return f"{lat:.3f}, {lng:.3f}"


class TraceabilityReportBuilder:
    """Renders traceability reports for delivered deliveries."""

    def __init__(self, settings: Optional[Settings] = None, clock: Clock = utc_now):
        self.settings = settings or get_settings()
        self.clock = clock

    @staticmethod
    def filename(snapshot: DeliverySnapshot, extension: str = "pdf") -> str:
        return f"Traceability-Report-{snapshot.order_number}.{extension}"

    def summary_lines(self, snapshot: DeliverySnapshot) -> list[str]:
        route = snapshot.route
        return [
            f"Order Number: {snapshot.order_number}",
            f"Customer: {snapshot.customer_name}",
            f"Truck: {snapshot.truck_plate}",
            f"Driver: {snapshot.driver_name}",
            f"Route: {route.quarry.name or 'Quarry'} -> {route.well.name or 'Well Site'}",
            f"Delivery Date: {_fmt_datetime(snapshot.created_at)}",
            f"Wait Time: {snapshot.wait_time_minutes} minutes",
        ]

    def checkpoint_rows(self, snapshot: DeliverySnapshot) -> list[tuple[str, str, str, str]]:
        return [
            (
                cp.timestamp.strftime("%H:%M:%S"),
                cp.name or f"Checkpoint {index + 1}",
                cp.type.value,
                _fmt_coords(cp.lat, cp.lng),
            )
            for index, cp in enumerate(snapshot.checkpoints)
        ]

    def confirmation_lines(self, snapshot: DeliverySnapshot) -> list[str]:
        signature = snapshot.signature
        if signature is None:
            return [NO_SIGNATURE_TEXT]
        return [
            f"Signer: {signature.signer_name} ({signature.signer_title})",
            f"Signed At: {_fmt_datetime(signature.timestamp)}",
            "Signature Location: "
            + _fmt_coords(signature.location.lat, signature.location.lng),
        ]

    def footer_text(self, snapshot: DeliverySnapshot) -> str:
        return (
            f"Traceability report for order {snapshot.order_number} - "
            f"Generated {_fmt_datetime(self.clock())}"
        )

    def build_pdf(self, snapshot: DeliverySnapshot) -> TraceabilityReport:
        """
        Render the snapshot as a paginated PDF.

        Sections: header band, delivery summary, checkpoint table with row
        striping, delivery confirmation, and a footer on every page.
        """
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=A4)
        c.setTitle(f"Traceability Report {snapshot.order_number}")
        c.setAuthor(self.settings.report_issuer_name)
        page_w, page_h = A4

        margin = 20 * mm
        bottom = 30 * mm
        footer = self.footer_text(snapshot)
        pages = 1
        y = page_h - margin

        def finish_page():
            c.setFont("Helvetica", 8)
            c.setFillColor(FOOTER_GREY)
            c.drawCentredString(page_w / 2, 15 * mm, footer)
            c.setFillColor(colors.black)

        def new_page():
            nonlocal y, pages
            finish_page()
            c.showPage()
            pages += 1
            y = page_h - margin

        def ensure_space(h_needed):
            if y - h_needed < bottom:
                new_page()

        def section_title(text):
            nonlocal y
            c.setFont("Helvetica-Bold", 12)
            c.setFillColor(colors.black)
            c.drawString(margin, y, text)
            y -= 6 * mm

        # Header band
        band_h = 35 * mm
        c.setFillColor(HEADER_BLUE)
        c.rect(0, page_h - band_h, page_w, band_h, stroke=0, fill=1)
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 18)
        c.drawString(margin, page_h - 18 * mm, "TRACEABILITY REPORT")
        c.setFont("Helvetica", 10)
        c.drawString(margin, page_h - 26 * mm, self.settings.report_issuer_name)
        c.setFont("Helvetica", 8)
        c.drawString(margin, page_h - 31 * mm, self.settings.report_issuer_address)
        c.setFillColor(colors.black)
        y = page_h - band_h - 10 * mm

        # Delivery summary
        section_title("Delivery Summary")
        c.setFont("Helvetica", 10)
        for line in self.summary_lines(snapshot):
            c.drawString(margin, y, line)
            y -= 5 * mm
        y -= 4 * mm
        c.setStrokeColor(RULE_GREY)
        c.line(margin, y, page_w - margin, y)
        y -= 8 * mm

        # Checkpoints table
        ensure_space(20 * mm)
        section_title("Checkpoints")

        def table_header():
            nonlocal y
            c.setFillColor(TABLE_HEADER_FILL)
            c.rect(margin, y - 6 * mm, page_w - 2 * margin, 8 * mm, stroke=0, fill=1)
            c.setFillColor(colors.black)
            c.setFont("Helvetica-Bold", 9)
            for offset, label in zip(TABLE_COLUMNS, ("Time", "Name", "Type", "Location")):
                c.drawString(margin + offset, y - 3 * mm, label)
            y -= 10 * mm
            c.setFont("Helvetica", 9)

        rows = self.checkpoint_rows(snapshot)
        if rows:
            table_header()
            for index, row in enumerate(rows):
                if y < bottom:
                    new_page()
                    table_header()
                if index % 2 == 1:
                    c.setFillColor(STRIPE_FILL)
                    c.rect(margin, y - 2 * mm, page_w - 2 * margin, 6 * mm, stroke=0, fill=1)
                    c.setFillColor(colors.black)
                for offset, value in zip(TABLE_COLUMNS, row):
                    c.drawString(margin + offset, y, value)
                y -= 6 * mm
        else:
            c.setFont("Helvetica", 10)
            c.drawString(margin, y, NO_CHECKPOINTS_TEXT)
            y -= 5 * mm
        y -= 4 * mm

        # Delivery confirmation
        ensure_space(30 * mm)
        section_title("Delivery Confirmation")
        c.setFont("Helvetica", 10)
        for line in self.confirmation_lines(snapshot):
            c.drawString(margin, y, line)
            y -= 5 * mm

        finish_page()
        c.save()

        content = buf.getvalue()
        logger.info(
            "Traceability PDF rendered",
            delivery_id=str(snapshot.delivery_id),
            order_number=snapshot.order_number,
            pages=pages,
            size_bytes=len(content),
        )
        return TraceabilityReport(
            filename=self.filename(snapshot, "pdf"),
            media_type=PDF_MEDIA_TYPE,
            content=content,
            page_count=pages,
        )

    def build_json(self, snapshot: DeliverySnapshot) -> TraceabilityReport:
        """Export the same report content as a JSON document."""
        document = {
            "title": "TRACEABILITY REPORT",
            "issuer": {
                "name": self.settings.report_issuer_name,
                "address": self.settings.report_issuer_address,
            },
            "generated_at": self.clock().isoformat(),
            "delivery": snapshot.model_dump(mode="json", exclude={"signature"}),
            "confirmation": (
                snapshot.signature.model_dump(
                    mode="json", exclude={"signature_image", "photo"}
                )
                if snapshot.signature
                else {"message": NO_SIGNATURE_TEXT}
            ),
        }
        content = json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
        return TraceabilityReport(
            filename=self.filename(snapshot, "json"),
            media_type=JSON_MEDIA_TYPE,
            content=content,
        )

    def build(self, snapshot: DeliverySnapshot, fmt: str = "pdf") -> TraceabilityReport:
        """
        Render a report in the requested format.

        Raises:
            ValueError: If fmt is neither ``pdf`` nor ``json``
        """
        if fmt == "pdf":
            return self.build_pdf(snapshot)
        if fmt == "json":
            return self.build_json(snapshot)
        raise ValueError(f"Unsupported report format: {fmt}")


def render_traceability_report(
    snapshot: DeliverySnapshot,
    settings: Optional[Settings] = None,
) -> TraceabilityReport:
    """Render the PDF traceability report of a delivered snapshot."""
    return TraceabilityReportBuilder(settings).build_pdf(snapshot)
