"""
Tests for the traceability report builder.
"""

import json
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from sandtrack.core.config import Settings
from sandtrack.services.deliveries.checkpoints import LinearRouteTrail, Location, Route, RoutePoint
from sandtrack.services.deliveries.enums import DeliveryStatus
from sandtrack.services.deliveries.signature import Signature
from sandtrack.services.reports.snapshot import DeliverySnapshot
from sandtrack.services.reports.traceability import (
    JSON_MEDIA_TYPE,
    NO_SIGNATURE_TEXT,
    PDF_MEDIA_TYPE,
    TraceabilityReportBuilder,
    render_traceability_report,
)

CONFIRMED_AT = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
GENERATED_AT = datetime(2024, 3, 16, 8, 30, tzinfo=timezone.utc)

ROUTE = Route(
    quarry=RoutePoint(name="Cantera Añelo", lat=-38.35, lng=-68.79),
    well=RoutePoint(name="Loma Campana Pad 7", lat=-38.62, lng=-69.11),
)


@pytest.fixture
def builder() -> TraceabilityReportBuilder:
    return TraceabilityReportBuilder(Settings(), clock=lambda: GENERATED_AT)


def make_snapshot(with_trail: bool = True, signed: bool = True) -> DeliverySnapshot:
    trail = LinearRouteTrail().build(ROUTE, CONFIRMED_AT)
    signature = Signature(
        signer_name="Ana Perez",
        signer_title="Company Man",
        timestamp=CONFIRMED_AT,
        location=Location(lat=ROUTE.well.lat, lng=ROUTE.well.lng),
        signature_image="data:image/png;base64,iVBORw0KGgo=",
    )
    return DeliverySnapshot(
        delivery_id=uuid4(),
        status=DeliveryStatus.DELIVERED,
        order_id=uuid4(),
        order_number="O-100",
        customer_name="YPF S.A.",
        truck_plate="T-1",
        driver_name="Carlos Gomez",
        route=ROUTE,
        created_at=datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc),
        actual_arrival=CONFIRMED_AT,
        wait_time_minutes=25,
        checkpoints=trail.checkpoints if with_trail else (),
        gps_track=trail.gps_track if with_trail else (),
        signature=signature if signed else None,
        certificate_number="CERT-O-100",
    )


class TestReportSections:
    def test_filename(self, builder: TraceabilityReportBuilder) -> None:
        assert builder.filename(make_snapshot()) == "Traceability-Report-O-100.pdf"
        assert builder.filename(make_snapshot(), "json") == "Traceability-Report-O-100.json"

    def test_summary(self, builder: TraceabilityReportBuilder) -> None:
        lines = builder.summary_lines(make_snapshot())

        assert lines == [
            "Order Number: O-100",
            "Customer: YPF S.A.",
            "Truck: T-1",
            "Driver: Carlos Gomez",
            "Route: Cantera Añelo -> Loma Campana Pad 7",
            "Delivery Date: 2024-03-15 09:30 UTC",
            "Wait Time: 25 minutes",
        ]

    def test_checkpoint_rows(self, builder: TraceabilityReportBuilder) -> None:
        rows = builder.checkpoint_rows(make_snapshot())

        assert len(rows) == 12
        assert rows[0] == ("10:00:00", "Quarry Exit", "quarry_exit", "-38.350, -68.790")
        assert rows[-1] == ("11:50:00", "Well Site Arrival", "well_arrival", "-38.620, -69.110")

    def test_confirmation(self, builder: TraceabilityReportBuilder) -> None:
        assert builder.confirmation_lines(make_snapshot()) == [
            "Signer: Ana Perez (Company Man)",
            "Signed At: 2024-03-15 12:00 UTC",
            "Signature Location: -38.620, -69.110",
        ]

    def test_confirmation_without_signature(self, builder: TraceabilityReportBuilder) -> None:
        assert builder.confirmation_lines(make_snapshot(signed=False)) == [NO_SIGNATURE_TEXT]

    def test_footer(self, builder: TraceabilityReportBuilder) -> None:
        assert builder.footer_text(make_snapshot()) == (
            "Traceability report for order O-100 - Generated 2024-03-16 08:30 UTC"
        )


class TestRendering:
    def test_pdf(self, builder: TraceabilityReportBuilder) -> None:
        report = builder.build(make_snapshot(), "pdf")

        assert report.media_type == PDF_MEDIA_TYPE
        assert report.filename == "Traceability-Report-O-100.pdf"
        assert report.content.startswith(b"%PDF")
        assert report.page_count == 1

    def test_pdf_without_trail_or_signature(self, builder: TraceabilityReportBuilder) -> None:
        report = builder.build_pdf(make_snapshot(with_trail=False, signed=False))

        assert report.content.startswith(b"%PDF")
        assert builder.checkpoint_rows(make_snapshot(with_trail=False)) == []

    def test_json(self, builder: TraceabilityReportBuilder) -> None:
        report = builder.build(make_snapshot(), "json")
        document = json.loads(report.content)

        assert report.media_type == JSON_MEDIA_TYPE
        assert report.filename == "Traceability-Report-O-100.json"
        assert document["issuer"]["name"] == "Sand Process Management Co."
        assert document["generated_at"] == GENERATED_AT.isoformat()
        assert document["delivery"]["order_number"] == "O-100"
        assert len(document["delivery"]["checkpoints"]) == 12
        assert "signature" not in document["delivery"]
        assert document["confirmation"]["signer_name"] == "Ana Perez"
        assert "signature_image" not in document["confirmation"]

    def test_json_without_signature(self, builder: TraceabilityReportBuilder) -> None:
        document = json.loads(builder.build_json(make_snapshot(signed=False)).content)

        assert document["confirmation"] == {"message": NO_SIGNATURE_TEXT}

    def test_unsupported_format(self, builder: TraceabilityReportBuilder) -> None:
        with pytest.raises(ValueError, match="Unsupported report format"):
            builder.build(make_snapshot(), "docx")

    def test_render_helper(self) -> None:
        report = render_traceability_report(make_snapshot(), Settings())

        assert report.content.startswith(b"%PDF")
