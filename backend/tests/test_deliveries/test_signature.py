"""
Tests for proof-of-delivery signature validation.
"""

from datetime import datetime, timezone

import pytest

from sandtrack.core.exceptions import ValidationFailedError
from sandtrack.services.deliveries.checkpoints import Location
from sandtrack.services.deliveries.signature import (
    Signature,
    SignatureCapture,
    build_signature,
)

CAPTURED_AT = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
WELL = Location(lat=-38.6, lng=-69.1)
IMAGE = "data:image/png;base64,iVBORw0KGgo="


def test_build_signature_trims_names() -> None:
    signature = build_signature(
        SignatureCapture(signer_name="  Ana Perez ", signer_title=" Company Man", signature_image=IMAGE),
        captured_at=CAPTURED_AT,
        location=WELL,
    )

    assert isinstance(signature, Signature)
    assert signature.signer_name == "Ana Perez"
    assert signature.signer_title == "Company Man"
    assert signature.timestamp == CAPTURED_AT
    assert signature.location == WELL
    assert signature.photo is None


@pytest.mark.parametrize(
    "name,title,missing",
    [
        ("", "Company Man", ["signer_name"]),
        ("Ana Perez", "   ", ["signer_title"]),
        (" ", "", ["signer_name", "signer_title"]),
    ],
)
def test_name_and_title_are_required(name: str, title: str, missing: list[str]) -> None:
    with pytest.raises(ValidationFailedError, match="Signer name and title are required") as exc_info:
        build_signature(
            SignatureCapture(signer_name=name, signer_title=title, signature_image=IMAGE),
            captured_at=CAPTURED_AT,
            location=WELL,
        )

    assert exc_info.value.context["missing_fields"] == missing


def test_name_check_runs_before_image_check() -> None:
    with pytest.raises(ValidationFailedError, match="Signer name and title"):
        build_signature(SignatureCapture(), captured_at=CAPTURED_AT, location=WELL)


def test_signature_image_is_required() -> None:
    with pytest.raises(ValidationFailedError, match="signature image is required"):
        build_signature(
            SignatureCapture(signer_name="Ana Perez", signer_title="Company Man", signature_image=" "),
            captured_at=CAPTURED_AT,
            location=WELL,
        )


def test_photo_is_kept() -> None:
    signature = build_signature(
        SignatureCapture(
            signer_name="Ana Perez",
            signer_title="Company Man",
            signature_image=IMAGE,
            photo="data:image/jpeg;base64,/9j/4AAQ",
        ),
        captured_at=CAPTURED_AT,
        location=WELL,
    )

    assert signature.photo == "data:image/jpeg;base64,/9j/4AAQ"


def test_signature_survives_json_storage() -> None:
    signature = build_signature(
        SignatureCapture(signer_name="Ana Perez", signer_title="Company Man", signature_image=IMAGE),
        captured_at=CAPTURED_AT,
        location=WELL,
    )

    stored = signature.model_dump(mode="json")

    assert stored["location"] == {"lat": -38.6, "lng": -69.1}
    assert Signature.model_validate(stored) == signature
