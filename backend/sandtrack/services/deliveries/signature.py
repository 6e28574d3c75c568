"""Proof-of-delivery signature capture and validation."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from sandtrack.core.exceptions import ValidationFailedError
from sandtrack.services.deliveries.checkpoints import Location


class SignatureCapture(BaseModel):
    """
    Raw signature input as captured at the well site.

    Fields are unconstrained here; ``build_signature`` validates them in a
    fixed order and raises on the first failure.
    """

    signer_name: str = ""
    signer_title: str = ""
    signature_image: str = ""
    photo: Optional[str] = None


class Signature(BaseModel):
    """Validated proof of delivery stored on the delivery."""

    model_config = ConfigDict(frozen=True)

    signer_name: str
    signer_title: str
    timestamp: datetime
    location: Location
    signature_image: str
    photo: Optional[str] = None


def build_signature(
    capture: SignatureCapture,
    captured_at: datetime,
    location: Location,
) -> Signature:
    """
    Validate a capture and turn it into a Signature.

    Checks run in order and the first failure is raised: signer name and
    title must be non-blank, then the signature image must be present.

    Raises:
        ValidationFailedError: If a mandatory field is blank
    """
    signer_name = capture.signer_name.strip()
    signer_title = capture.signer_title.strip()

    if not signer_name or not signer_title:
        missing = [
            field
            for field, value in (("signer_name", signer_name), ("signer_title", signer_title))
            if not value
        ]
        raise ValidationFailedError(
            "Signer name and title are required",
            missing_fields=missing,
        )

    if not capture.signature_image.strip():
        raise ValidationFailedError(
            "A signature image is required",
            missing_fields=["signature_image"],
        )

    return Signature(
        signer_name=signer_name,
        signer_title=signer_title,
        timestamp=captured_at,
        location=location,
        signature_image=capture.signature_image,
        photo=capture.photo or None,
    )
