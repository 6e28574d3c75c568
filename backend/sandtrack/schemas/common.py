"""Shared schema helpers."""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator

from sandtrack.core.clock import ensure_utc


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value)


# Datetime normalized to aware UTC; SQLite returns naive values
UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]
