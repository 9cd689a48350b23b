"""Evidence validity windows.

Test evidence expires after a retention period that depends on where it
came from. The window is advisory metadata for decay checks; the gate
never enforces it.
"""

from datetime import date, timedelta
from typing import Optional

from quint.types import EvidenceType

INTERNAL_RETENTION_DAYS = 90
EXTERNAL_RETENTION_DAYS = 60
DEFAULT_RETENTION_DAYS = INTERNAL_RETENTION_DAYS

DATE_FORMAT = "%Y-%m-%d"


def retention_days(test_type: Optional[str]) -> int:
    if test_type == EvidenceType.EXTERNAL.value:
        return EXTERNAL_RETENTION_DAYS
    return DEFAULT_RETENTION_DAYS


def compute_valid_until(test_type: Optional[str], today: Optional[date] = None) -> str:
    """Expiry date for test evidence, formatted ``YYYY-MM-DD``.

    ``external`` evidence lasts 60 days; anything else, including an empty
    or unrecognized type, gets the 90-day default.
    """
    start = today or date.today()
    return (start + timedelta(days=retention_days(test_type))).strftime(DATE_FORMAT)


def is_expired(valid_until: Optional[str], today: Optional[date] = None) -> bool:
    """True when a ``YYYY-MM-DD`` window ended before ``today``.

    Evidence without a window never expires.
    """
    if not valid_until:
        return False
    return valid_until < (today or date.today()).strftime(DATE_FORMAT)
