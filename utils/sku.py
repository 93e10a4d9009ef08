"""SKU generation utility.

Format: TYPE-YYMMDD-RRRR, where TYPE is the first three characters of the
product category, YYMMDD is today's UTC date, and RRRR is a random number
in 1000-9999.  Uniqueness is not guaranteed; callers persisting SKUs must
retry on collision.

SKU_PATTERN does not restrict the TYPE segment to three capital letters.
Categories are taken verbatim, so TYPE may be empty, shorter than three
characters, contain digits, punctuation or a "-", or grow when upper-casing
expands a character (``"ß"`` becomes ``"SS"``).  Only the trailing date and
random segments are checked, and parse_sku splits on those.
"""

from __future__ import annotations

import random
import re
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import NamedTuple

Clock = Callable[[], datetime]
RandInt = Callable[[int, int], int]

TYPE_CODE_LENGTH = 3
RANDOM_MIN = 1000
RANDOM_MAX = 9999

SKU_PATTERN = re.compile(r"^(?P<type>.*)-(?P<date>\d{6})-(?P<rand>\d{4})$")


class SkuParts(NamedTuple):
    """The three segments of a generated SKU."""

    type_code: str
    date_code: date
    random_code: int


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _date_code(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).strftime("%y%m%d")


def generate_sku(
    type: str,  # noqa: A002
    *,
    clock: Clock | None = None,
    randint: RandInt | None = None,
) -> str:
    """Generate a SKU from a product category or type label.

    *clock* returns the current time (naive values are treated as UTC) and
    *randint* draws an integer from an inclusive range.  Both default to the
    real clock and the module-level ``random`` source.
    """
    now = (clock or _utc_now)()
    draw = randint or random.randint

    type_code = type.strip()[:TYPE_CODE_LENGTH].upper()
    random_code = draw(RANDOM_MIN, RANDOM_MAX)
    return f"{type_code}-{_date_code(now)}-{random_code}"


def parse_sku(sku: str) -> SkuParts:
    """Split a generated SKU into its type, date and random segments.

    Raises ValueError if *sku* is not in TYPE-YYMMDD-RRRR form.
    """
    match = SKU_PATTERN.match(sku)
    if match is None:
        msg = f"Not a generated SKU: {sku!r}"
        raise ValueError(msg)
    random_code = int(match["rand"])
    if not RANDOM_MIN <= random_code <= RANDOM_MAX:
        msg = f"Random segment out of range in SKU: {sku!r}"
        raise ValueError(msg)
    try:
        date_code = datetime.strptime(match["date"], "%y%m%d").date()
    except ValueError:
        msg = f"Invalid date segment in SKU: {sku!r}"
        raise ValueError(msg) from None
    return SkuParts(match["type"], date_code, random_code)


def is_valid_sku(value: str | None) -> bool:
    """Return True if *value* looks like a generated SKU."""
    if not value:
        return False
    try:
        parse_sku(value)
    except ValueError:
        return False
    return True
