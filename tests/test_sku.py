"""Tests for utils.sku."""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from tests.conftest import SequenceRandInt, fixed_clock
from utils.sku import (
    RANDOM_MAX,
    RANDOM_MIN,
    generate_sku,
    is_valid_sku,
    parse_sku,
)

SKU_FORMAT = re.compile(r"^[A-Z]{0,3}-\d{6}-\d{4}$")


def _const(value: int):
    return lambda low, high: value


class TestGenerateSku:
    def test_exact_output_with_injected_clock_and_random(self) -> None:
        assert generate_sku("electronics", clock=fixed_clock, randint=_const(4821)) == "ELE-240307-4821"

    def test_random_drawn_from_inclusive_range(self) -> None:
        randint = SequenceRandInt(1000)
        generate_sku("toys", clock=fixed_clock, randint=randint)
        assert randint.calls == [(1000, 9999)]

    def test_trims_before_truncating(self) -> None:
        assert generate_sku("  tv  ", clock=fixed_clock, randint=_const(1000)) == "TV-240307-1000"

    def test_short_type_not_padded(self) -> None:
        assert generate_sku("a", clock=fixed_clock, randint=_const(9999)) == "A-240307-9999"

    def test_empty_type_gives_leading_separator(self) -> None:
        assert generate_sku("", clock=fixed_clock, randint=_const(1234)) == "-240307-1234"

    def test_whitespace_only_type(self) -> None:
        assert generate_sku(" \t\n ", clock=fixed_clock, randint=_const(1234)) == "-240307-1234"

    def test_upper_cases_mixed_case(self) -> None:
        assert generate_sku("gRoCeRy", clock=fixed_clock, randint=_const(1234)).startswith("GRO-")

    def test_truncates_by_character_not_byte(self) -> None:
        sku = generate_sku("çiçek", clock=fixed_clock, randint=_const(1234))
        assert sku == "ÇIÇ-240307-1234"

    def test_date_segment_uses_utc(self) -> None:
        # 01:00 on the 8th in UTC+3 is still the 7th in UTC
        istanbul = timezone(timedelta(hours=3))
        moment = datetime(2024, 3, 8, 1, 0, tzinfo=istanbul)
        sku = generate_sku("food", clock=lambda: moment, randint=_const(1234))
        assert sku == "FOO-240307-1234"

    def test_naive_clock_treated_as_utc(self) -> None:
        sku = generate_sku("food", clock=lambda: datetime(2031, 12, 1, 23, 59), randint=_const(1234))
        assert sku == "FOO-311201-1234"

    def test_two_digit_year_zero_padded(self) -> None:
        sku = generate_sku("food", clock=lambda: datetime(2005, 1, 2, tzinfo=UTC), randint=_const(1234))
        assert sku == "FOO-050102-1234"

    def test_default_clock_reflects_now(self) -> None:
        before = datetime.now(UTC)
        sku = generate_sku("electronics")
        after = datetime.now(UTC)
        assert sku.split("-")[1] in {before.strftime("%y%m%d"), after.strftime("%y%m%d")}

    def test_matches_format(self) -> None:
        for label in ("electronics", "tv", "x", "", "   spaces   ", "Books & Media"):
            assert SKU_FORMAT.match(generate_sku(label)), label

    def test_random_segment_bounds(self) -> None:
        values = {int(generate_sku("bulk").split("-")[-1]) for _ in range(2000)}
        assert min(values) >= RANDOM_MIN
        assert max(values) <= RANDOM_MAX

    def test_not_idempotent(self) -> None:
        results = {generate_sku("electronics") for _ in range(50)}
        assert len(results) > 1

    def test_clock_failure_propagates(self) -> None:
        def broken_clock() -> datetime:
            raise OSError("clock unavailable")

        with pytest.raises(OSError, match="clock unavailable"):
            generate_sku("electronics", clock=broken_clock)


class TestParseSku:
    def test_round_trip(self) -> None:
        parts = parse_sku("ELE-240307-4821")
        assert parts.type_code == "ELE"
        assert parts.date_code == date(2024, 3, 7)
        assert parts.random_code == 4821

    def test_empty_type_code(self) -> None:
        assert parse_sku("-240307-1000").type_code == ""

    def test_verbatim_type_codes_round_trip(self) -> None:
        for category in ("a-b", "ß", "4k tv"):
            sku = generate_sku(category, clock=fixed_clock, randint=_const(1234))
            assert parse_sku(sku).type_code == sku.rsplit("-", 2)[0]
        assert parse_sku("A-B-240307-1234").type_code == "A-B"

    def test_rejects_wrong_shape(self) -> None:
        with pytest.raises(ValueError, match="Not a generated SKU"):
            parse_sku("TREK-VERVE-3")

    def test_rejects_invalid_date(self) -> None:
        with pytest.raises(ValueError, match="Invalid date"):
            parse_sku("ELE-241399-1234")

    def test_rejects_random_below_range(self) -> None:
        with pytest.raises(ValueError, match="out of range"):
            parse_sku("ELE-240307-0999")


class TestIsValidSku:
    def test_valid(self) -> None:
        assert is_valid_sku("TOY-240307-5678")

    def test_invalid(self) -> None:
        assert not is_valid_sku("hello")
        assert not is_valid_sku("")
        assert not is_valid_sku(None)
