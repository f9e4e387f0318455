import math

import pytest

from prospect_finsight.parsing import parse_numeric, parse_numeric_checked


@pytest.mark.parametrize(
    "raw, expected",
    [
        (1234, 1234.0),
        (12.5, 12.5),
        ("1234.56", 1234.56),
        ("$1,234.50", 1234.5),
        (" 12 000 ", 12000.0),
        ("-250", -250.0),
        ("(3,400)", -3400.0),
        ("€ 99.90", 99.9),
    ],
)
def test_parse_numeric_strips_formatting(raw, expected: float) -> None:
    """Currency symbols, separators, whitespace and parentheses are handled."""
    assert parse_numeric(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "--", float("nan"), float("inf")])
def test_parse_numeric_falls_back_to_zero(raw) -> None:
    """Anything that does not yield a finite number becomes 0.0."""
    value = parse_numeric(raw)
    assert value == 0.0
    assert math.isfinite(value)


def test_parse_numeric_checked_distinguishes_missing_and_malformed() -> None:
    """A coerced zero must be distinguishable from a true zero."""
    assert parse_numeric_checked(0).status == "ok"
    assert parse_numeric_checked("0.00").status == "ok"
    assert parse_numeric_checked(None).status == "missing"
    assert parse_numeric_checked("  ").status == "missing"
    assert parse_numeric_checked("n/a").status == "malformed"
    assert parse_numeric_checked(float("nan")).status == "malformed"
    assert parse_numeric_checked([1, 2]).status == "malformed"


def test_parse_numeric_checked_rejects_booleans() -> None:
    """True is an int subclass but never an amount."""
    parsed = parse_numeric_checked(True)
    assert parsed.status == "malformed"
    assert parsed.value == 0.0
    assert not parsed.ok


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.5E+06", 1_500_000.0),
        ("2e3", 2000.0),
        ("-4.2E-01", -0.42),
        ("(1.5E+06)", -1_500_000.0),
    ],
)
def test_parse_numeric_reads_scientific_notation(raw: str, expected: float) -> None:
    """Excel exports write large amounts in exponent form."""
    parsed = parse_numeric_checked(raw)
    assert parsed.status == "ok"
    assert parsed.value == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["$1.5E+06", "1.5E+06 USD", "Infinity"])
def test_parse_numeric_flags_formatted_exponents(raw: str) -> None:
    """Stripping formatting from an exponent would change the magnitude."""
    assert parse_numeric_checked(raw).status == "malformed"
