import pytest

from prospect_finsight.expressions import (
    UnknownVariableError,
    evaluate,
    evaluate_amount,
    evaluate_condition,
    names_in,
)

VARIABLES = {"net_margin": 0.08, "revenue": 1_000_000.0, "current_ratio": 1.2}


def test_arithmetic_expression() -> None:
    assert evaluate_amount("revenue * 0.05", VARIABLES) == pytest.approx(50_000)
    assert evaluate_amount("-(revenue - 400000) / 2", VARIABLES) == pytest.approx(-300_000)
    assert evaluate_amount("max(revenue - 2000000, 0)", VARIABLES) == 0


@pytest.mark.parametrize(
    "expr, expected",
    [
        ("net_margin < 0.10", True),
        ("net_margin >= 0.10", False),
        ("0 <= net_margin < 0.10", True),
        ("revenue > 1000000 and net_margin > 0.15", False),
        ("current_ratio < 1.5 or net_margin > 0.5", True),
        ("not current_ratio < 1.0", True),
        ("abs(-net_margin) == net_margin", True),
    ],
)
def test_conditions(expr: str, expected: bool) -> None:
    assert evaluate_condition(expr, VARIABLES) is expected


def test_unknown_variable_is_reported_separately() -> None:
    with pytest.raises(UnknownVariableError):
        evaluate("revenue_growth < -0.1", VARIABLES)


@pytest.mark.parametrize(
    "expr",
    [
        "__import__('os')",
        "revenue.real",
        "[revenue]",
        "'text'",
        "revenue if True else 0",
        "round(revenue)",
        "revenue +",
    ],
)
def test_unsupported_constructs_are_rejected(expr: str) -> None:
    with pytest.raises(ValueError):
        evaluate(expr, VARIABLES)


def test_division_by_zero_propagates() -> None:
    with pytest.raises(ZeroDivisionError):
        evaluate("revenue / 0", VARIABLES)


def test_names_in() -> None:
    assert names_in("max(revenue - liabilities, 0) > equity") == {
        "revenue",
        "liabilities",
        "equity",
    }
