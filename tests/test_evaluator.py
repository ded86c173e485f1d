import sys, pathlib
sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))

import math

import pytest

from evaluator import (
    AngleMode,
    BinaryOp,
    DomainError,
    ErrorKind,
    EvalEnvironment,
    EvalResult,
    ExpressionSyntaxError,
    FunctionCall,
    MAX_NESTING_DEPTH,
    Number,
    UnaryOp,
    evaluate,
    factorial,
    parse,
    power,
    tokenize,
)
from notation import normalize

DEG = EvalEnvironment(angle_mode=AngleMode.DEGREES)
RAD = EvalEnvironment(angle_mode=AngleMode.RADIANS)


def calc(raw, env=DEG):
    return evaluate(normalize(raw), env)


def test_basic_arithmetic():
    assert calc("2×3").value == 6
    assert calc("8÷4").value == 2
    assert calc("1+2*3").value == 7
    assert calc("(1+2)*3").value == 9


def test_operand_order_preserved():
    assert evaluate("5-2").value == 3
    assert evaluate("8/2").value == 4
    assert evaluate("10-4-3").value == 3      # left associative
    assert evaluate("64/4/2").value == 8


def test_power_is_right_associative():
    assert calc("2^3^2").value == 512
    assert evaluate("2**3**2").value == 512


def test_unary_minus_binds_looser_than_power():
    assert calc("-2^2").value == -4
    assert calc("2^-1").value == 0.5
    assert calc("3*-2").value == -6


def test_double_minus_at_start_parses():
    assert calc("--5").value == 5
    assert calc("7--2").value == 9


def test_factorial():
    assert calc("5!").value == 120
    assert calc("0!").value == 1
    assert calc("1!").value == 1
    assert calc("3!+1").value == 7


def test_factorial_of_group_is_syntax_error():
    result = calc("(2+3)!")
    assert not result.ok
    assert result.error == ErrorKind.SYNTAX


def test_factorial_domain():
    assert calc("3.5!").error == ErrorKind.DOMAIN
    assert evaluate("factorial(-3)").error == ErrorKind.DOMAIN
    with pytest.raises(DomainError):
        factorial(2.5)


def test_factorial_overflow_is_indeterminate():
    result = calc("200!")
    assert result.error == ErrorKind.NUMERIC_INDETERMINATE
    assert result.value == math.inf


def test_trig_degrees_and_radians():
    assert calc("sin(90)", DEG).value == pytest.approx(1.0, abs=1e-9)
    assert calc("sin(π/2)", RAD).value == pytest.approx(1.0, abs=1e-9)
    assert calc("cos(60)", DEG).value == pytest.approx(0.5, abs=1e-9)
    assert calc("tan(45)", DEG).value == pytest.approx(1.0, abs=1e-9)


def test_inverse_trig_modes():
    assert calc("asin(1)", DEG).value == pytest.approx(90.0, abs=1e-9)
    assert calc("asin(1)", RAD).value == pytest.approx(math.pi / 2, abs=1e-9)
    assert calc("acos(0)", DEG).value == pytest.approx(90.0, abs=1e-9)
    assert calc("atan(1)", RAD).value == pytest.approx(math.pi / 4, abs=1e-9)


def test_angle_mode_accepted_directly():
    assert evaluate("asin(1)", AngleMode.RADIANS).value == pytest.approx(math.pi / 2)


def test_logs_and_sqrt():
    assert calc("log(1000)").value == pytest.approx(3.0)
    assert calc("ln(1)").value == 0
    assert calc("sqrt(16)").value == 4


def test_implicit_multiplication():
    assert calc("2(3+4)").value == 14
    assert calc("2π").value == pytest.approx(6.283185307, abs=1e-9)


def test_division_by_zero_is_indeterminate():
    result = evaluate("1/0")
    assert result.error == ErrorKind.NUMERIC_INDETERMINATE
    assert result.value == math.inf
    assert evaluate("-1/0").value == -math.inf
    assert math.isnan(evaluate("0/0").value)


def test_non_finite_results_are_indeterminate():
    for expr in ["sqrt(-1)", "asin(2)", "log(0)", "ln(-1)", "(-8)^(1/3)", "10^400", "0^-1"]:
        result = calc(expr)
        assert result.error == ErrorKind.NUMERIC_INDETERMINATE, expr


@pytest.mark.parametrize("expr", [
    "",
    "(1+2",
    "1+2)",
    "sin()",
    "sin(1,2)",
    "foo(2)",
    "2 3",
    "1+",
    "2$3",
    "sin 30",
])
def test_syntax_errors(expr):
    result = evaluate(expr)
    assert not result.ok
    assert result.error == ErrorKind.SYNTAX
    assert result.value is None


def test_unwrap_raises_matching_error():
    with pytest.raises(ExpressionSyntaxError):
        evaluate("(1").unwrap()
    assert evaluate("2+2").unwrap() == 4


def test_nesting_depth_limit():
    shallow = "(" * 50 + "1" + ")" * 50
    deep = "(" * (MAX_NESTING_DEPTH + 10) + "1" + ")" * (MAX_NESTING_DEPTH + 10)
    assert evaluate(shallow).value == 1
    assert evaluate(deep).error == ErrorKind.SYNTAX


def test_very_long_flat_expression_evaluates():
    # No nesting here, so only the length of the chain grows
    result = evaluate("+".join(["1"] * 5000))
    assert result.ok
    assert result.value == 5000
    assert evaluate("-".join(["1"] * 3000)).value == -2998


@pytest.mark.parametrize("text", ["2²", "①+1", "٣", "é", "2\u00b3!", "sin(٩٠)", "\x00", "1e", "1e+"])
def test_unusual_characters_return_a_result(text):
    for candidate in (text, normalize(text)):
        result = evaluate(candidate)
        assert isinstance(result, EvalResult)
        assert result.error == ErrorKind.SYNTAX


def test_exponent_literals():
    assert evaluate("1e+20").value == 1e20
    assert evaluate("2.5e3").value == 2500
    assert evaluate("1e-3*1000").value == pytest.approx(1.0)
    assert calc("1e+20+1").value == 1e20 + 1


def test_negative_zero_to_odd_negative_power():
    assert power(-0.0, -1) == -math.inf
    assert power(0.0, -1) == math.inf
    assert power(-0.0, -2) == math.inf
    assert calc("(-0)^-1").value == -math.inf


def test_headline_example_hits_factorial_of_group_limitation():
    # "!" after a call is the documented factorial-of-group limitation
    assert calc("2×π+sin(30)!").error == ErrorKind.SYNTAX
    assert calc("2×π+sin(30)").value == pytest.approx(2 * math.pi + 0.5)
    assert calc("2×π+3!").value == pytest.approx(2 * math.pi + 6)


def test_tree_shape():
    assert parse("5-2") == BinaryOp('-', Number(5.0), Number(2.0))
    assert parse("-2^2") == UnaryOp('-', BinaryOp('^', Number(2.0), Number(2.0)))
    assert parse("sqrt(4)") == FunctionCall('sqrt', Number(4.0))


def test_tokenize_positions():
    tokens = tokenize("12.5+pi")
    assert [t.value for t in tokens] == [12.5, '+', 'pi']
    assert tokens[2].position == 5
