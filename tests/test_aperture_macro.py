"""Tests for aperture macro expressions and bodies."""

import pytest

from aperture_macro import (
    BinaryOp, MacroComment, MacroPrimitive, MacroVariable, Number, UnaryOp, Variable,
    evaluate_macro, parse_expression, parse_macro_body
)
from mutcap_exceptions import GerberParseError


@pytest.mark.parametrize('text, expected', [
    ('1.5', 1.5),
    ('.25', 0.25),
    ('2+3x4', 14.0),
    ('(2+3)x4', 20.0),
    ('2X3', 6.0),
    ('10/4', 2.5),
    ('8-2-1', 5.0),
    ('-3+1', -2.0),
    ('--2', 2.0),
    ('$1x$2', 6.0),
    ('$1/2+$9', 1.0),
])
def test_expression_values(text, expected):
    assert parse_expression(text).evaluate({1: 2.0, 2: 3.0}) == pytest.approx(expected)


def test_expression_tree():
    assert parse_expression('$1+2x3') == BinaryOp('+', Variable(1), BinaryOp('x', Number(2.0), Number(3.0)))
    assert parse_expression('-$2') == UnaryOp('-', Variable(2))


@pytest.mark.parametrize('text', ['', '1+', '(1', '1)', '2 3', '$x', 'a', '1..2'])
def test_malformed_expressions(text):
    with pytest.raises(GerberParseError):
        parse_expression(text)


def test_body_statements():
    body = parse_macro_body('0 Rectangle with rounded corners*$4=$1x2*21,1,$1,$2,0,0,0*')
    assert body == (
        MacroComment('Rectangle with rounded corners'),
        MacroVariable(4, BinaryOp('x', Variable(1), Number(2.0))),
        MacroPrimitive(21, (Number(1.0), Variable(1), Variable(2), Number(0.0),
                            Number(0.0), Number(0.0))),
    )


def test_body_with_unknown_statement():
    assert parse_macro_body('1,1,0.5,0,0*hello') is None


def test_variables_assigned_in_order():
    body = parse_macro_body('$2=$1x2*$3=$2+1*1,1,$3,0,0')
    [prim] = evaluate_macro(body, [1.5])
    assert prim.code == 1
    assert prim.values == (1.0, 4.0, 0.0, 0.0)


def test_unbound_variable_is_zero():
    [prim] = evaluate_macro(parse_macro_body('1,1,$5,0,0'), [])
    assert prim.values == (1.0, 0.0, 0.0, 0.0)
