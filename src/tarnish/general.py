from __future__ import annotations

import math

import tarnish.const as const
from tarnish.main import (
    Parser,
    Rejection,
    Either,
    Seq2,
    reject,
    literal,
    apply,
    sequence,
    alternative,
    attempt,
    slurp,
    concat,
)

# leaves

def identifier() -> Parser[str]:
    """Output: the name"""
    return literal(const.IDENTIFIER)

def _to_int(digits: str) -> int | Rejection:
    try:
        return int(digits)
    except ValueError as e:
        # longer than sys.get_int_max_str_digits()
        return reject(str(e))

def integer() -> Parser[int]:
    """Output: `int`"""
    return apply(literal(const.INTEGER), _to_int)

def _to_float(digits: str) -> float | Rejection:
    value = float(digits)
    if math.isinf(value):
        return reject(f"Number out of range: {digits[:20]}...")
    return value

def number() -> Parser[float]:
    """
    Output: `float`

    Unsigned, with an optional fraction. (`12`, `3.25`)
    """
    return apply(literal(const.NUMBER), _to_float)

# signed sums

def _pick(either: Either[float, float]) -> float:
    return either.value

def _sum(seq: Seq2[float, float]) -> float:
    return seq.first + seq.second

def signed_terms() -> Parser[float]:
    """
    Output: `float`

    One or more `+number` / `-number` terms, added up. (`+4-2` -> `2.0`)
    """
    num = number()
    # a sign without a number after it is given back
    add_num = attempt(apply(sequence(literal(const.PLUS), num), lambda seq: seq.second))
    sub_num = attempt(apply(sequence(literal(const.MINUS), num), lambda seq: -seq.second))
    # a run of additions or a run of subtractions
    run = apply(alternative(slurp(add_num), slurp(sub_num)), _pick)
    return concat(slurp(concat(run)))

def calculator() -> Parser[float]:
    """
    Output: `float`

    A number followed by any amount of signed terms. (`3+4-2` -> `5.0`)

    Only needs to match a prefix of the input. Use `parse(..., consume_all=True)` to reject leftovers.
    """
    num = number()
    expr = apply(sequence(num, signed_terms()), _sum)
    # `sequence` doesn't roll back, `alternative` does
    return apply(alternative(expr, num), _pick)
