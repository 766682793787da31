"""Tests for the combinators."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from tarnish import (
    Cursor,
    ErrorKind,
    Left,
    ParseFailure,
    Result,
    Right,
    Seq2,
    alternative,
    apply,
    attempt,
    concat,
    literal,
    reject,
    sequence,
    slurp,
    until,
    until_any,
)


def constant(data: object):
    """A parser that consumes nothing and always outputs `data`."""
    def inner(si: Cursor) -> Result:
        return Result(data, (si.pos, si.pos))
    return inner


# ============================================================================
# APPLY
# ============================================================================


class TestApply:
    """Test the transform combinator."""

    def test_maps_output(self) -> None:
        si = Cursor("42")
        r = apply(literal("[0-9]+"), int)(si)

        assert r.data == 42
        assert r.pos == (0, 2)

    def test_propagates_failure(self) -> None:
        si = Cursor("x")
        inner = literal("[0-9]+")
        r = apply(inner, int)(si)

        assert not r
        assert r.msg == inner(Cursor("x")).msg
        assert si.pos == 0

    def test_does_not_call_func_on_failure(self) -> None:
        calls: list[str] = []
        apply(literal("a"), calls.append)(Cursor("b"))

        assert calls == []

    def test_rejection_fails_and_rolls_back(self) -> None:
        si = Cursor("abc")
        r = apply(literal("ab"), lambda s: reject("not today"))(si)

        assert not r
        assert isinstance(r, ParseFailure)
        assert r.kind is ErrorKind.UNEXPECTED_INPUT
        assert r.msg == "not today"
        assert si.pos == 0

    def test_falsy_output_is_not_rejection(self) -> None:
        r = apply(literal("0"), int)(Cursor("0"))

        assert r
        assert r.data == 0

    @given(text=st.text(alphabet="ab", max_size=10))
    def test_identity(self, text: str) -> None:
        """PROPERTY: apply(p, identity) behaves exactly like p."""
        parser = sequence(literal("a"), literal("b"))
        plain, mapped = Cursor(text), Cursor(text)
        r1 = parser(plain)
        r2 = apply(parser, lambda x: x)(mapped)

        assert bool(r1) == bool(r2)
        assert plain.pos == mapped.pos
        if r1:
            assert r1.data == r2.data
        else:
            assert (r1.pos, r1.msg) == (r2.pos, r2.msg)


# ============================================================================
# SEQUENCE
# ============================================================================


class TestSequence:
    """Test the sequence combinator."""

    def test_pairs_outputs(self) -> None:
        si = Cursor("ab")
        r = sequence(literal("a"), literal("b"))(si)

        assert r.data == Seq2("a", "b")
        assert r.data.first == "a"
        assert r.data.second == "b"
        assert si.pos == 2

    def test_first_fails(self) -> None:
        si = Cursor("xb")
        r = sequence(literal("a"), literal("b"))(si)

        assert not r
        assert si.pos == 0

    def test_second_fails_without_rollback(self) -> None:
        """The cursor stays advanced by the first parser."""
        si = Cursor("ac")
        r = sequence(literal("a"), literal("b"))(si)

        assert not r
        assert r.kind is ErrorKind.UNEXPECTED_INPUT
        assert si.pos == 1

    def test_attempt_rolls_back(self) -> None:
        si = Cursor("ac")
        r = attempt(sequence(literal("a"), literal("b")))(si)

        assert not r
        assert si.pos == 0

    def test_attempt_keeps_success(self) -> None:
        si = Cursor("abc")
        r = attempt(sequence(literal("a"), literal("b")))(si)

        assert r.data == Seq2("a", "b")
        assert si.pos == 2

    def test_nested_match(self) -> None:
        r = sequence(literal("a"), sequence(literal("b"), literal("c")))(Cursor("abc"))

        match r.data:
            case Seq2(a, Seq2(b, c)):
                assert (a, b, c) == ("a", "b", "c")
            case _:
                raise AssertionError(r.data)


# ============================================================================
# ALTERNATIVE
# ============================================================================


class TestAlternative:
    """Test the alternative combinator."""

    def test_left(self) -> None:
        si = Cursor("x")
        r = alternative(literal("x"), literal("y"))(si)

        assert r.data == Left("x")
        assert si.pos == 1

    def test_right(self) -> None:
        si = Cursor("y")
        r = alternative(literal("x"), literal("y"))(si)

        assert r.data == Right("y")
        assert r.data != Left("y")
        assert si.pos == 1

    def test_both_fail_propagates_second(self) -> None:
        si = Cursor("z")
        r = alternative(literal("x"), literal("y"))(si)

        assert not r
        assert r.msg == "Literal 'y' did not match."
        assert si.pos == 0

    def test_second_branch_starts_at_original_position(self) -> None:
        """A partially consumed first branch doesn't shift the second one."""
        si = Cursor("ac")
        r = alternative(sequence(literal("a"), literal("b")), literal("ac"))(si)

        assert r.data == Right("ac")
        assert si.pos == 2

    def test_both_fail_after_partial_consumption(self) -> None:
        si = Cursor("ad")
        r = alternative(literal("x"), sequence(literal("a"), literal("b")))(si)

        assert not r
        assert si.pos == 0

    def test_prefers_first(self) -> None:
        r = alternative(literal("a+"), literal("a"))(Cursor("aaa"))

        assert r.data == Left("aaa")


# ============================================================================
# UNTIL
# ============================================================================


class TestUntil:
    """Test bounded repetition."""

    def test_runs_to_end_without_delim(self) -> None:
        si = Cursor("abc")
        r = until(literal("[a-z]"))(si)

        assert r.data == ["a", "b", "c"]
        assert si.is_eof()

    def test_empty_input(self) -> None:
        r = until(literal("a"))(Cursor(""))

        assert r
        assert r.data == []

    def test_inner_failure_propagates(self) -> None:
        si = Cursor("aab")
        r = until(literal("a"))(si)

        assert not r
        assert si.pos == 2

    def test_stops_when_delim_equals_previous(self) -> None:
        """The stopping value isn't kept."""
        si = Cursor("abccd")
        r = until(literal("[a-z]"), literal("[a-z]"))(si)

        # a (delim b != a) -> keep a; c (delim c == c) -> stop
        assert r.data == ["a"]
        assert si.remaining() == "d"

    def test_mismatched_delim_stays_consumed(self) -> None:
        si = Cursor("12")
        r = until(literal("[0-9]"), literal("[0-9]"))(si)

        assert r.data == ["1"]
        assert si.is_eof()

    def test_failed_delim_is_ignored(self) -> None:
        si = Cursor("aaa")
        r = until(literal("a"), literal(";"))(si)

        assert r.data == ["a", "a", "a"]


class TestUntilAny:
    """Test repetition that stops on any delimiter match."""

    def test_stops_on_delimiter(self) -> None:
        si = Cursor("abc;de")
        r = until_any(literal("[a-z]"), literal(";"))(si)

        assert r.data == ["a", "b", "c"]
        assert si.remaining() == "de"

    def test_runs_to_end_without_delimiter(self) -> None:
        r = until_any(literal("[a-z]"), literal(";"))(Cursor("ab"))

        assert r.data == ["a", "b"]


# ============================================================================
# SLURP
# ============================================================================


class TestSlurp:
    """Test unbounded repetition."""

    def test_greedy(self) -> None:
        si = Cursor("aaab")
        r = slurp(literal("a"))(si)

        assert r.data == ["a", "a", "a"]
        assert si.pos == 3

    def test_empty_input_fails(self) -> None:
        r = slurp(literal("a"))(Cursor(""))

        assert not r
        assert r.msg == "Literal 'a' did not match."

    def test_first_failure_propagates(self) -> None:
        si = Cursor("b")
        r = slurp(literal("a"))(si)

        assert not r
        assert r.kind is ErrorKind.UNEXPECTED_INPUT
        assert si.pos == 0

    def test_stops_at_end_of_input(self) -> None:
        r = slurp(literal("a"))(Cursor("aa"))

        assert r.data == ["a", "a"]
        assert r.pos == (0, 2)

    def test_no_backtracking(self) -> None:
        """Greedy: nothing is given back for a following parser."""
        r = sequence(slurp(literal("a")), literal("a"))(Cursor("aaa"))

        assert not r

    @given(count=st.integers(min_value=1, max_value=20), tail=st.text(alphabet="bc", max_size=5))
    def test_counts(self, count: int, tail: str) -> None:
        si = Cursor("a" * count + tail)
        r = slurp(literal("a"))(si)

        assert len(r.data) == count
        assert si.pos == count


# ============================================================================
# CONCAT
# ============================================================================


class TestConcat:
    """Test fold-by-addition."""

    def test_sums_floats(self) -> None:
        r = concat(constant([2.0, 3.0, -1.0]))(Cursor(""))

        assert r.data == 4.0

    def test_empty_fails(self) -> None:
        r = concat(constant([]))(Cursor(""))

        assert not r
        assert r.kind is ErrorKind.UNEXPECTED_INPUT
        assert r.msg == "Empty sequence in concat."

    def test_single_element(self) -> None:
        assert concat(constant([7]))(Cursor("")).data == 7

    def test_strings(self) -> None:
        si = Cursor("abc!")
        r = concat(slurp(literal("[a-z]")))(si)

        assert r.data == "abc"
        assert r.pos == (0, 3)

    def test_propagates_failure(self) -> None:
        r = concat(slurp(literal("a")))(Cursor("b"))

        assert not r
        assert r.msg == "Literal 'a' did not match."

    def test_left_to_right(self) -> None:
        assert concat(constant([[1], [2], [3]]))(Cursor("")).data == [1, 2, 3]
