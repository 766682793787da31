"""
The implementations of the main classes and the combinators.
"""

from __future__ import annotations
from typing import overload, Self, Literal, TypeVar, Generic, Final, Callable, Protocol
from types import TracebackType

from collections.abc import Sequence
import logging
import re
import enum


logger = logging.getLogger(__name__)

_T = TypeVar("_T")
_U = TypeVar("_U")
_DataT = TypeVar("_DataT")
_DataCovT = TypeVar("_DataCovT", covariant=True)
_FirstCovT = TypeVar("_FirstCovT", covariant=True)
_SecondCovT = TypeVar("_SecondCovT", covariant=True)



class ErrorKind(enum.Enum):
    INVALID_PARAMETER = "invalid parameter"
    """Misuse at construction time. (For example a malformed pattern given to `literal()`.)"""
    UNEXPECTED_INPUT = "unexpected input"
    """Every failure that happens while parsing."""

class ParseFailure:
    """
    When returned from a parser, indicates that it has failed. Can be converted into a `ParseError`.

    ```
    r = parser(si)
    if r:
        ... # `r` is a `Result` object
    else:
        ... # `r` is a `ParseFailure` object
    ```
    """

    def __init__(self, src: str, pos: int, msg: str | None = None, kind: ErrorKind = ErrorKind.UNEXPECTED_INPUT) -> None:
        """
        `src`: The string that was being parsed.
        `pos`: The position of the failure.
        `msg`: The reason for the failure.
        `kind`: Almost always `ErrorKind.UNEXPECTED_INPUT`.
        """
        self.src: Final[str] = src
        self.pos: Final[int] = pos
        self.msg: Final[str | None] = msg
        self.kind: Final[ErrorKind] = kind

    def error(self) -> ParseError:
        """Converts this to a ParseError."""
        return ParseError(self.src, self.pos, self.msg, self.kind)

    def __bool__(self) -> Literal[False]:
        return False

    def __repr__(self) -> str:
        return f"<ParseFailure {self.kind.name} at {self.pos}: {self.msg!r}>"

class ParseError(Exception):
    """
    The exception that's raised when a parse can't go on.

    Raised by `parse()` when the top-level parser fails, and by `literal()` when the pattern is malformed.
    """

    def __init__(self, src: str, pos: int, msg: str | None = None, kind: ErrorKind = ErrorKind.UNEXPECTED_INPUT) -> None:
        """
        `src`: The string that was being parsed. (Or the pattern, for `ErrorKind.INVALID_PARAMETER`.)
        `pos`: The position of the error.
        `msg`: The reason for the error.
        `kind`: What went wrong.
        """
        if msg is None:
            super().__init__()
        else:
            super().__init__(msg)
        self.src: str = src
        self.pos: int = pos
        self.msg: str | None = msg
        self.kind: ErrorKind = kind
        self.add_note(self._position_note())

    def line_col(self) -> tuple[int, int]:
        """1-based line and column of `pos`. Lines end at `\\n`."""
        pos = min(self.pos, len(self.src))
        line_start = self.src.rfind("\n", 0, pos) + 1
        return self.src.count("\n", 0, pos) + 1, pos - line_start + 1

    def _position_note(self) -> str:
        pos = min(self.pos, len(self.src))
        line, column = self.line_col()
        line_start = pos - column + 1
        line_end = self.src.find("\n", line_start)
        text = (self.src[line_start:] if line_end == -1 else self.src[line_start:line_end]).rstrip("\r")
        # at most 20 characters on either side of the caret
        left = max(0, column - 21)
        excerpt = text[left : column + 19]
        return f"At position {pos} (line {line}, column {column})\n{excerpt}\n{' ' * (column - 1 - left)}^"

class Result(Generic[_DataCovT]):
    """
    When returned from a parser, indicates that it has succeeded.

    ```
    r = parser(si)
    if r:
        output = r.data
    else:
        ... # failed
    ```
    """
    def __init__(self, data: _DataCovT, pos: tuple[int, int] | None = None) -> None:
        """`pos` is the range of the input the parser consumed, if known."""
        self.data: Final[_DataCovT] = data
        self.pos: Final[tuple[int, int] | None] = pos

    def __bool__(self) -> Literal[True]:
        return True

    def __repr__(self) -> str:
        if self.pos is None:
            return f"<Result {self.data!r}>"
        return f"<Result {self.pos[0]}..{self.pos[1]} {self.data!r}>"

class Seq2(Generic[_FirstCovT, _SecondCovT]):
    """The output of `sequence()`."""
    __match_args__ = ("first", "second")

    def __init__(self, first: _FirstCovT, second: _SecondCovT) -> None:
        self.first: Final[_FirstCovT] = first
        self.second: Final[_SecondCovT] = second

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Seq2):
            return self.first == other.first and self.second == other.second
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.first, self.second))

    def __repr__(self) -> str:
        return f"Seq2({self.first!r}, {self.second!r})"

class Left(Generic[_DataCovT]):
    """The output of `alternative()` when the first parser matched."""
    __match_args__ = ("value",)

    def __init__(self, value: _DataCovT) -> None:
        self.value: Final[_DataCovT] = value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Left):
            return self.value == other.value
        return NotImplemented

    def __hash__(self) -> int:
        return hash((Left, self.value))

    def __repr__(self) -> str:
        return f"Left({self.value!r})"

class Right(Generic[_DataCovT]):
    """The output of `alternative()` when the second parser matched."""
    __match_args__ = ("value",)

    def __init__(self, value: _DataCovT) -> None:
        self.value: Final[_DataCovT] = value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Right):
            return self.value == other.value
        return NotImplemented

    def __hash__(self) -> int:
        return hash((Right, self.value))

    def __repr__(self) -> str:
        return f"Right({self.value!r})"

Either = Left[_T] | Right[_U]

class Rejection:
    """
    Return this from an `apply()` callable to fail the parse instead of producing a value.

    Create using `reject()`.
    """
    def __init__(self, msg: str | None = None) -> None:
        self.msg: Final[str | None] = msg

    def __bool__(self) -> Literal[False]:
        return False

def reject(msg: str | None = None) -> Rejection:
    """
    ```
    def to_int(s: str) -> int | Rejection:
        try:
            return int(s)
        except ValueError as e:
            return reject(str(e))
    ```
    """
    return Rejection(msg)



class Cursor:
    """
    The string being parsed and the current position in it.

    One cursor must only be used by one parse at a time. The parsers themselves hold no state and can be shared.
    """
    def __init__(self, src: str = "", starting_pos: int = 0) -> None:
        self.src: str = src
        """The string that's being parsed."""
        self.pos: int = starting_pos
        """The current position."""

    def __len__(self) -> int:
        return len(self.src)

    def remaining(self) -> str:
        """The part of the input that hasn't been consumed yet."""
        return self.src[self.pos:]

    def advance(self, amount: int) -> None:
        """Moves the cursor forward. Not checked against the length of the input."""
        self.pos += amount

    def reset(self, src: str) -> None:
        """Replaces the input and moves back to the start, so the cursor can be reused for the next parse."""
        self.src = src
        self.pos = 0

    def has_chars(self, amount: int) -> bool:
        """Whether there are at least that many characters left."""
        return self.pos+amount <= len(self.src)

    def is_eof(self) -> bool:
        """Whether the end of the input has been reached. The opposite of `__bool__()`"""
        return self.pos >= len(self.src)

    def __bool__(self) -> bool:
        """Whether there are any characters left to parse. The opposite of `is_eof()`"""
        return self.pos < len(self.src)

    def peek(self, amount: int) -> str | None:
        """
        Retrieves the specified amount of characters without consuming.

        If there aren't enough characters, returns `None`.
        """
        if not self.has_chars(amount):
            return None
        return self.src[self.pos:self.pos+amount]

    def regex(self, pattern: re.Pattern[str]) -> re.Match[str] | None:
        """
        Attempts to match the compiled pattern at the start of the remaining input.

        Advances the position by the length of the match if it matched. Doesn't move otherwise.
        """
        m = pattern.match(self.remaining())
        if m is not None:
            self.advance(m.end())
        return m

    def checkpoint(self) -> Checkpoint:
        """
        Creates a `Checkpoint` at the current position.

        Same as `Cursor.__call__()`
        """
        return Checkpoint(self)

    def __call__(self) -> Checkpoint:
        """
        Creates a `Checkpoint` at the current position.

        Same as `Cursor.checkpoint()`
        """
        return Checkpoint(self)

    def save(self) -> Savepoint:
        """Saves the current position as a `Savepoint` and returns it."""
        return Savepoint(self)


class Savepoint:
    """
    A simplified and faster version of `Checkpoint`.

    Can only be reverted manually. (By calling the savepoint.)
    """
    def __init__(self, si: Cursor) -> None:
        self.pos: Final[int] = si.pos
        self.si: Final[Cursor] = si

    def __call__(self) -> None:
        """Same as `Savepoint.rollback()`."""
        self.si.pos = self.pos

    def rollback(self) -> None:
        """Same as `Savepoint.__call__()`."""
        self.si.pos = self.pos

    def get_range(self) -> tuple[int, int]:
        return (self.pos, self.si.pos)

    def get_string(self) -> str:
        return self.si.src[self.pos : self.si.pos]

    def guard(self, value: _T) -> _T:
        """
        If the parameter is falsy, rolls back.

        Returns the parameter as-is.

        ```
        return si.save().guard(parser(si))
        ```
        """
        if not value:
            self.rollback()
        return value


class Checkpoint:
    """
    Position guard for a block of parsing. Get one by calling the cursor:
    ```
    with si() as c:
        if not (r := foo(si)):
            return c.propagate(r)   # leaving the block puts the cursor back
        return c.result(r.data)     # keeps the cursor where `foo` left it
    ```

    The cursor is restored on exit unless the last thing done through the checkpoint was `result()` or `commit()`.
    An exception leaving the block always restores it.
    """
    def __init__(self, si: Cursor) -> None:
        self.pos: Final[int] = si.pos
        """Where the block started."""
        self.si: Final[Cursor] = si
        self.committed: bool = False

    def commit(self) -> None:
        """Keep the current position when the block exits."""
        self.committed = True

    def rollback(self) -> None:
        """Moves the cursor back to where the block started, right now."""
        self.si.pos = self.pos

    def get_range(self) -> tuple[int, int]:
        return (self.pos, self.si.pos)

    def get_string(self) -> str:
        return self.si.src[self.pos : self.si.pos]

    def result(self, data: _DataT) -> Result[_DataT]:
        """Success: commits, and wraps `data` with the range consumed since the block started."""
        self.committed = True
        return Result(data, self.get_range())

    def fail(self, msg: str | None = None, kind: ErrorKind = ErrorKind.UNEXPECTED_INPUT) -> ParseFailure:
        """Failure reported where the cursor is now."""
        self.committed = False
        return ParseFailure(self.si.src, self.si.pos, msg, kind)

    def fail_start(self, msg: str | None = None, kind: ErrorKind = ErrorKind.UNEXPECTED_INPUT) -> ParseFailure:
        """Failure reported where the block started."""
        self.committed = False
        return ParseFailure(self.si.src, self.pos, msg, kind)

    def propagate(self, failure: ParseFailure) -> ParseFailure:
        """Passes a sub-parser's failure on unchanged."""
        self.committed = False
        return failure

    def __enter__(self) -> Self:
        return self

    @overload
    def __exit__(self, exctype: None, exc: None, traceback: None) -> Literal[False]: ...
    @overload
    def __exit__(self, exctype: type[BaseException], exc: BaseException, traceback: TracebackType) -> Literal[False]: ...

    def __exit__(
        self,
        exctype: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc is not None or not self.committed:
            self.rollback()
        return False


class Parser(Protocol[_DataCovT]):
    """
    The shape of every parser: takes the cursor, returns a `Result` or a `ParseFailure`.

    Any function with this signature can be composed with the combinators below.
    """
    def __call__(self, si: Cursor) -> Result[_DataCovT] | ParseFailure: ...



def literal(pattern: str | re.Pattern[str], flags: int | re.RegexFlag = 0) -> Parser[str]:
    """
    Parser factory. Matches a regex at the cursor, outputs the matched text.

    The pattern is compiled once, here. It only has to match at the start of the remaining input, not all of it.
    On failure the cursor doesn't move.

    Raises a `ParseError` with `ErrorKind.INVALID_PARAMETER` if the pattern can't be compiled.
    """
    if isinstance(pattern, re.Pattern):
        if flags:
            raise ParseError(pattern.pattern, 0, "Flags can't be applied to an already compiled pattern.", ErrorKind.INVALID_PARAMETER)
        compiled = pattern
    else:
        try:
            compiled = re.compile(pattern, flags)
        except re.error as e:
            raise ParseError(pattern, e.pos or 0, f"Invalid pattern: {e.msg}", ErrorKind.INVALID_PARAMETER) from e
    logger.debug("Compiled literal pattern %r", compiled.pattern)

    def inner(si: Cursor) -> Result[str] | ParseFailure:
        start_pos = si.pos
        m = si.regex(compiled)
        if m is None:
            return ParseFailure(si.src, si.pos, f"Literal {compiled.pattern!r} did not match.")
        return Result(m.group(), (start_pos, si.pos))
    return inner

def apply(parser: Parser[_T], func: Callable[[_T], _U | Rejection]) -> Parser[_U]:
    """
    Parser factory. Passes the output of the parser through `func`.

    Failures of the parser are returned untouched. If `func` returns a `Rejection` (see `reject()`),
    the cursor is moved back to where this parser started and it fails.
    """
    def inner(si: Cursor) -> Result[_U] | ParseFailure:
        revert = si.save()
        if not (r := parser(si)):
            return r
        output = func(r.data)
        if isinstance(output, Rejection):
            revert()
            return ParseFailure(si.src, si.pos, output.msg)
        return Result(output, revert.get_range())
    return inner

def sequence(a: Parser[_T], b: Parser[_U]) -> Parser[Seq2[_T, _U]]:
    """
    Parser factory. Matches `a`, then `b`. Outputs both in a `Seq2`.

    Does NOT roll back when `b` fails: the cursor stays where `a` left it.
    Wrap it in `attempt()` if it has to be all-or-nothing.
    """
    def inner(si: Cursor) -> Result[Seq2[_T, _U]] | ParseFailure:
        start_pos = si.pos
        if not (ra := a(si)):
            return ra
        if not (rb := b(si)):
            return rb
        return Result(Seq2(ra.data, rb.data), (start_pos, si.pos))
    return inner

def alternative(a: Parser[_T], b: Parser[_U]) -> Parser[Either[_T, _U]]:
    """
    Parser factory. Matches `a`, or if that fails, `b` from the same starting position.

    Outputs `Left(...)` or `Right(...)` depending on which one matched.
    If both fail, returns the failure of `b` and the cursor is back at the starting position.
    """
    def inner(si: Cursor) -> Result[Either[_T, _U]] | ParseFailure:
        with si() as ckpt:
            if ra := a(si):
                return ckpt.result(Left(ra.data))
            ckpt.rollback()
            if rb := b(si):
                return ckpt.result(Right(rb.data))
            return ckpt.propagate(rb)
    return inner

def attempt(parser: Parser[_T]) -> Parser[_T]:
    """
    Parser factory. Same as the parser, except the cursor is always rolled back when it fails.
    """
    def inner(si: Cursor) -> Result[_T] | ParseFailure:
        return si.save().guard(parser(si))
    return inner

def until(parser: Parser[_T], delim: Parser[_T] | None = None) -> Parser[list[_T]]:
    """
    Parser factory. Repeatedly matches the parser until the input runs out. Outputs a list (possibly empty).

    If `delim` is given, it's tried after every match. The repetition stops (without keeping the last match)
    only when `delim` matches AND its output equals the output of the match right before it.
    When `delim` matches with a different output, what it consumed stays consumed.

    Fails if the parser fails.
    """
    def inner(si: Cursor) -> Result[list[_T]] | ParseFailure:
        start_pos = si.pos
        output: list[_T] = []
        while si:
            if not (r := parser(si)):
                return r
            if delim is not None and (d := delim(si)) and d.data == r.data:
                break
            output.append(r.data)
        return Result(output, (start_pos, si.pos))
    return inner

def until_any(parser: Parser[_T], delim: Parser[object]) -> Parser[list[_T]]:
    """
    Parser factory. Like `until()`, except the repetition stops as soon as `delim` matches, whatever it outputs.

    The match right before the delimiter is kept.
    """
    def inner(si: Cursor) -> Result[list[_T]] | ParseFailure:
        start_pos = si.pos
        output: list[_T] = []
        while si:
            if not (r := parser(si)):
                return r
            output.append(r.data)
            if delim(si):
                break
        return Result(output, (start_pos, si.pos))
    return inner

def slurp(parser: Parser[_T]) -> Parser[list[_T]]:
    """
    Parser factory. Greedily matches the parser until it fails or the input runs out. At least one match is required.

    If the first attempt fails, its failure is returned. Later failures just end the repetition.

    The parser must not be able to succeed without consuming input, otherwise this never stops.
    """
    def inner(si: Cursor) -> Result[list[_T]] | ParseFailure:
        start_pos = si.pos
        if not (r := parser(si)):
            return r
        output: list[_T] = [r.data]
        while si:
            if not (r := parser(si)):
                break
            output.append(r.data)
        return Result(output, (start_pos, si.pos))
    return inner

def concat(parser: Parser[Sequence[_T]]) -> Parser[_T]:
    """
    Parser factory. Adds up the elements the parser outputs, from left to right, starting from the first one.

    Fails if the parser outputs an empty sequence.
    """
    def inner(si: Cursor) -> Result[_T] | ParseFailure:
        revert = si.save()
        if not (r := parser(si)):
            return r
        if len(r.data) == 0:
            return ParseFailure(si.src, si.pos, "Empty sequence in concat.")
        total = r.data[0]
        for value in r.data[1:]:
            total = total + value  # type: ignore[operator]
        return Result(total, revert.get_range())
    return inner



def parse(parser: Parser[_T], text: str, *, cursor: Cursor | None = None, consume_all: bool = False) -> _T:
    """
    Runs the parser over the text and returns its output.

    `cursor`: A cursor to reuse. It's reset to the start of `text`.
    `consume_all`: Fail if the parser leaves input behind. By default matching a prefix of the text is enough.

    Raises a `ParseError` on failure.
    """
    if cursor is None:
        cursor = Cursor(text)
    else:
        cursor.reset(text)
    logger.debug("Parsing %d characters", len(text))
    if not (r := parser(cursor)):
        raise r.error()
    if consume_all and cursor:
        raise ParseError(cursor.src, cursor.pos, "Unexpected trailing input.")
    return r.data
