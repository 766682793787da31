"""
Parser combinators over a shared cursor.

Parsers are built bottom-up from regex leaves, then run with `parse()`.

See the `tarnish.general` module for ready-made parsers you can use as examples.

Defining parsers:
```
num = apply(literal(r"[0-9]+"), int)
plus_num = apply(sequence(literal(r"\\+"), num), lambda seq: seq.second)
total = concat(slurp(plus_num))     # "+1+2+3" -> 6
```

Writing a parser by hand (any callable with this shape composes):
```
def foo(si: Cursor) -> Result[int] | ParseFailure:
    with si() as c:
        if not (r := bar(si)):
            return c.propagate(r)   # fail
        return c.result(10)         # success
```

Using parsers:
```
value = parse(num, "123")           # raises ParseError on failure

cursor = Cursor()
for line in lines:
    value = parse(num, line, cursor=cursor)
```
"""

import tarnish.const as const
import tarnish.main
from tarnish.main import (
    ErrorKind,
    ParseFailure,
    ParseError,
    Result,
    Seq2,
    Left,
    Right,
    Either,
    Rejection,
    reject,
    Cursor,
    Savepoint,
    Checkpoint,
    Parser,
    literal,
    apply,
    sequence,
    alternative,
    attempt,
    until,
    until_any,
    slurp,
    concat,
    parse,
)
import tarnish.general as general

__version__ = "0.1.0"
