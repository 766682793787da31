"""
Patterns used by the parsers in `tarnish.general`.
"""

from __future__ import annotations
from typing import Final

INTEGER: Final[str] = r"[0-9]+"
NUMBER: Final[str] = r"[0-9]+(?:\.[0-9]+)?"
IDENTIFIER: Final[str] = r"[a-zA-Z_][a-zA-Z0-9_]*"
PLUS: Final[str] = r"\+"
MINUS: Final[str] = r"-"
