# File: schemarules/utils.py
"""
SchemaRules - Utility Functions & Helpers
==========================================
String helpers used by the naming rules and a small profiling timer.

- String conversions are decorated with ``@lru_cache(maxsize=None)``; a
  validation run asks about the same table and column names many times.
- Singular/plural handling is a naive English inflector covering the
  suffixes and irregular nouns that show up in database schemas.
- No external dependencies beyond the Python standard library.
"""

from __future__ import annotations

import functools
import logging
import re
import time
from typing import Dict, FrozenSet, List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")

SNAKE_CASE_RE: re.Pattern[str] = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$")

# SQL keywords that make poor identifiers even where the dialect allows quoting
SQL_RESERVED_WORDS: FrozenSet[str] = frozenset(
    {
        "select", "insert", "update", "delete", "drop", "create", "alter",
        "table", "column", "index", "from", "where", "join", "inner",
        "outer", "left", "right", "on", "and", "or", "not", "null",
        "true", "false", "in", "between", "like", "is", "as", "order",
        "by", "group", "having", "limit", "offset", "union", "all",
        "distinct", "case", "when", "then", "else", "end", "exists",
        "primary", "foreign", "key", "references", "constraint", "check",
        "default", "unique", "cascade", "set", "values", "into",
        "grant", "revoke", "begin", "commit", "rollback", "transaction",
        "user", "role", "schema", "database", "trigger", "procedure",
        "function", "view", "sequence", "type", "enum", "domain",
        "return", "returns", "declare", "execute", "fetch", "cursor",
        "open", "close", "deallocate", "prepare", "with", "recursive",
    }
)

# singular -> plural
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
    "spectrum": "spectra",
    "taxon": "taxa",
    "criterion": "criteria",
    "phenomenon": "phenomena",
}

# plural -> singular
_IRREGULAR_SINGULARS: Dict[str, str] = {
    plural: singular for singular, plural in _IRREGULAR_PLURALS.items()
}


def _match_case(template: str, word: str) -> str:
    if template[:1].isupper():
        return word[0].upper() + word[1:]
    return word


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("UserProfile")
        'user_profile'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("already_snake")
        'already_snake'

    First call: O(n) where n = len(name).
    Subsequent calls with same input: O(1) via LRU cache.
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


def last_segment(name: str) -> str:
    """The part of *name* after its final underscore (the whole name if none)."""
    return name.rsplit("_", 1)[-1]


def replace_last_segment(name: str, segment: str) -> str:
    if "_" not in name:
        return segment
    return f"{name.rsplit('_', 1)[0]}_{segment}"


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation sufficient for table names.

    First call: O(n).  Subsequent: O(1).
    """
    if not name:
        return ""

    lower: str = name.lower()
    if lower in _IRREGULAR_PLURALS:
        return _match_case(name, _IRREGULAR_PLURALS[lower])
    if lower in _IRREGULAR_SINGULARS:
        return name

    # Already plural-looking (very naive)
    if lower.endswith("s") and not lower.endswith("ss"):
        return name

    # Rules ordered by specificity
    if lower.endswith(("sh", "ch", "x", "z", "ss")):
        return name + "es"
    if lower.endswith("y") and len(name) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith("fe"):
        return name[:-2] + "ves"
    if lower.endswith("f"):
        return name[:-1] + "ves"
    if lower.endswith("o") and len(name) > 1 and lower[-2] not in "aeiou":
        return name + "es"

    return name + "s"


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """
    Naive English singularisation (reverse of to_plural).

    First call: O(n).  Subsequent: O(1).
    """
    if not name:
        return ""

    lower: str = name.lower()
    if lower in _IRREGULAR_SINGULARS:
        return _match_case(name, _IRREGULAR_SINGULARS[lower])
    if lower in _IRREGULAR_PLURALS:
        return name

    # Rules in reverse order of pluralisation
    if lower.endswith("ies") and len(name) > 3:
        return name[:-3] + "y"
    if lower.endswith("ves"):
        return name[:-3] + "f"
    if lower.endswith("oes") and len(name) > 3:
        return name[:-2]
    if lower.endswith(("sses", "xes", "zes", "ches", "shes")):
        return name[:-2]
    if lower.endswith("s") and not lower.endswith(("ss", "us", "is")):
        return name[:-1]

    return name


def is_plural(word: str) -> bool:
    """
    True when *word* reads as an English plural.

    Examples:
        >>> is_plural("users"), is_plural("people"), is_plural("user")
        (True, True, False)
    """
    lower: str = word.lower()
    if lower in _IRREGULAR_SINGULARS:
        return True
    if lower in _IRREGULAR_PLURALS:
        return False
    singular: str = to_singular(lower)
    return singular != lower and to_plural(singular) == lower


def is_singular(word: str) -> bool:
    """True when singularising *word* leaves it unchanged."""
    return to_singular(word.lower()) == word.lower()


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling validation steps.

    Usage:
        with Timer("validate schema") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.info(
            "Timer [%s]: %.4f seconds",
            self.label,
            self.elapsed,
        )

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


__all__: List[str] = [
    "SNAKE_CASE_RE",
    "SQL_RESERVED_WORDS",
    "to_snake_case",
    "last_segment",
    "replace_last_segment",
    "to_plural",
    "to_singular",
    "is_plural",
    "is_singular",
    "Timer",
]
