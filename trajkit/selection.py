"""
Atom selection expressions.

A small boolean predicate language evaluated against an AtomGroup::

    name == 'CA'
    resid <= 100 && name == "CA"
    !(resname =~ '^(SOL|HOH)$') || segid == 'PROT'
    all

Keywords are ``id``, ``index`` (0-based position), ``name``, ``resid``,
``resname`` and ``segid``. Comparisons are ``== != < <= > >=`` plus ``=~``
for regular-expression search; they combine with ``&&``, ``||``, ``!`` and
parentheses.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .exceptions import SelectionError

if TYPE_CHECKING:
    from .system import AtomGroup

Predicate = Callable[["AtomGroup"], NDArray[np.bool_]]

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<number>-?\d+(?:\.\d+)?)
      | (?P<string>'[^']*'|"[^"]*")
      | (?P<op>==|!=|<=|>=|=~|&&|\|\||<|>|!|\(|\))
      | (?P<word>[A-Za-z_][A-Za-z_0-9]*)
    )
    """,
    re.VERBOSE,
)

_NUMERIC_KEYWORDS = {"id", "index", "resid"}
_STRING_KEYWORDS = {"name", "resname", "segid"}
_COMPARISONS = {"==", "!=", "<", "<=", ">", ">=", "=~"}


def _tokenize(expression: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    expression = expression.rstrip()
    while pos < len(expression):
        match = _TOKEN_RE.match(expression, pos)
        if match is None or match.end() == pos:
            raise SelectionError(
                f"Unexpected character at position {pos} in '{expression}'"
            )
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


def _keyword_values(group: AtomGroup, keyword: str) -> NDArray:
    if keyword == "id":
        return group.ids
    if keyword == "index":
        return np.arange(len(group))
    if keyword == "resid":
        return group.resids
    if keyword == "name":
        return np.asarray(group.names, dtype=object)
    if keyword == "resname":
        return np.asarray(group.resnames, dtype=object)
    return np.asarray(group.segids, dtype=object)


class _Parser:
    """Recursive-descent parser producing a predicate over an AtomGroup."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tokens = _tokenize(expression)
        self.pos = 0

    def _peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> tuple[str, str]:
        token = self._peek()
        if token is None:
            raise SelectionError(f"Unexpected end of selection '{self.expression}'")
        self.pos += 1
        return token

    def _accept(self, op: str) -> bool:
        token = self._peek()
        if token is not None and token == ("op", op):
            self.pos += 1
            return True
        return False

    def parse(self) -> Predicate:
        predicate = self._or()
        if self._peek() is not None:
            raise SelectionError(
                f"Unexpected token '{self._peek()[1]}' in '{self.expression}'"
            )
        return predicate

    def _or(self) -> Predicate:
        left = self._and()
        while self._accept("||"):
            right = self._and()
            left = (lambda lhs, rhs: lambda g: lhs(g) | rhs(g))(left, right)
        return left

    def _and(self) -> Predicate:
        left = self._not()
        while self._accept("&&"):
            right = self._not()
            left = (lambda lhs, rhs: lambda g: lhs(g) & rhs(g))(left, right)
        return left

    def _not(self) -> Predicate:
        if self._accept("!"):
            inner = self._not()
            return lambda g: ~inner(g)
        return self._primary()

    def _primary(self) -> Predicate:
        if self._accept("("):
            inner = self._or()
            if not self._accept(")"):
                raise SelectionError(f"Missing ')' in '{self.expression}'")
            return inner

        token = self._peek()
        if token == ("word", "all"):
            self.pos += 1
            return lambda g: np.ones(len(g), dtype=bool)
        return self._comparison()

    def _operand(self) -> tuple[str, object]:
        kind, text = self._next()
        if kind == "word":
            if text not in _NUMERIC_KEYWORDS | _STRING_KEYWORDS:
                raise SelectionError(f"Unknown keyword '{text}' in '{self.expression}'")
            return "keyword", text
        if kind == "number":
            return "literal", float(text) if "." in text else int(text)
        if kind == "string":
            return "literal", text[1:-1]
        raise SelectionError(f"Unexpected token '{text}' in '{self.expression}'")

    def _comparison(self) -> Predicate:
        lhs = self._operand()
        kind, op = self._next()
        if kind != "op" or op not in _COMPARISONS:
            raise SelectionError(f"Expected comparison, got '{op}' in '{self.expression}'")
        rhs = self._operand()

        if lhs[0] == "keyword" and rhs[0] == "literal":
            keyword, literal = lhs[1], rhs[1]
        elif lhs[0] == "literal" and rhs[0] == "keyword":
            keyword, literal = rhs[1], lhs[1]
            op = {"<": ">", "<=": ">=", ">": "<", ">=": "<="}.get(op, op)
        else:
            raise SelectionError(
                f"Comparison needs one keyword and one literal in '{self.expression}'"
            )

        if op == "=~":
            if not isinstance(literal, str):
                raise SelectionError("Regular-expression match needs a string pattern")
            try:
                pattern = re.compile(literal)
            except re.error as exc:
                raise SelectionError(f"Bad regular expression '{literal}': {exc}") from exc
            return lambda g: np.array(
                [pattern.search(str(v)) is not None for v in _keyword_values(g, keyword)],
                dtype=bool,
            )

        if keyword in _NUMERIC_KEYWORDS and isinstance(literal, str):
            raise SelectionError(f"'{keyword}' must be compared with a number")
        if keyword in _STRING_KEYWORDS and not isinstance(literal, str):
            literal = str(literal)

        compare = {
            "==": np.equal,
            "!=": np.not_equal,
            "<": np.less,
            "<=": np.less_equal,
            ">": np.greater,
            ">=": np.greater_equal,
        }[op]
        return lambda g: np.asarray(
            compare(_keyword_values(g, keyword), literal), dtype=bool
        )


def compile_selection(expression: str) -> Predicate:
    """Parse ``expression`` into a reusable predicate."""
    if not expression or not expression.strip():
        raise SelectionError("Empty selection expression")
    return _Parser(expression).parse()


def select_atoms(group: AtomGroup, expression: str) -> AtomGroup:
    """
    Select atoms from ``group``, preserving their order.

    Raises:
        SelectionError: If the expression is malformed or matches no atoms.
    """
    mask = compile_selection(expression)(group)
    if not mask.any():
        raise SelectionError(f"Selection '{expression}' matched no atoms")
    return group[mask]
