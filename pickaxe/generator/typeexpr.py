"""Field type descriptor parsing using Lark."""

import os
from dataclasses import dataclass
from functools import lru_cache

from lark import Lark, Token, Tree
from lark.exceptions import LarkError

_g_parser: Lark | None = None


class TypeExpressionError(ValueError):
    """Raised when a field type descriptor is not well-formed."""


@dataclass(frozen=True)
class TypeExpr:
    """A parsed field type descriptor.

    `arguments` is the parameter list exactly as written (without the outer
    parentheses), or None when the descriptor has no parameter list.
    `references` lists the identifiers inside the parameter list that may name
    a previously read field, in order of appearance.
    """

    base: str
    arguments: str | None = None
    references: tuple[str, ...] = ()

    @property
    def call_arguments(self) -> str:
        """Argument text for a generated `read_<base>(...)` call."""
        return self.arguments or ""

    def __str__(self) -> str:
        if self.arguments is None:
            return self.base
        return f"{self.base}({self.arguments})"


def _parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/typeexpr.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr")

    return _g_parser


def _references(tokens: list[Token]) -> tuple[str, ...]:
    """Collect identifiers that can be bindings of earlier fields.

    Members (`buffer.remaining`), path segments (`u8::MAX`), macro names and the
    target type of a cast (`len as usize`) are never bindings.
    """
    found: list[str] = []
    for i, tok in enumerate(tokens):
        if tok.type != "IDENT" or tok == "as":
            continue
        prev = tokens[i - 1] if i > 0 else None
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if prev is not None:
            if prev.type == "PUNCT" and (prev == "." or prev.endswith("::")):
                continue
            if prev.type == "IDENT" and prev == "as":
                continue
        if nxt is not None and nxt.type == "PUNCT" and nxt.startswith(("::", "!")):
            continue
        if str(tok) not in found:
            found.append(str(tok))
    return tuple(found)


@lru_cache(maxsize=None)
def parse_type(text: str) -> TypeExpr:
    """Parse a type descriptor such as `byte_array(len as usize)`."""
    try:
        tree = _parser().parse(text)
    except LarkError as e:
        raise TypeExpressionError(f"Malformed type expression {text!r}") from e

    base = str(tree.children[0])
    if len(tree.children) == 1:
        return TypeExpr(base=base)

    args = tree.children[1]
    assert isinstance(args, Tree)
    tokens = list(args.scan_values(lambda v: isinstance(v, Token)))
    # First and last tokens are the enclosing parentheses
    raw = text[tokens[0].end_pos : tokens[-1].start_pos].strip()
    return TypeExpr(base=base, arguments=raw, references=_references(tokens))
