"""
Peel `default_zero(...)` style wrapper calls off a query.

default_zero() substitutes zero when its argument has no data, which hides a broken
metric from a top-level check. Unwrapping gives back the expression that actually
needs validating and how many wrapper layers were around it.
"""
from dql_core.analysis.delimiters import find_matching_paren
from dql_core.analysis.types import DEFAULT_WRAPPER


def is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def wrapper_call_at(text: str, index: int, wrapper: str = DEFAULT_WRAPPER) -> int | None:
    """
    If `<wrapper>\\s*(` starts at index on an identifier boundary, return the index of
    the '('. `default_zero_custom(` and `my_default_zero(` are not wrapper calls.
    """
    if not text.startswith(wrapper, index):
        return None
    if index > 0 and is_identifier_char(text[index - 1]):
        return None
    pos = index + len(wrapper)
    while pos < len(text) and text[pos].isspace():
        pos += 1
    if pos < len(text) and text[pos] == "(":
        return pos
    return None


def _peel(text: str, wrapper: str) -> str | None:
    """Inner text of a trimmed `wrapper(inner)` spanning all of text, else None."""
    open_index = wrapper_call_at(text, 0, wrapper)
    if open_index is None:
        return None
    close_end = find_matching_paren(text, open_index)
    if close_end != len(text):
        return None
    return text[open_index + 1:close_end - 1].strip()


def unwrap(query: str, wrapper: str = DEFAULT_WRAPPER) -> tuple[str, int]:
    """
    Strip nested wrapper layers. Returns (innermost expression, layers removed).
    A query that is not a complete wrapper call comes back unchanged with depth 0.
    """
    current = query.strip()
    depth = 0
    while True:
        inner = _peel(current, wrapper)
        if inner is None:
            break
        depth += 1
        current = inner
        if not current.startswith(wrapper):
            break
    if depth == 0:
        return query, 0
    return current, depth
