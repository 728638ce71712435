"""Placeholder handling shared by the forward and restore transforms.

A template literal such as ``` `共 ${list.length} 条，${user.name}` ``` is
stored as the message ``共 {list} 条，{name}`` with the value mapping
``{list: list.length, name: user.name}``. Restoring walks the same mapping
backwards.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .reporting import Reporter
from .structures import strip_outer_quotes
from .syntax import escape_template_text, quote_js

NON_SEMANTIC_SUFFIXES = frozenset(
    {
        "value",
        "toFixed",
        "toString",
        "valueOf",
        "toLocaleString",
        "toPrecision",
        "trim",
        "trimStart",
        "trimEnd",
        "toLowerCase",
        "toUpperCase",
        "replace",
        "replaceAll",
        "slice",
        "substring",
        "substr",
        "padStart",
        "padEnd",
        "join",
        "length",
    }
)

PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_$\u4e00-\u9fa5][\w$\u4e00-\u9fa5]*)\}")
_CALL_ARGS_RE = re.compile(r"\([^)]*\)")
_FIRST_IDENTIFIER_RE = re.compile(r"([a-zA-Z_$][\w$]*)")


def variable_name_from_expression(expression: str) -> str:
    """Derive a readable placeholder name from an interpolated expression."""

    base = _CALL_ARGS_RE.sub("", expression)
    base = re.sub(r"\?\.|\?", ".", base)
    parts = [part for part in base.split(".") if part.strip()]
    for part in reversed(parts):
        part = part.strip().strip("'\"`")
        part = re.sub(r"[^\w\u4e00-\u9fa5]", "", part)
        if part and part not in NON_SEMANTIC_SUFFIXES:
            return f"val_{part}" if part[0].isdigit() else part

    match = _FIRST_IDENTIFIER_RE.search(expression)
    if match and match.group(1) not in NON_SEMANTIC_SUFFIXES:
        return match.group(1)
    return "val"


def split_template(body: str) -> Tuple[List[str], List[str]]:
    """Split a template body into static parts and ``${...}`` expression texts.

    Braces are balanced and quoted strings inside expressions are skipped, so
    ``${fn({a: 1})}`` is one expression.
    """

    parts: List[str] = []
    expressions: List[str] = []
    current: List[str] = []
    index = 0
    length = len(body)
    while index < length:
        char = body[index]
        if char == "\\" and index + 1 < length:
            current.append(body[index : index + 2])
            index += 2
            continue
        if char == "$" and index + 1 < length and body[index + 1] == "{":
            depth = 1
            cursor = index + 2
            quote: Optional[str] = None
            while cursor < length and depth:
                c = body[cursor]
                if quote:
                    if c == "\\":
                        cursor += 2
                        continue
                    if c == quote:
                        quote = None
                elif c in "'\"`":
                    quote = c
                elif c == "{":
                    depth += 1
                elif c == "}":
                    depth -= 1
                cursor += 1
            parts.append("".join(current))
            current = []
            expressions.append(body[index + 2 : cursor - 1].strip())
            index = cursor
            continue
        current.append(char)
        index += 1
    parts.append("".join(current))
    return parts, expressions


def create_message_with_options(
    original: str,
    template_variables: Sequence[str] | None = None,
) -> Tuple[str, Dict[str, str]]:
    """Turn a template literal into a ``{name}`` message plus a name -> expression map.

    Every interpolation receives its own placeholder, even when two
    interpolations share an expression, so N interpolations always yield N
    distinct names in source order.
    """

    body = strip_outer_quotes(original)
    if not template_variables:
        return body, {}

    parts, expressions = split_template(body)
    values: Dict[str, str] = {}
    message = parts[0]
    for expression, tail in zip(expressions, parts[1:]):
        base = variable_name_from_expression(expression) or "val"
        name = base
        counter = 1
        while name in values:
            name = f"{base}{counter}"
            counter += 1
        values[name] = expression
        message += "{" + name + "}" + tail
    return message, values


def format_values_mapping(values: Mapping[str, str]) -> str:
    """Render ``{ name: expr, other }`` with shorthand where name == expr."""

    entries = [name if name == expr else f"{name}: {expr}" for name, expr in values.items()]
    return "{ " + ", ".join(entries) + " }"


def placeholder_names(message: str) -> List[str]:
    return PLACEHOLDER_RE.findall(message)


def build_string_or_template(
    message: str,
    values: Mapping[str, str] | None = None,
    *,
    quote: str = "'",
    reporter: Reporter | None = None,
) -> str:
    """Rebuild a JS expression for ``message``.

    Returns a quoted string when there are no values or placeholders, and a
    template literal whose interpolations are the original expressions
    otherwise. A placeholder/value count mismatch degrades to the raw string.
    """

    if not values:
        return quote_js(message, quote)
    names = placeholder_names(message)
    if not names:
        return quote_js(message, quote)
    if len(names) != len(values):
        if reporter is not None:
            reporter.warn(
                f"Placeholder mismatch ({len(names)} placeholders, {len(values)} values); "
                f'restoring raw text for "{message}".'
            )
        return quote_js(message, quote)
    missing = [name for name in names if name not in values]
    if missing:
        if reporter is not None:
            reporter.warn(
                f"No expression for placeholder {{{missing[0]}}}; restoring raw text for "
                f'"{message}".'
            )
        return quote_js(message, quote)

    pieces = ["`"]
    cursor = 0
    for match in PLACEHOLDER_RE.finditer(message):
        pieces.append(escape_template_text(message[cursor : match.start()]))
        pieces.append("${" + values[match.group(1)] + "}")
        cursor = match.end()
    pieces.append(escape_template_text(message[cursor:]))
    pieces.append("`")
    return "".join(pieces)


def fill_placeholders(message: str, values: Mapping[str, str], wrap: str = "{{ %s }}") -> str:
    """Substitute placeholders with ``wrap % expr`` (used for Vue templates)."""

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in values:
            return wrap % values[name]
        return match.group(0)

    return PLACEHOLDER_RE.sub(replace, message)
