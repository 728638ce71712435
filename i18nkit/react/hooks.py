"""Keeps React hook dependency arrays in step with the translation variable."""

from __future__ import annotations

from typing import List, Optional

from tree_sitter import Node

from ..structures import Edit
from ..syntax import SourceFile, apply_edits, call_arguments, callee_name, parse_source, walk

DEPENDENCY_HOOKS = frozenset({"useCallback", "useMemo", "useEffect", "useLayoutEffect"})


def _hook_calls(source: SourceFile) -> List[Node]:
    calls = []
    for node in walk(source.root):
        if node.type != "call_expression":
            continue
        name = callee_name(source, node)
        if name.startswith("React."):
            name = name[6:]
        if name in DEPENDENCY_HOOKS:
            calls.append(node)
    return calls


def _references(source: SourceFile, node: Node, name: str) -> bool:
    for child in walk(node):
        if child.type in {"identifier", "shorthand_property_identifier"} and source.text_of(child) == name:
            return True
    return False


def _dependency_array(call: Node) -> Optional[Node]:
    args = call_arguments(call)
    if len(args) > 1 and args[1].type == "array":
        return args[1]
    return None


def add_to_hook_dependencies(code: str, variable: str, *, dialect: str = "tsx") -> str:
    """Append ``variable`` to dependency arrays whose callback uses it.

    Hooks called without a dependency array are left alone: adding one would
    change when they run.
    """

    source = parse_source(code, dialect=dialect)
    edits: List[Edit] = []
    for call in _hook_calls(source):
        args = call_arguments(call)
        if not args or not _references(source, args[0], variable):
            continue
        deps = _dependency_array(call)
        if deps is None:
            continue
        elements = [child for child in deps.named_children if child.type != "comment"]
        if any(source.text_of(element) == variable for element in elements):
            continue
        if elements:
            edits.append(Edit(elements[-1].end_byte, elements[-1].end_byte, f", {variable}"))
        else:
            edits.append(Edit(deps.start_byte, deps.end_byte, f"[{variable}]"))
    return apply_edits(source.data, edits) if edits else code


def remove_from_hook_dependencies(code: str, variable: str, *, dialect: str = "tsx") -> str:
    """Drop ``variable`` from dependency arrays whose callback no longer uses it."""

    source = parse_source(code, dialect=dialect)
    edits: List[Edit] = []
    for call in _hook_calls(source):
        deps = _dependency_array(call)
        if deps is None:
            continue
        args = call_arguments(call)
        if args and _references(source, args[0], variable):
            continue
        elements = [child for child in deps.named_children if child.type != "comment"]
        if not any(source.text_of(element) == variable for element in elements):
            continue
        kept = [source.text_of(element) for element in elements if source.text_of(element) != variable]
        edits.append(Edit(deps.start_byte, deps.end_byte, "[" + ", ".join(kept) + "]"))
    return apply_edits(source.data, edits) if edits else code
