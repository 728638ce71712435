"""React component discovery on tree-sitter syntax trees."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional

from tree_sitter import Node

from ..structures import ComponentKind, StringContext
from ..syntax import (
    CLASS_TYPES,
    SourceFile,
    ancestors,
    callee_name,
    unwrap_expression,
    walk,
)

REACT_HOOKS = frozenset(
    {
        "useState",
        "useEffect",
        "useContext",
        "useReducer",
        "useCallback",
        "useMemo",
        "useRef",
        "useImperativeHandle",
        "useLayoutEffect",
        "useDebugValue",
        "useIntl",
        "useTranslation",
    }
)
COMPONENT_BASES = frozenset(
    {"Component", "PureComponent", "React.Component", "React.PureComponent"}
)
WRAPPERS = frozenset({"memo", "forwardRef", "React.memo", "React.forwardRef"})
FUNCTION_NODE_TYPES = frozenset({"function_declaration", "function_expression", "function", "arrow_function"})
_RETURN_TYPE_RE = re.compile(r"ReactElement|ReactNode|JSX\.Element")
_JSX_TYPES = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})


@dataclass
class ComponentInfo:
    """A React component declaration found in a file."""

    name: str
    kind: ComponentKind
    node: Node
    declaration: Node
    exported: bool = False
    default_export: bool = False

    @property
    def body(self) -> Optional[Node]:
        return self.node.child_by_field_name("body")


def class_heritage_base(source: SourceFile, class_node: Node) -> Optional[Node]:
    """Expression after ``extends`` of a class, if any."""

    for child in class_node.children:
        if child.type != "class_heritage":
            continue
        for clause in child.named_children:
            if clause.type == "extends_clause":
                value = clause.child_by_field_name("value")
                if value is None and clause.named_children:
                    value = clause.named_children[0]
                return value
        # plain JavaScript grammar puts the expression directly under class_heritage
        if child.named_children:
            return child.named_children[0]
    return None


def extends_type_arguments(class_node: Node) -> Optional[Node]:
    for child in class_node.children:
        if child.type != "class_heritage":
            continue
        for clause in child.named_children:
            if clause.type == "extends_clause":
                args = clause.child_by_field_name("type_arguments")
                if args is not None:
                    return args
                for part in clause.named_children:
                    if part.type == "type_arguments":
                        return part
    return None


def is_class_component(source: SourceFile, class_node: Node) -> bool:
    base = class_heritage_base(source, class_node)
    return base is not None and source.text_of(base) in COMPONENT_BASES


def _wrapped_by_component_call(source: SourceFile, node: Node) -> bool:
    parent = node.parent
    if parent is None or parent.type != "arguments":
        return False
    call = parent.parent
    return call is not None and call.type == "call_expression" and callee_name(source, call) in WRAPPERS


def is_function_component(source: SourceFile, node: Node) -> bool:
    if node.type not in FUNCTION_NODE_TYPES:
        return False
    if _wrapped_by_component_call(source, node):
        return True
    return_type = node.child_by_field_name("return_type")
    if return_type is not None and _RETURN_TYPE_RE.search(source.text_of(return_type)):
        return True
    body = node.child_by_field_name("body")
    if body is None:
        return False
    for child in walk(body):
        if child.type in _JSX_TYPES:
            return True
        if child.type == "call_expression":
            name = callee_name(source, child)
            if name in REACT_HOOKS or (name.startswith("React.") and name[6:] in REACT_HOOKS):
                return True
    return False


def component_kind(source: SourceFile, node: Node) -> ComponentKind:
    """Kind of the component enclosing ``node``; class components take precedence."""

    chain = [node, *ancestors(node)]
    for current in chain:
        if current.type in CLASS_TYPES and is_class_component(source, current):
            return ComponentKind.CLASS
    for current in chain:
        if current.type in FUNCTION_NODE_TYPES and is_function_component(source, current):
            return ComponentKind.FUNCTION
    return ComponentKind.OTHER


def node_context(source: SourceFile, node: Node) -> StringContext:
    if node.type == "jsx_text" or node.type == "jsx_element":
        return StringContext.JSX_TEXT
    parent = node.parent
    if parent is not None and parent.type == "jsx_attribute":
        return StringContext.JSX_ATTRIBUTE
    return StringContext.JS_CODE


def is_component_name(name: str) -> bool:
    return bool(name) and name[0].isupper()


def is_hook_name(name: str) -> bool:
    return len(name) > 3 and name.startswith("use") and name[3].isupper()


def _declared_function(source: SourceFile, value: Node | None) -> Optional[Node]:
    value = unwrap_expression(value)
    if value is None:
        return None
    if value.type in {"arrow_function", "function_expression", "function"}:
        return value
    if value.type == "call_expression" and callee_name(source, value) in WRAPPERS:
        args = value.child_by_field_name("arguments")
        for arg in args.named_children if args is not None else []:
            inner = _declared_function(source, arg)
            if inner is not None:
                return inner
    return None


def component_info(source: SourceFile, declaration: Node, *, include_hooks: bool = False) -> List[ComponentInfo]:
    """Components declared by one statement (export wrappers included)."""

    exported = False
    default_export = False
    statement = declaration
    if declaration.type == "export_statement":
        exported = True
        default_export = any(child.type == "default" for child in declaration.children)
        inner = declaration.child_by_field_name("declaration") or declaration.child_by_field_name("value")
        if inner is None:
            return []
        declaration = inner

    def accepts(name: str) -> bool:
        return is_component_name(name) or (include_hooks and is_hook_name(name))

    found: List[ComponentInfo] = []
    if declaration.type in CLASS_TYPES:
        name_node = declaration.child_by_field_name("name")
        name = source.text_of(name_node)
        if is_class_component(source, declaration) and (is_component_name(name) or not name):
            found.append(
                ComponentInfo(
                    name=name or "DefaultExportedComponent",
                    kind=ComponentKind.CLASS,
                    node=declaration,
                    declaration=statement,
                    exported=exported,
                    default_export=default_export,
                )
            )
    elif declaration.type in {"function_declaration", "function_expression", "function", "arrow_function"}:
        name = source.text_of(declaration.child_by_field_name("name"))
        if not name and default_export:
            name = "DefaultExportedComponent"
        if accepts(name) or (name == "DefaultExportedComponent" and is_function_component(source, declaration)):
            found.append(
                ComponentInfo(
                    name=name,
                    kind=ComponentKind.FUNCTION,
                    node=declaration,
                    declaration=statement,
                    exported=exported,
                    default_export=default_export,
                )
            )
    elif declaration.type in {"lexical_declaration", "variable_declaration"}:
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = source.text_of(declarator.child_by_field_name("name"))
            function = _declared_function(source, declarator.child_by_field_name("value"))
            if function is not None and accepts(name):
                found.append(
                    ComponentInfo(
                        name=name,
                        kind=ComponentKind.FUNCTION,
                        node=function,
                        declaration=statement,
                        exported=exported,
                        default_export=default_export,
                    )
                )
    return found


def iter_components(source: SourceFile, *, include_hooks: bool = False) -> Iterator[ComponentInfo]:
    for statement in source.root.named_children:
        yield from component_info(source, statement, include_hooks=include_hooks)
