"""Extraction of translatable literals from React (JSX/TSX) sources."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from tree_sitter import Node

from ..errors import ErrorCategory, SourceParseError
from ..libraries import ReactLibrary
from ..policy import ErrorPolicy
from ..reporting import Reporter, silent_reporter
from ..structures import ExtractedString, MessageInfo, StringContext
from ..syntax import (
    SourceFile,
    contains_chinese,
    contains_latin,
    decode_js_string,
    is_in_console_call,
    is_replaceable,
    jsx_children,
    jsx_text_value,
    object_properties,
    parse_source,
    read_source,
    template_parts,
    trimmed_span,
    unwrap_expression,
    callee_name,
    call_arguments,
    walk,
)
from .components import component_kind, node_context


def mixed_children_span(source: SourceFile, element: Node) -> Optional[Tuple[int, int]]:
    """Byte span between the opening and closing tag of ``element``, trimmed."""

    open_tag = element.child_by_field_name("open_tag")
    close_tag = element.child_by_field_name("close_tag")
    if open_tag is None or close_tag is None:
        return None
    start, end = open_tag.end_byte, close_tag.start_byte
    raw = source.data[start:end]
    leading = len(raw) - len(raw.lstrip())
    trailing = len(raw) - len(raw.rstrip())
    if start + leading >= end - trailing:
        return None
    return start + leading, end - trailing


def mixed_content(source: SourceFile, element: Node) -> Optional[Tuple[str, List[str]]]:
    """Template text and expressions for an element mixing Chinese text with ``{expr}``.

    Only elements whose children are text and expressions qualify; nested
    tags keep per-fragment extraction so no markup is lost.
    """

    if element.type != "jsx_element":
        return None
    children = jsx_children(element)
    if not children:
        return None
    expressions: List[Node] = []
    for child in children:
        if child.type == "jsx_expression":
            inner = [c for c in child.named_children if c.type != "comment"]
            if inner:
                expressions.append(child)
        elif child.type not in {"jsx_text", "html_character_reference", "comment"}:
            return None
    if not expressions:
        return None

    span = mixed_children_span(source, element)
    if span is None:
        return None
    start, end = span
    text_parts: List[str] = []
    variables: List[str] = []
    cursor = start
    for expression in expressions:
        text_parts.append(jsx_text_value(source.slice(cursor, expression.start_byte)))
        inner = [c for c in expression.named_children if c.type != "comment"][0]
        variables.append(source.text_of(inner))
        cursor = expression.end_byte
    text_parts.append(jsx_text_value(source.slice(cursor, end)))

    if not any(contains_chinese(part) for part in text_parts):
        return None

    text = "`" + text_parts[0]
    for variable, part in zip(variables, text_parts[1:]):
        text += "${" + variable + "}" + part
    text += "`"
    return text, variables


def literal_value(source: SourceFile, node: Node) -> Optional[Tuple[str, bool, List[str]]]:
    """(text, is_template, variables) for a candidate node, or ``None``."""

    if node.type == "string":
        return decode_js_string(source.text_of(node)), False, []
    if node.type == "template_string":
        parts, expressions = template_parts(source, node)
        if not expressions:
            return parts[0], False, []
        if not any(contains_chinese(part) for part in parts):
            return None
        variables = [source.text_of(expression) for expression in expressions]
        text = "`" + parts[0]
        for variable, part in zip(variables, parts[1:]):
            text += "${" + variable + "}" + part
        text += "`"
        return text, True, variables
    if node.type == "jsx_text":
        return jsx_text_value(source.text_of(node)).strip(), False, []
    if node.type == "jsx_element":
        mixed = mixed_content(source, node)
        if mixed is None:
            return None
        return mixed[0], True, mixed[1]
    return None


def literal_start(source: SourceFile, node: Node) -> int:
    if node.type == "jsx_text":
        return trimmed_span(source, node)[0]
    return node.start_byte


def collect_defined_messages(source: SourceFile, library: ReactLibrary) -> Dict[str, Dict[str, MessageInfo]]:
    """Pre-scan ``const X = defineMessages({ key: { id, defaultMessage } })`` registries."""

    registries: Dict[str, Dict[str, MessageInfo]] = {}
    if not library.registry_function:
        return registries

    for node in walk(source.root):
        if node.type != "variable_declarator":
            continue
        value = unwrap_expression(node.child_by_field_name("value"))
        if value is None or value.type != "call_expression":
            continue
        if callee_name(source, value) != library.registry_function:
            continue
        args = call_arguments(value)
        if not args:
            continue
        entries: Dict[str, MessageInfo] = {}
        for key, descriptor in object_properties(source, args[0]).items():
            props = object_properties(source, descriptor)
            id_node = unwrap_expression(props.get("id"))
            default_node = unwrap_expression(props.get("defaultMessage"))
            entries[key] = MessageInfo(
                id=decode_js_string(source.text_of(id_node)) if id_node is not None and id_node.type == "string" else None,
                default_message=(
                    decode_js_string(source.text_of(default_node))
                    if default_node is not None and default_node.type in {"string", "template_string"}
                    else None
                ),
            )
        registries[source.text_of(node.child_by_field_name("name"))] = entries
    return registries


class ReactTextExtractor:
    """Walks JSX/TSX sources and returns translatable literals."""

    def __init__(
        self,
        library: ReactLibrary,
        *,
        reporter: Reporter | None = None,
        policy: ErrorPolicy | None = None,
    ) -> None:
        self.library = library
        self.reporter = reporter or silent_reporter()
        self.policy = policy

    def should_extract(
        self,
        source: SourceFile,
        text: str,
        context: StringContext,
        node: Node | None = None,
    ) -> bool:
        if not text.strip():
            return False
        if node is not None:
            if self.library.is_already_internationalized(source, node):
                return False
            if is_in_console_call(source, node):
                return False
        if contains_chinese(text):
            return True
        return context is StringContext.JSX_TEXT and contains_latin(text)

    def extract_from_source(self, text: str, path: str) -> List[ExtractedString]:
        source = parse_source(text, path)
        if source.has_errors:
            self.reporter.debug(f"syntax errors while parsing {path}; continuing with partial tree")
        return [record for record, _node in self.scan(source)]

    def scan(self, source: SourceFile) -> List[Tuple[ExtractedString, Node]]:
        """Records together with the nodes they were read from."""

        found: List[Tuple[ExtractedString, Node]] = []
        stack = [source.root]
        while stack:
            node = stack.pop()
            record = self._visit(source, node)
            if record is not None:
                found.append((record, node))
                continue
            stack.extend(reversed(node.children))
        return found

    def _visit(self, source: SourceFile, node: Node) -> Optional[ExtractedString]:
        if node.type not in {"string", "template_string", "jsx_text", "jsx_element"}:
            return None
        value = literal_value(source, node)
        if value is None:
            return None
        text, is_template, variables = value
        if node.type != "jsx_element" and not is_replaceable(source, node):
            return None
        context = node_context(source, node)
        if not self.should_extract(source, text, context, node):
            return None
        line, column = source.position(literal_start(source, node))
        return ExtractedString(
            original=text,
            file_path=source.path,
            line=line,
            column=column,
            context=context,
            component_kind=component_kind(source, node),
            is_template_literal=is_template,
            template_variables=list(variables),
        )

    def extract_from_file(self, path: str | Path) -> List[ExtractedString]:
        path = str(path)
        try:
            text = read_source(path)
            return self.extract_from_source(text, path)
        except (OSError, SourceParseError, ValueError) as exc:
            self._record_failure(path, exc)
            return []

    def extract_from_files(self, paths: Iterable[str | Path]) -> List[ExtractedString]:
        results: List[ExtractedString] = []
        for path in paths:
            results.extend(self.extract_from_file(path))
        return results

    def _record_failure(self, path: str, exc: BaseException) -> None:
        message = f"Could not extract text from {path}"
        if self.policy is not None:
            self.policy.handle_error(ErrorCategory.PARSE, message, str(exc))
        else:
            self.reporter.warn(f"{message} ({exc})")
