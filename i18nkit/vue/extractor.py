"""Extraction of translatable text from Vue components and script modules."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from tree_sitter import Node

from ..errors import ErrorCategory, SourceParseError
from ..libraries import VueLibrary
from ..policy import ErrorPolicy
from ..reporting import Reporter, silent_reporter
from ..structures import ComponentKind, ExtractedString, StringContext
from ..syntax import (
    SourceFile,
    contains_chinese,
    decode_js_string,
    is_in_console_call,
    is_replaceable,
    parse_source,
    read_source,
    template_parts,
    walk,
)
from .sfc import (
    VueDocument,
    attribute_name,
    attribute_nodes,
    attribute_quote,
    attribute_value,
    parse_vue,
)

TECHNICAL_ATTRIBUTES = (
    "size",
    "type",
    "position",
    "direction",
    "effect",
    "trigger",
    "placement",
    "width",
    "height",
    "offset",
    "disabled",
    "readonly",
    "clearable",
    "show-password",
    "rows",
    "autosize",
    "name",
    "value",
    "src",
    "href",
    "target",
    "method",
    "action",
    "enctype",
    "for",
    "role",
    "aria-label",
    "aria-labelledby",
    "aria-describedby",
    "prop",
    "column-key",
    "index",
    "align",
    "header-align",
    "fixed",
    "data-",
    "v-",
    ":",
    "@",
    "#",
)
TECHNICAL_VALUES = frozenset(
    {
        "primary",
        "success",
        "warning",
        "danger",
        "info",
        "text",
        "error",
        "large",
        "default",
        "small",
        "mini",
        "top",
        "bottom",
        "left",
        "right",
        "center",
        "top-start",
        "top-end",
        "bottom-start",
        "bottom-end",
        "left-start",
        "left-end",
        "right-start",
        "right-end",
        "dark",
        "light",
        "plain",
        "always",
        "hover",
        "never",
        "click",
        "focus",
        "manual",
        "horizontal",
        "vertical",
        "card",
        "border-card",
        "true",
        "false",
    }
)
LITERAL_EXPRESSIONS = frozenset({"string", "number", "true", "false", "null", "template_string"})

INTERPOLATION_RE = re.compile(rb"\{\{([\s\S]*?)\}\}")
_I18N_CALL_RE = re.compile(r"^(?:\$t|t)\s*\(|\.\s*(?:\$t|t)\s*\(")
_LATIN_RE = re.compile(r"[a-zA-Z]")


def is_technical_attribute(name: str) -> bool:
    """Attributes configuring a widget rather than carrying user-facing text."""

    if name in {"class", "id", "style", "key", "ref", "is"}:
        return True
    if any(name == tech or name.startswith(tech) for tech in TECHNICAL_ATTRIBUTES):
        return True
    if "-" in name and (
        name.startswith(("label-", "button-", "input-"))
        or any(part in name for part in ("-position", "-width", "-height", "-size", "-type"))
    ):
        return True
    return False


def is_technical_value(text: str) -> bool:
    return text.lower() in TECHNICAL_VALUES


def is_i18n_call(expression: str) -> bool:
    return bool(_I18N_CALL_RE.search(expression.strip()))


def directive_parts(name: str) -> Tuple[str, str]:
    """Split a directive attribute into (directive, argument).

    ``:title`` and ``v-bind:title`` give ``("bind", "title")``, ``@click``
    gives ``("on", "click")``, ``v-if`` gives ``("if", "")``.
    """

    if name.startswith(":"):
        return "bind", name[1:].split(".")[0]
    if name.startswith("@"):
        return "on", name[1:].split(".")[0]
    if name.startswith("#"):
        return "slot", name[1:]
    body = name[2:]
    directive, _, argument = body.partition(":")
    return directive, argument.split(".")[0]


def is_directive(name: str) -> bool:
    return name.startswith((":", "@", "#", "v-"))


def template_literal_text(source: SourceFile, node: Node) -> Optional[Tuple[str, Optional[str], List[str]]]:
    """(original, processed_message, variables) for a template literal.

    Literal interpolations (strings, numbers, booleans, ``null``) are inlined
    into the processed message; everything else stays a variable. Returns
    ``None`` for templates whose static text has no Chinese.
    """

    parts, expressions = template_parts(source, node)
    if not expressions:
        return parts[0], None, []
    if not any(contains_chinese(part) for part in parts):
        return None
    original = "`" + parts[0]
    processed = "`" + parts[0]
    variables: List[str] = []
    for expression, part in zip(expressions, parts[1:]):
        text = source.text_of(expression)
        original += "${" + text + "}" + part
        literal = expression.type in LITERAL_EXPRESSIONS and not (
            expression.type == "template_string" and any(c.type == "template_substitution" for c in expression.children)
        )
        if literal:
            value = decode_js_string(text) if expression.type in {"string", "template_string"} else text
            processed += value + part
        else:
            variables.append(text)
            processed += "${" + text + "}" + part
    original += "`"
    processed += "`"
    if not variables:
        return original, processed[1:-1], []
    return original, (processed if processed != original else None), variables


def document_source(document: VueDocument) -> SourceFile:
    if document.source is None:
        raise SourceParseError(f"{document.path} was not parsed as a component")
    return document.source


@dataclass
class VueTarget:
    """Where a record lives in the whole file (UTF-8 byte span)."""

    start: int
    end: int
    quote: str = '"'
    attribute_name: Optional[str] = None


class VueTextExtractor:
    """Finds user-facing text in templates and scripts."""

    def __init__(
        self,
        library: VueLibrary,
        *,
        reporter: Reporter | None = None,
        policy: ErrorPolicy | None = None,
    ) -> None:
        self.library = library
        self.reporter = reporter or silent_reporter()
        self.policy = policy

    def should_extract(self, text: str, context: str, source: SourceFile | None = None, node: Node | None = None) -> bool:
        if not text.strip():
            return False
        if source is not None and node is not None:
            if self.library.is_already_internationalized(source, node):
                return False
            if is_in_console_call(source, node):
                return False
        if contains_chinese(text):
            return True
        if is_technical_value(text.strip()):
            return False
        return context == "template" and bool(_LATIN_RE.search(text))

    def extract_from_source(self, text: str, path: str) -> List[ExtractedString]:
        document = parse_vue(text, path)
        return [record for record, _target in self.scan(document)]

    def extract_from_file(self, path: str | Path) -> List[ExtractedString]:
        path = str(path)
        try:
            text = read_source(path)
            return self.extract_from_source(text, path)
        except (OSError, SourceParseError, ValueError) as exc:
            message = f"Could not extract text from {path}"
            if self.policy is not None:
                self.policy.handle_error(ErrorCategory.PARSE, message, str(exc))
            else:
                self.reporter.warn(f"{message} ({exc})")
            return []

    def extract_from_files(self, paths: Iterable[str | Path]) -> List[ExtractedString]:
        results: List[ExtractedString] = []
        for path in paths:
            results.extend(self.extract_from_file(path))
        return results

    # ------------------------------------------------------------ scanning

    def scan(self, document: VueDocument) -> List[Tuple[ExtractedString, VueTarget]]:
        found: List[Tuple[ExtractedString, VueTarget]] = []
        if document.template is not None and document.source is not None:
            found.extend(self._scan_template(document))
        block = document.script
        if block is not None:
            script = document.script_source(block)
            if script is not None:
                if script.has_errors:
                    self.reporter.debug(f"syntax errors in script of {document.path}; continuing with partial tree")
                base = 0 if document.is_module else block.start
                found.extend(self._scan_script(document, script, base))
        return found

    def _scan_script(
        self, document: VueDocument, script: SourceFile, base: int
    ) -> Iterator[Tuple[ExtractedString, VueTarget]]:
        kind = document.component_kind
        for node, literal in self._literals(script, "script"):
            original, processed, variables = literal
            line, column = script.position(node.start_byte)
            record = ExtractedString(
                original=original,
                file_path=document.path,
                line=line,
                column=column,
                context=StringContext.SCRIPT,
                component_kind=kind,
                processed_message=processed,
                is_template_literal=bool(variables),
                template_variables=variables,
            )
            yield record, VueTarget(base + node.start_byte, base + node.end_byte)

    def _literals(self, source: SourceFile, context: str) -> Iterator[Tuple[Node, Tuple[str, Optional[str], List[str]]]]:
        """Extractable literals in source order; nothing below a match is visited."""

        stack = [source.root]
        while stack:
            node = stack.pop()
            literal = self._literal(source, node, context)
            if literal is not None:
                yield node, literal
                continue
            stack.extend(reversed(node.children))

    def _literal(self, source: SourceFile, node: Node, context: str) -> Optional[Tuple[str, Optional[str], List[str]]]:
        if node.type == "string":
            if not is_replaceable(source, node):
                return None
            text = decode_js_string(source.text_of(node))
            if not self.should_extract(text, context, source, node):
                return None
            return text, None, []
        if node.type == "template_string":
            if not is_replaceable(source, node):
                return None
            value = template_literal_text(source, node)
            if value is None:
                return None
            original, processed, variables = value
            if not self.should_extract(processed or original, context, source, node):
                return None
            return value
        return None

    # ------------------------------------------------------------ template

    def _scan_template(self, document: VueDocument) -> List[Tuple[ExtractedString, VueTarget]]:
        source = document_source(document)
        block = document.template
        if block is None:
            raise SourceParseError(f"{document.path} has no template block")
        found: List[Tuple[ExtractedString, VueTarget]] = []

        region = source.data[block.start : block.end]
        comments = [
            (node.start_byte, node.end_byte)
            for node in walk(block.node)
            if node.type == "comment"
        ]
        spans: List[Tuple[int, int]] = []
        for match in INTERPOLATION_RE.finditer(region):
            start, end = block.start + match.start(), block.start + match.end()
            if any(c_start <= start < c_end for c_start, c_end in comments):
                continue
            spans.append((start, end))
            found.extend(
                self._scan_expression(
                    document, start + 2, end - 2, StringContext.INTERPOLATION, '"', chinese_only=True
                )
            )

        for node in walk(block.node):
            if node.start_byte < block.start or node.end_byte > block.end:
                continue
            if node.type in {"start_tag", "self_closing_tag"}:
                found.extend(self._scan_attributes(document, node))
            elif node.type == "text":
                found.extend(self._scan_text(document, node.start_byte, node.end_byte, spans))

        found.sort(key=lambda item: item[1].start)
        return found

    def _scan_text(
        self,
        document: VueDocument,
        start: int,
        end: int,
        interpolations: List[Tuple[int, int]],
    ) -> Iterator[Tuple[ExtractedString, VueTarget]]:
        source = document_source(document)
        segments: List[Tuple[int, int]] = [(start, end)]
        for i_start, i_end in interpolations:
            if i_end <= start or i_start >= end:
                continue
            next_segments = []
            for s_start, s_end in segments:
                if i_end <= s_start or i_start >= s_end:
                    next_segments.append((s_start, s_end))
                    continue
                if s_start < i_start:
                    next_segments.append((s_start, i_start))
                if i_end < s_end:
                    next_segments.append((i_end, s_end))
            segments = next_segments

        for s_start, s_end in segments:
            raw = source.data[s_start:s_end]
            leading = len(raw) - len(raw.lstrip())
            trailing = len(raw) - len(raw.rstrip())
            t_start, t_end = s_start + leading, s_end - trailing
            if t_start >= t_end:
                continue
            text = source.slice(t_start, t_end)
            if "{{" in text or "}}" in text or not self.should_extract(text, "template"):
                continue
            line, column = source.position(t_start)
            record = ExtractedString(
                original=text,
                file_path=document.path,
                line=line,
                column=column,
                context=StringContext.TEXT_NODE,
                component_kind=ComponentKind.SETUP,
            )
            yield record, VueTarget(t_start, t_end)

    def _scan_attributes(self, document: VueDocument, tag: Node) -> Iterator[Tuple[ExtractedString, VueTarget]]:
        source = document_source(document)
        for attribute in attribute_nodes(tag):
            name = attribute_name(source, attribute)
            value = attribute_value(attribute)
            if value is None or value.type != "attribute_value":
                continue
            content = source.text_of(value)
            if is_directive(name):
                directive, argument = directive_parts(name)
                if directive == "bind" and argument and is_technical_attribute(argument) and not contains_chinese(content):
                    continue
                if directive != "bind" and not contains_chinese(content):
                    continue
                if is_i18n_call(content):
                    continue
                yield from self._scan_expression(
                    document,
                    value.start_byte,
                    value.end_byte,
                    StringContext.DYNAMIC_ATTRIBUTE,
                    attribute_quote(source, attribute),
                    attribute=argument or name,
                    chinese_only=directive != "bind",
                )
                continue
            if is_technical_attribute(name):
                continue
            text = content.strip()
            if not self.should_extract(text, "template"):
                continue
            line, column = source.position(attribute.start_byte)
            record = ExtractedString(
                original=text,
                file_path=document.path,
                line=line,
                column=column,
                context=StringContext.STATIC_ATTRIBUTE,
                component_kind=ComponentKind.SETUP,
                attribute_name=name,
            )
            yield record, VueTarget(attribute.start_byte, attribute.end_byte, '"', name)

    def _scan_expression(
        self,
        document: VueDocument,
        start: int,
        end: int,
        context: StringContext,
        quote: str,
        *,
        attribute: str | None = None,
        chinese_only: bool = False,
    ) -> Iterator[Tuple[ExtractedString, VueTarget]]:
        """Literals inside a template expression spanning ``start:end`` of the file."""

        source = document_source(document)
        expression = source.slice(start, end)
        if not expression.strip() or is_i18n_call(expression):
            return
        parsed = parse_source(expression, document.path, dialect="typescript")
        for node, literal in self._literals(parsed, "template"):
            original, processed, variables = literal
            if chinese_only and not contains_chinese(processed or original):
                continue
            line, column = source.position(start + node.start_byte)
            record = ExtractedString(
                original=original,
                file_path=document.path,
                line=line,
                column=column,
                context=context,
                component_kind=ComponentKind.SETUP,
                processed_message=processed,
                is_template_literal=bool(variables),
                template_variables=variables,
                attribute_name=attribute,
            )
            yield record, VueTarget(start + node.start_byte, start + node.end_byte, quote, attribute)
