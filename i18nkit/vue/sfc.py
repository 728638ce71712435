"""Single-file component splitting on top of the tree-sitter HTML grammar."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, List, Optional

from tree_sitter import Node

from ..structures import ComponentKind, Edit
from ..syntax import SourceFile, apply_edits, parse_source

SCRIPT_SUFFIXES = frozenset({".ts", ".js", ".mts", ".mjs", ".cts", ".cjs"})


def start_tag(element: Node) -> Optional[Node]:
    for child in element.children:
        if child.type in {"start_tag", "self_closing_tag"}:
            return child
    return None


def end_tag(element: Node) -> Optional[Node]:
    for child in element.children:
        if child.type == "end_tag":
            return child
    return None


def tag_name(source: SourceFile, element: Node) -> str:
    tag = start_tag(element)
    if tag is None:
        return ""
    for child in tag.named_children:
        if child.type == "tag_name":
            return source.text_of(child)
    return ""


def attribute_nodes(tag: Node) -> List[Node]:
    return [child for child in tag.named_children if child.type == "attribute"]


def attribute_name(source: SourceFile, attribute: Node) -> str:
    for child in attribute.named_children:
        if child.type == "attribute_name":
            return source.text_of(child)
    return ""


def attribute_value(attribute: Node) -> Optional[Node]:
    """The unquoted value node of an attribute, or ``None`` for bare attributes."""

    for child in attribute.named_children:
        if child.type == "attribute_value":
            return child
        if child.type == "quoted_attribute_value":
            for inner in child.named_children:
                if inner.type == "attribute_value":
                    return inner
            return child
    return None


def attribute_quote(source: SourceFile, attribute: Node) -> str:
    for child in attribute.named_children:
        if child.type == "quoted_attribute_value":
            return source.text_of(child)[:1]
    return '"'


def tag_attributes(source: SourceFile, element: Node) -> Dict[str, str]:
    tag = start_tag(element)
    found: Dict[str, str] = {}
    for attribute in attribute_nodes(tag) if tag is not None else []:
        value = attribute_value(attribute)
        found[attribute_name(source, attribute)] = source.text_of(value) if value is not None else ""
    return found


@dataclass
class Block:
    """One top-level ``<template>`` or ``<script>`` block of a component."""

    kind: str
    start: int
    end: int
    attributes: Dict[str, str] = field(default_factory=dict)
    node: Optional[Node] = None

    @property
    def setup(self) -> bool:
        return "setup" in self.attributes

    @property
    def dialect(self) -> str:
        return "tsx" if self.attributes.get("lang") in {"tsx", "jsx"} else "typescript"


@dataclass
class VueDocument:
    """A parsed ``.vue`` file, or a plain script module treated as one block."""

    path: str
    text: str
    source: Optional[SourceFile]
    template: Optional[Block] = None
    scripts: List[Block] = field(default_factory=list)

    @property
    def is_module(self) -> bool:
        return self.source is None

    @property
    def script(self) -> Optional[Block]:
        """The block scripts are read from; ``<script setup>`` wins."""

        for block in self.scripts:
            if block.setup:
                return block
        return self.scripts[0] if self.scripts else None

    @property
    def component_kind(self) -> ComponentKind:
        if self.is_module:
            return ComponentKind.OTHER
        block = self.script
        if block is not None and not block.setup:
            return ComponentKind.OPTIONS
        return ComponentKind.SETUP

    @property
    def data(self) -> bytes:
        return self.text.encode("utf-8")

    def block_text(self, block: Block) -> str:
        return self.data[block.start : block.end].decode("utf-8")

    def script_source(self, block: Block | None = None) -> Optional[SourceFile]:
        """Script block parsed on its own, positions reported in file lines."""

        block = block or self.script
        if block is None:
            return None
        if self.is_module:
            return parse_source(self.text, self.path)
        line_offset = self.data[: block.start].count(b"\n")
        return parse_source(self.block_text(block), self.path, dialect=block.dialect, line_offset=line_offset)

    def replace_block(self, block: Block, content: str) -> str:
        """Whole file text with ``block``'s content swapped for ``content``."""

        if self.is_module:
            return content
        return apply_edits(self.data, [Edit(block.start, block.end, content)])


def parse_vue(text: str, path: str = "<memory>.vue") -> VueDocument:
    """Split a component into blocks; ``.ts``/``.js`` files become a single script."""

    if PurePath(path).suffix.lower() in SCRIPT_SUFFIXES:
        data_length = len(text.encode("utf-8"))
        return VueDocument(path=path, text=text, source=None, scripts=[Block("script", 0, data_length)])

    source = parse_source(text, path, dialect="html")
    document = VueDocument(path=path, text=text, source=source)
    for element in source.root.named_children:
        if element.type == "script_element":
            raw = next((child for child in element.named_children if child.type == "raw_text"), None)
            opening = start_tag(element)
            closing = end_tag(element)
            if opening is None or closing is None:
                continue
            start = raw.start_byte if raw is not None else opening.end_byte
            end = raw.end_byte if raw is not None else closing.start_byte
            document.scripts.append(Block("script", start, end, tag_attributes(source, element), element))
        elif element.type == "element" and tag_name(source, element) == "template" and document.template is None:
            opening = start_tag(element)
            closing = end_tag(element)
            if opening is None or closing is None:
                continue
            document.template = Block(
                "template",
                opening.end_byte,
                closing.start_byte,
                tag_attributes(source, element),
                element,
            )
    return document
