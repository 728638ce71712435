"""Declares ``t`` in ``<script setup>`` blocks that call it."""

from __future__ import annotations

from ..libraries import VueLibrary
from ..structures import Edit
from ..syntax import apply_edits, callee_name, end_of_imports, parse_source, walk


class VueComponentInjector:
    """Adds ``const { t } = useI18n();`` after the imports when needed."""

    def __init__(self, library: VueLibrary) -> None:
        self.library = library

    def needs_declaration(self, code: str, *, dialect: str = "typescript") -> bool:
        source = parse_source(code, dialect=dialect)
        var = self.library.translation_var
        calls = False
        for node in walk(source.root):
            if node.type == "call_expression" and callee_name(source, node) == var:
                calls = True
            elif node.type == "variable_declarator":
                if self.library.is_hook_declaration(source, node):
                    return False
                name = node.child_by_field_name("name")
                if name is not None and source.text_of(name) == var:
                    return False
            elif node.type == "import_specifier":
                alias = node.child_by_field_name("alias") or node.child_by_field_name("name")
                if source.text_of(alias) == var:
                    return False
        return calls

    def inject(self, code: str, *, dialect: str = "typescript") -> str:
        if not self.needs_declaration(code, dialect=dialect):
            return code
        source = parse_source(code, dialect=dialect)
        declaration = self.library.hook_declaration
        offset = end_of_imports(source)
        if offset:
            return apply_edits(source.data, [Edit(offset, offset, f"\n\n{declaration}")])
        statements = [child for child in source.root.named_children if child.type != "comment"]
        offset = statements[0].start_byte if statements else len(source.data)
        return apply_edits(source.data, [Edit(offset, offset, f"{declaration}\n\n")])
