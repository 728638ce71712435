"""Import and declaration management for React sources."""

from __future__ import annotations

import re
from typing import List, Sequence

from tree_sitter import Node

from ..imports import add_named_imports, has_named_import, referenced_identifiers, remove_unused_specifiers
from ..libraries import ReactLibrary
from ..structures import ComponentKind, Edit, ExtractedString, StringContext
from ..syntax import (
    SourceFile,
    ancestors,
    apply_edits,
    dialect_for_path,
    end_of_imports,
    parse_source,
    statement_removal,
    walk,
)
from .hooks import remove_from_hook_dependencies

DEFAULT_T_IMPORT = "@/plugins/locale"


class ReactImportManager:
    """Adds the imports a transformed file needs and removes them on restore."""

    def __init__(self, library: ReactLibrary, *, t_import: str = DEFAULT_T_IMPORT) -> None:
        self.library = library
        self.t_import = t_import or DEFAULT_T_IMPORT

    # ------------------------------------------------------------ forward

    def add_i18n_imports(self, code: str, specifiers: Sequence[str], *, path: str | None = None) -> str:
        return add_named_imports(code, self.library.package_name, specifiers, dialect=dialect_for_path(path))

    def add_component_import(self, code: str, strings: Sequence[ExtractedString], *, path: str | None = None) -> str:
        """Import the JSX translation component when any markup text was replaced."""

        if not any(item.context is StringContext.JSX_TEXT for item in strings):
            return code
        return self.add_i18n_imports(code, [self.library.jsx_component], path=path)

    def needs_global_function(self, strings: Sequence[ExtractedString]) -> bool:
        return any(item.component_kind is ComponentKind.OTHER for item in strings)

    def handle_global_imports(self, code: str, strings: Sequence[ExtractedString], *, path: str | None = None) -> str:
        """Wire the non-component accessor for strings outside any component."""

        if not strings or not self.needs_global_function(strings):
            return code
        dialect = dialect_for_path(path)
        name = self.library.global_import_name
        updated = code
        if not has_named_import(updated, self.t_import, name, dialect=dialect):
            updated = add_named_imports(updated, self.t_import, [name], dialect=dialect)
        declaration = self.library.global_declaration
        if declaration and not self._has_declaration(updated, declaration):
            source = parse_source(updated, dialect=dialect)
            offset = end_of_imports(source)
            text = f"\n\n{declaration}" if offset else f"{declaration}\n\n"
            updated = apply_edits(source.data, [Edit(offset, offset, text)])
        return updated

    @staticmethod
    def _has_declaration(code: str, declaration: str) -> bool:
        pattern = re.escape(declaration.rstrip(";")).replace(r"\ ", r"\s*")
        return re.search(pattern, code) is not None

    # ------------------------------------------------------------ restore

    def cleanup_imports(self, code: str, *, path: str | None = None) -> str:
        candidates = [
            self.library.jsx_component,
            self.library.hook_name,
            self.library.hoc_name,
            self.library.hoc_props_type,
            self.library.global_import_name,
        ]
        return remove_unused_specifiers(
            code,
            [self.library.package_name, self.t_import],
            candidates,
            dialect=dialect_for_path(path),
        )

    def cleanup_variable_statements(self, code: str, *, path: str | None = None) -> str:
        """Remove hook, global and props declarations of the translation variable once unused."""

        source = parse_source(code, dialect=dialect_for_path(path))
        var = self.library.translation_var
        edits: List[Edit] = []
        for declarator in walk(source.root):
            if declarator.type != "variable_declarator":
                continue
            kind = self._declaration_kind(source, declarator)
            if kind is None:
                continue
            declaration = declarator.parent
            if declaration is None or declaration.type not in {"lexical_declaration", "variable_declaration"}:
                continue
            scope = next(
                (a for a in ancestors(declaration) if a.type in {"statement_block", "program", "class_body"}),
                source.root,
            )
            if var in referenced_identifiers(source, scope, exclude=[declaration]):
                continue
            edit = self._strip_variable(source, declaration, declarator, var, swallow_blank_line=kind == "global")
            if edit is not None:
                edits.append(edit)
        return apply_edits(source.data, edits) if edits else code

    def _declaration_kind(self, source: SourceFile, declarator: Node) -> str | None:
        if self.library.is_hook_declaration(source, declarator):
            return "hook"
        if self.library.is_global_declaration(source, declarator):
            return "global"
        name = declarator.child_by_field_name("name")
        value = declarator.child_by_field_name("value")
        if name is not None and name.type == "object_pattern" and value is not None:
            if source.text_of(value) in {"this.props", "props"} and self._pattern_entry(source, name, self.library.translation_var):
                return "props"
        return None

    @staticmethod
    def _pattern_entry(source: SourceFile, pattern: Node, var: str) -> Node | None:
        for entry in pattern.named_children:
            if entry.type == "shorthand_property_identifier_pattern" and source.text_of(entry) == var:
                return entry
        return None

    def _strip_variable(
        self,
        source: SourceFile,
        declaration: Node,
        declarator: Node,
        var: str,
        *,
        swallow_blank_line: bool = False,
    ) -> Edit | None:
        declarators = [child for child in declaration.named_children if child.type == "variable_declarator"]
        name = declarator.child_by_field_name("name")
        if name is not None and name.type == "object_pattern":
            entries = [entry for entry in name.named_children if entry.type != "comment"]
            remaining = [entry for entry in entries if not (
                entry.type == "shorthand_property_identifier_pattern" and source.text_of(entry) == var
            )]
            if len(remaining) == len(entries):
                return None
            if remaining:
                return Edit(name.start_byte, name.end_byte, "{ " + ", ".join(source.text_of(e) for e in remaining) + " }")
        if len(declarators) != 1:
            return None
        return statement_removal(source, declaration, swallow_blank_line=swallow_blank_line)

    def cleanup_hook_dependencies(self, code: str, *, path: str | None = None) -> str:
        return remove_from_hook_dependencies(code, self.library.translation_var, dialect=dialect_for_path(path))

    def cleanup_hoc_props_type(self, code: str, *, path: str | None = None) -> str:
        """Remove the HOC props type from intersections, type arguments and heritage clauses."""

        source = parse_source(code, dialect=dialect_for_path(path))
        target = self.library.hoc_props_type
        edits: List[Edit] = []
        for node in walk(source.root):
            if node.type != "type_identifier" or source.text_of(node) != target:
                continue
            if any(a.type == "import_statement" for a in ancestors(node)):
                continue
            parent = node.parent
            if parent is None:
                continue
            if parent.type == "intersection_type":
                others = [child for child in parent.named_children if child != node]
                if others:
                    edits.append(Edit(parent.start_byte, parent.end_byte, source.text_of(others[0])))
            elif parent.type in {"type_arguments", "extends_type_clause", "implements_clause"}:
                edits.append(self._remove_list_item(source, parent, node))
        return apply_edits(source.data, edits) if edits else code

    @staticmethod
    def _remove_list_item(source: SourceFile, parent: Node, node: Node) -> Edit:
        items = [child for child in parent.named_children if child.type != "comment"]
        if len(items) == 1:
            start = parent.start_byte
            # swallow the space before "extends"/"implements"/"<"
            while start > 0 and source.data[start - 1 : start] == b" " and parent.type != "type_arguments":
                start -= 1
            return Edit(start, parent.end_byte, "")
        index = items.index(node)
        if index + 1 < len(items):
            return Edit(node.start_byte, items[index + 1].start_byte, "")
        return Edit(items[index - 1].end_byte, node.end_byte, "")
