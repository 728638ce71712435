"""Import and declaration management for Vue script blocks."""

from __future__ import annotations

from typing import List

from ..imports import add_named_imports, referenced_identifiers, remove_unused_specifiers
from ..libraries import VueLibrary
from ..structures import ComponentKind, Edit
from ..syntax import ancestors, apply_edits, parse_source, statement_removal, walk

DEFAULT_T_IMPORT = "@/plugins/locale"


class VueImportManager:
    """Keeps ``useI18n``/``t`` imports in step with the calls in a script."""

    def __init__(self, library: VueLibrary, *, t_import: str = DEFAULT_T_IMPORT) -> None:
        self.library = library
        self.t_import = t_import or DEFAULT_T_IMPORT

    def add_i18n_imports(self, code: str, kind: ComponentKind, *, dialect: str = "typescript") -> str:
        """Import what a script of ``kind`` needs to call the translator.

        Options-API blocks use the globally injected ``this.$t`` and need
        nothing.
        """

        if kind is ComponentKind.SETUP:
            return add_named_imports(code, self.library.package_name, [self.library.hook_name], dialect=dialect)
        if kind is ComponentKind.OTHER:
            return self.handle_global_imports(code, dialect=dialect)
        return code

    def handle_global_imports(self, code: str, *, dialect: str = "typescript") -> str:
        return add_named_imports(code, self.t_import, [self.library.translation_var], dialect=dialect)

    def cleanup_imports(self, code: str, *, dialect: str = "typescript") -> str:
        return remove_unused_specifiers(
            code,
            [self.library.package_name, self.t_import],
            [self.library.hook_name, self.library.translation_var],
            dialect=dialect,
        )

    def cleanup_variable_statements(self, code: str, *, dialect: str = "typescript") -> str:
        """Drop ``const { t } = useI18n()`` once ``t`` is no longer referenced."""

        source = parse_source(code, dialect=dialect)
        var = self.library.translation_var
        edits: List[Edit] = []
        for declarator in walk(source.root):
            if declarator.type != "variable_declarator" or not self.library.is_hook_declaration(source, declarator):
                continue
            declaration = declarator.parent
            if declaration is None:
                continue
            scope = next((a for a in ancestors(declaration) if a.type in {"statement_block", "program"}), source.root)
            if var in referenced_identifiers(source, scope, exclude=[declaration]):
                continue
            pattern = declarator.child_by_field_name("name")
            entries = [entry for entry in pattern.named_children if entry.type != "comment"]
            remaining = [
                entry
                for entry in entries
                if not (entry.type == "shorthand_property_identifier_pattern" and source.text_of(entry) == var)
            ]
            if len(remaining) == len(entries):
                continue
            if remaining:
                text = "{ " + ", ".join(source.text_of(entry) for entry in remaining) + " }"
                edits.append(Edit(pattern.start_byte, pattern.end_byte, text))
            else:
                edits.append(statement_removal(source, declaration, swallow_blank_line=True))
        return apply_edits(source.data, edits) if edits else code
