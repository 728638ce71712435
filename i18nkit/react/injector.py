"""Makes the translation variable available inside React components.

Injection runs in two passes. The first pass decides, on the tree as it was
handed in, which components use the translation variable without having it
in scope, and whether each needs a hook (function components and custom
hooks) or a higher-order wrapper (class components). The required imports
are then merged, the text re-parsed, and the second pass builds every edit
against the fresh tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, List, Optional

from tree_sitter import Node

from ..imports import add_named_imports
from ..libraries import ReactLibrary
from ..reporting import Reporter, silent_reporter
from ..structures import ComponentKind, Edit
from ..syntax import (
    SourceFile,
    apply_edits,
    dialect_for_path,
    indentation_at,
    parse_source,
    walk,
)
from .components import ComponentInfo, extends_type_arguments, class_heritage_base, iter_components

HOC_SUFFIX = "WithOutIntl"


@dataclass
class InjectionPlan:
    name: str
    kind: ComponentKind


def _is_typed(path: str | None) -> bool:
    if not path:
        return True
    return PurePath(path).suffix.lower() in {".ts", ".tsx", ".mts", ".cts"}


class ReactComponentInjector:
    """Adds hook declarations or HOC wrapping where translation calls need them."""

    def __init__(self, library: ReactLibrary, *, reporter: Reporter | None = None) -> None:
        self.library = library
        self.reporter = reporter or silent_reporter()

    # ------------------------------------------------------------ pass 1

    def plan(self, source: SourceFile) -> List[InjectionPlan]:
        plans: List[InjectionPlan] = []
        for component in iter_components(source, include_hooks=True):
            if not self.library.component_uses_translation(source, component.node):
                continue
            if component.kind is ComponentKind.CLASS:
                if self._class_wrapped(source, component):
                    continue
                plans.append(InjectionPlan(component.name, ComponentKind.CLASS))
            elif not self.library.is_translation_available_in_scope(source, component.node):
                plans.append(InjectionPlan(component.name, ComponentKind.FUNCTION))
        return plans

    def _class_wrapped(self, source: SourceFile, component: ComponentInfo) -> bool:
        """True when the class is already passed through the library's HOC."""

        if component.name.endswith(HOC_SUFFIX):
            return True
        for node in walk(source.root):
            if node.type == "call_expression" and self.library.hoc_wrapped_component(source, node) == component.name:
                return True
        return False

    # ------------------------------------------------------------ pass 2

    def inject(self, code: str, *, path: str | None = None) -> str:
        dialect = dialect_for_path(path)
        source = parse_source(code, path or "<memory>", dialect=dialect)
        plans = self.plan(source)
        if not plans:
            return code

        has_hook = any(plan.kind is ComponentKind.FUNCTION for plan in plans)
        has_hoc = any(plan.kind is ComponentKind.CLASS for plan in plans)
        specifiers = self.library.import_specifiers(has_jsx=False, has_hook=has_hook, has_hoc=has_hoc)
        if has_hoc and not _is_typed(path):
            specifiers = [name for name in specifiers if name != self.library.hoc_props_type]
        updated = add_named_imports(code, self.library.package_name, specifiers, dialect=dialect)

        source = parse_source(updated, path or "<memory>", dialect=dialect)
        wanted: Dict[str, ComponentKind] = {plan.name: plan.kind for plan in plans}
        edits: List[Edit] = []
        for component in iter_components(source, include_hooks=True):
            kind = wanted.get(component.name)
            if kind is ComponentKind.FUNCTION and component.kind is ComponentKind.FUNCTION:
                edit = self._hook_edit(source, component)
                if edit is not None:
                    edits.append(edit)
            elif kind is ComponentKind.CLASS and component.kind is ComponentKind.CLASS:
                edits.extend(self._hoc_edits(source, component, typed=_is_typed(path)))
        if not edits:
            return updated
        self.reporter.debug("injected translation access", [plan.name for plan in plans])
        return apply_edits(source.data, edits)

    # ------------------------------------------------------------ hooks

    def _hook_edit(self, source: SourceFile, component: ComponentInfo) -> Optional[Edit]:
        body = component.body
        if body is None:
            return None
        declaration = self.library.hook_declaration
        if body.type == "statement_block":
            indent = self._body_indent(source, body)
            return Edit(body.start_byte + 1, body.start_byte + 1, f"\n{indent}{declaration}")
        # concise arrow body: turn it into a block that returns the expression
        outer = indentation_at(source, component.declaration.start_byte)
        inner = outer + "  "
        expression = source.text_of(body)
        replacement = f"{{\n{inner}{declaration}\n{inner}return {expression};\n{outer}}}"
        return Edit(body.start_byte, body.end_byte, replacement)

    @staticmethod
    def _body_indent(source: SourceFile, body: Node) -> str:
        statements = [child for child in body.named_children if child.type != "comment"]
        if statements:
            indent = indentation_at(source, statements[0].start_byte)
            head = source.data[source.data.rfind(b"\n", 0, statements[0].start_byte) + 1 : statements[0].start_byte]
            if not head.strip():
                return indent
        return indentation_at(source, body.start_byte) + "  "

    # ------------------------------------------------------------ HOC

    def _hoc_edits(self, source: SourceFile, component: ComponentInfo, *, typed: bool) -> List[Edit]:
        library = self.library
        class_node = component.node
        edits: List[Edit] = []

        if typed:
            edits.extend(self._props_type_edits(source, class_node))

        body = class_node.child_by_field_name("body")
        if body is not None:
            for member in body.named_children:
                edit = self._member_destructuring(source, member)
                if edit is not None:
                    edits.append(edit)

        public_name = component.name
        private_name = f"{public_name}{HOC_SUFFIX}"
        name_node = class_node.child_by_field_name("name")
        if name_node is not None:
            edits.append(Edit(name_node.start_byte, name_node.end_byte, private_name))
        else:
            keyword = class_node.children[0]
            edits.append(Edit(keyword.end_byte, keyword.end_byte, f" {private_name}"))

        statement = component.declaration
        wrapper = library.generate_hoc_wrapper(private_name)
        if component.default_export:
            edits.append(Edit(statement.start_byte, class_node.start_byte, ""))
            tail = f"\n\nexport default {wrapper};"
        elif component.exported:
            edits.append(Edit(statement.start_byte, class_node.start_byte, ""))
            tail = f"\n\nexport const {public_name} = {wrapper};"
        else:
            tail = f"\n\nconst {public_name} = {wrapper};"
        edits.append(Edit(statement.end_byte, statement.end_byte, tail))
        return edits

    def _props_type_edits(self, source: SourceFile, class_node: Node) -> List[Edit]:
        props_type = self.library.hoc_props_type
        edits: List[Edit] = []
        type_arguments = extends_type_arguments(class_node)
        if type_arguments is not None:
            args = [child for child in type_arguments.named_children if child.type != "comment"]
            if args and props_type not in source.text_of(args[0]):
                edits.append(Edit(args[0].end_byte, args[0].end_byte, f" & {props_type}"))
        else:
            base = class_heritage_base(source, class_node)
            if base is not None:
                edits.append(Edit(base.end_byte, base.end_byte, f"<{props_type}>"))

        body = class_node.child_by_field_name("body")
        for member in body.named_children if body is not None else []:
            if member.type != "method_definition":
                continue
            if source.text_of(member.child_by_field_name("name")) != "constructor":
                continue
            parameters = member.child_by_field_name("parameters")
            first = parameters.named_children[0] if parameters is not None and parameters.named_children else None
            annotation = first.child_by_field_name("type") if first is not None else None
            if annotation is None or not annotation.named_children:
                continue
            annotated = annotation.named_children[0]
            if props_type not in source.text_of(annotated):
                edits.append(Edit(annotated.end_byte, annotated.end_byte, f" & {props_type}"))
        return edits

    def _member_destructuring(self, source: SourceFile, member: Node) -> Optional[Edit]:
        if member.type == "method_definition":
            if source.text_of(member.child_by_field_name("name")) == "constructor":
                return None
            function = member
        elif member.type in {"public_field_definition", "field_definition"}:
            function = member.child_by_field_name("value")
            if function is None or function.type not in {"arrow_function", "function_expression", "function"}:
                return None
        else:
            return None
        if not self.library.component_uses_translation(source, function):
            return None
        if self.library.is_translation_available_in_scope(source, function):
            return None
        body = function.child_by_field_name("body")
        if body is None:
            return None
        declaration = self.library.props_destructuring
        if body.type == "statement_block":
            indent = self._body_indent(source, body)
            return Edit(body.start_byte + 1, body.start_byte + 1, f"\n{indent}{declaration}")
        outer = indentation_at(source, member.start_byte)
        inner = outer + "  "
        replacement = f"{{\n{inner}{declaration}\n{inner}return {source.text_of(body)};\n{outer}}}"
        return Edit(body.start_byte, body.end_byte, replacement)
