"""Turns translation calls in React sources back into literal text.

Restore is total and fails open: a call whose identifier is unknown stays as
it is, and the supporting machinery (imports, hook declarations, HOC
wrapping) is only removed once nothing in the file uses it any more.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from tree_sitter import Node

from ..libraries import ReactLibrary
from ..messages import build_string_or_template, placeholder_names
from ..reporting import Reporter, silent_reporter
from ..structures import Edit, LocaleMap, MessageInfo, TransformContext
from ..syntax import (
    SourceFile,
    ancestors,
    apply_edits,
    dialect_for_path,
    jsx_attribute_name,
    jsx_attribute_value,
    jsx_attributes,
    jsx_tag_name,
    object_properties,
    parse_source,
    quote_js,
    read_source,
    statement_removal,
    walk,
    walk_pruned,
)
from .components import is_class_component
from .extractor import collect_defined_messages
from .imports import ReactImportManager
from .injector import HOC_SUFFIX

_JSX_UNSAFE = set("{}<>")
_TOP_LEVEL_DECLARATIONS = {
    "class_declaration",
    "function_declaration",
    "lexical_declaration",
    "variable_declaration",
    "abstract_class_declaration",
}


def public_component_name(private_name: str) -> Optional[str]:
    """Public name for a class renamed when it was wrapped by a HOC.

    ``LoginWithOutIntl`` and ``_Login`` both map to ``Login``; anything else
    (``__Login``, ``_login``, ``_``) is not a wrapped-class name.
    """

    if private_name.endswith(HOC_SUFFIX) and len(private_name) > len(HOC_SUFFIX):
        return private_name[: -len(HOC_SUFFIX)]
    if private_name.startswith("_") and len(private_name) > 1 and private_name[1].isupper():
        return private_name[1:]
    return None


class ReactRestoreTransformer:
    """Replaces calls and components with the text found in a locale map."""

    def __init__(
        self,
        library: ReactLibrary,
        *,
        import_manager: ReactImportManager | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.library = library
        self.import_manager = import_manager or ReactImportManager(library)
        self.reporter = reporter or silent_reporter()

    def transform(self, path: str | Path, locale_map: LocaleMap, *, text: str | None = None) -> str:
        path = str(path)
        original = text if text is not None else read_source(path)
        dialect = dialect_for_path(path)

        source = parse_source(original, path, dialect=dialect)
        context = TransformContext(
            locale_map=dict(locale_map),
            defined_messages=collect_defined_messages(source, self.library),
            component_name_map=self._wrapper_map(source),
        )
        code = self._restore_calls(source, context)
        code = self._unwrap_components(code, path, context)
        if not context.dirty:
            return original

        manager = self.import_manager
        # dependency arrays first: a leftover [t] keeps the declaration alive
        code = manager.cleanup_hook_dependencies(code, path=path)
        code = manager.cleanup_variable_statements(code, path=path)
        if not self._has_hoc_calls(code, dialect):
            code = manager.cleanup_hoc_props_type(code, path=path)
        code = manager.cleanup_imports(code, path=path)
        return original if code == original else code

    # ------------------------------------------------------------ pre-scan

    def _wrapper_map(self, source: SourceFile) -> Dict[str, str]:
        """Private class name -> public name for ``const X = HOC(Y)`` bindings."""

        mapping: Dict[str, str] = {}
        for node in walk(source.root):
            if node.type != "variable_declarator":
                continue
            wrapped = self.library.hoc_wrapped_component(source, node.child_by_field_name("value"))
            name = node.child_by_field_name("name")
            if wrapped and name is not None and name.type == "identifier":
                mapping[wrapped] = source.text_of(name)
        return mapping

    def _has_hoc_calls(self, code: str, dialect: str) -> bool:
        source = parse_source(code, dialect=dialect)
        return any(
            node.type == "call_expression" and self.library.is_hoc_call(source, node)
            for node in walk(source.root)
        )

    # ------------------------------------------------------------ calls

    def _restore_calls(self, source: SourceFile, context: TransformContext) -> str:
        edits: List[Edit] = []
        replaced: List[Tuple[int, int]] = []

        def descend(node: Node) -> bool:
            return not any(start <= node.start_byte and node.end_byte <= end for start, end in replaced)

        for node in walk_pruned(source.root, descend):
            if any(start <= node.start_byte and node.end_byte <= end for start, end in replaced):
                continue
            edit: Optional[Edit] = None
            if node.type == "call_expression" and self.library.is_translation_call(source, node):
                edit = self._call_edit(source, node, context)
            elif node.type in {"jsx_element", "jsx_self_closing_element"} and self.library.is_translation_component(
                jsx_tag_name(source, node)
            ):
                edit = self._component_edit(source, node, context)
            if edit is not None:
                edits.append(edit)
                replaced.append((edit.start, edit.end))
        if not edits:
            return source.text
        context.dirty = True
        return apply_edits(source.data, edits)

    def _call_edit(self, source: SourceFile, call: Node, context: TransformContext) -> Optional[Edit]:
        info = self.library.message_info_from_call(source, call, context.defined_messages)
        text = self._lookup(info, context)
        if text is None:
            return None
        expression = build_string_or_template(text, info.values, reporter=self.reporter)
        parent = call.parent
        if (
            parent is not None
            and parent.type == "jsx_expression"
            and parent.parent is not None
            and parent.parent.type == "jsx_attribute"
            and expression.startswith("'")
            and '"' not in text
            and "\n" not in text
        ):
            return Edit(parent.start_byte, parent.end_byte, f'"{text}"')
        return Edit(call.start_byte, call.end_byte, expression)

    def _component_edit(self, source: SourceFile, element: Node, context: TransformContext) -> Optional[Edit]:
        info = self._component_info(source, element)
        text = self._lookup(info, context)
        if text is None:
            return None
        in_markup = element.parent is not None and element.parent.type in {"jsx_element", "jsx_fragment"}
        templated = bool(info.values) and bool(placeholder_names(text))
        if templated:
            expression = build_string_or_template(text, info.values, reporter=self.reporter)
            replacement = "{" + expression + "}" if in_markup else expression
        elif in_markup:
            replacement = text if not (_JSX_UNSAFE & set(text)) else "{" + quote_js(text) + "}"
        else:
            replacement = quote_js(text)
        return Edit(element.start_byte, element.end_byte, replacement)

    def _component_info(self, source: SourceFile, element: Node) -> MessageInfo:
        info = MessageInfo()
        for attribute in jsx_attributes(element):
            name = jsx_attribute_name(source, attribute)
            value = jsx_attribute_value(attribute)
            if value is None:
                continue
            if name == self.library.jsx_id_prop and value.type == "string":
                info.id = self.library.strip_namespace(source.text_of(value)[1:-1])
            elif name == self.library.jsx_default_prop and value.type == "string":
                info.default_message = source.text_of(value)[1:-1]
            elif name == "values" and value.type == "jsx_expression":
                inner = value.named_children[0] if value.named_children else None
                info.values = {key: source.text_of(node) for key, node in object_properties(source, inner).items()}
        return info

    def _lookup(self, info: MessageInfo, context: TransformContext) -> Optional[str]:
        if not info.is_valid:
            return None
        text = context.lookup(info)
        if text is None:
            self.reporter.debug(f"no text for id {info.id}; call left unchanged")
        return text

    # ------------------------------------------------------------ HOC

    def _unwrap_components(self, code: str, path: str, context: TransformContext) -> str:
        source = parse_source(code, path, dialect=dialect_for_path(path))
        classes = self._classes(source)
        declared = self._declared_names(source)
        renames: Dict[str, str] = {}
        reexport: Set[str] = set()
        edits: List[Edit] = []

        for statement in source.root.named_children:
            target = statement
            exported = False
            if statement.type == "export_statement":
                exported = True
                inner = statement.child_by_field_name("declaration") or statement.child_by_field_name("value")
                if inner is None:
                    continue
                target = inner

            if target.type in {"lexical_declaration", "variable_declaration"}:
                declarators = [c for c in target.named_children if c.type == "variable_declarator"]
                if len(declarators) != 1:
                    continue
                value = declarators[0].child_by_field_name("value")
                wrapped = self.library.hoc_wrapped_component(source, value)
                public = context.component_name_map.get(wrapped or "")
                if not wrapped or not public or not self._unwrappable(source, classes.get(wrapped)):
                    continue
                renames[wrapped] = public
                if exported:
                    reexport.add(wrapped)
                edits.append(statement_removal(source, statement, swallow_blank_line=True))
            elif exported and target.type == "call_expression":
                wrapped = self.library.hoc_wrapped_component(source, target)
                if not wrapped or not self._unwrappable(source, classes.get(wrapped)):
                    continue
                public = public_component_name(wrapped)
                if public and public not in declared:
                    renames[wrapped] = public
                    edits.append(Edit(target.start_byte, target.end_byte, public))
                else:
                    edits.append(Edit(target.start_byte, target.end_byte, wrapped))

        if not edits:
            return code

        for name, statement in self._class_statements(source).items():
            if name in reexport and statement.type != "export_statement":
                edits.append(Edit(statement.start_byte, statement.start_byte, "export "))

        for node in walk(source.root):
            if node.type in {"identifier", "type_identifier"} and source.text_of(node) in renames:
                if any(edit.start <= node.start_byte and node.end_byte <= edit.end for edit in edits if edit.end > edit.start):
                    continue
                edits.append(Edit(node.start_byte, node.end_byte, renames[source.text_of(node)]))

        context.dirty = True
        return apply_edits(source.data, edits)

    def _unwrappable(self, source: SourceFile, class_node: Node | None) -> bool:
        """A wrapped class may be unwrapped once it no longer calls the translator."""

        if class_node is None:
            return False
        return not self.library.component_uses_translation(source, class_node)

    @staticmethod
    def _classes(source: SourceFile) -> Dict[str, Node]:
        found: Dict[str, Node] = {}
        for node in walk(source.root):
            if node.type in {"class_declaration", "abstract_class_declaration"} and is_class_component(source, node):
                name = node.child_by_field_name("name")
                if name is not None:
                    found[source.text_of(name)] = node
        return found

    @staticmethod
    def _class_statements(source: SourceFile) -> Dict[str, Node]:
        """Top-level statement holding each class declaration, keyed by class name."""

        found: Dict[str, Node] = {}
        for statement in source.root.named_children:
            target = statement
            if statement.type == "export_statement":
                target = statement.child_by_field_name("declaration") or statement
            if target.type in {"class_declaration", "abstract_class_declaration"}:
                name = target.child_by_field_name("name")
                if name is not None:
                    found[source.text_of(name)] = statement
        return found

    @staticmethod
    def _declared_names(source: SourceFile) -> Set[str]:
        names: Set[str] = set()
        for statement in source.root.named_children:
            target = statement
            if statement.type == "export_statement":
                target = statement.child_by_field_name("declaration") or statement
            if target.type not in _TOP_LEVEL_DECLARATIONS:
                continue
            if target.type in {"lexical_declaration", "variable_declaration"}:
                for declarator in target.named_children:
                    name = declarator.child_by_field_name("name") if declarator.type == "variable_declarator" else None
                    if name is not None:
                        names.add(source.text_of(name))
            else:
                name = target.child_by_field_name("name")
                if name is not None:
                    names.add(source.text_of(name))
        for statement in source.root.named_children:
            if statement.type == "import_statement":
                for node in walk(statement):
                    if node.type == "identifier" and not any(a.type == "string" for a in ancestors(node)):
                        names.add(source.text_of(node))
        return names
