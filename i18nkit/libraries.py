"""Capability descriptors for the supported translation libraries.

A descriptor is a plain frozen value: the calling conventions of one library
(package, hook, HOC, JSX component, call shape) plus pure recognizers and
generators driven by those fields. Exactly one descriptor is active per
framework adapter; variants differ by data, not by subclassing.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from tree_sitter import Node

from .errors import UnsupportedFrameworkError
from .messages import format_values_mapping
from .structures import MessageInfo
from .syntax import (
    BLOCK_TYPES,
    CLASS_TYPES,
    FUNCTION_TYPES,
    SourceFile,
    call_arguments,
    callee_name,
    callee_property,
    decode_js_string,
    jsx_tag_name,
    object_properties,
    unwrap_expression,
    walk,
)


@dataclass(frozen=True)
class ReactLibrary:
    """Calling conventions of one React translation library."""

    name: str
    package_name: str
    hook_name: str
    hook_declaration: str
    translation_var: str
    jsx_component: str
    jsx_id_prop: str
    jsx_default_prop: str
    hoc_name: str
    hoc_props_type: str
    hoc_is_factory: bool
    global_function: str
    global_declaration: str
    call_method: str
    descriptor_call: bool
    default_value_key: str
    registry_function: Optional[str] = None
    supports_namespace: bool = False
    namespace: Optional[str] = None

    # ------------------------------------------------------------ keys

    def qualified_key(self, message_id: str) -> str:
        if self.supports_namespace and self.namespace:
            return f"{self.namespace}:{message_id}"
        return message_id

    def strip_namespace(self, key: str) -> str:
        if self.supports_namespace and ":" in key:
            return key.split(":", 1)[1]
        return key

    @property
    def global_import_name(self) -> str:
        return self.global_function.split(".")[0]

    # ------------------------------------------------------ generation

    def generate_function_call(
        self,
        message_id: str,
        values: Mapping[str, str] | None = None,
        include_default: bool = False,
        default_message: str | None = None,
        *,
        global_context: bool = False,
    ) -> str:
        key = self.qualified_key(message_id)
        default_literal = _json_string(default_message) if include_default and default_message else None

        if self.descriptor_call:
            callee = f"{self.translation_var}.{self.call_method}"
            descriptor = f"{{ id: '{key}'"
            if default_literal:
                descriptor += f", {self.default_value_key}: {default_literal}"
            descriptor += " }"
            if values:
                return f"{callee}({descriptor}, {format_values_mapping(values)})"
            return f"{callee}({descriptor})"

        callee = self.global_function if global_context else self.call_method
        if values:
            if default_literal:
                inline = format_values_mapping(values)[2:-2]
                return f"{callee}('{key}', {{ {self.default_value_key}: {default_literal}, {inline} }})"
            return f"{callee}('{key}', {format_values_mapping(values)})"
        if default_literal:
            return f"{callee}('{key}', {{ {self.default_value_key}: {default_literal} }})"
        return f"{callee}('{key}')"

    def generate_jsx_component(
        self,
        message_id: str,
        values: Mapping[str, str] | None = None,
        include_default: bool = False,
        default_message: str | None = None,
    ) -> str:
        props = f'{self.jsx_id_prop}="{self.qualified_key(message_id)}"'
        if include_default and default_message:
            props += f" {self.jsx_default_prop}={_json_string(default_message)}"
        if values:
            props += f" values={{{format_values_mapping(values)}}}"
        return f"<{self.jsx_component} {props} />"

    def generate_hoc_wrapper(self, component_name: str) -> str:
        if self.hoc_is_factory:
            argument = f"'{self.namespace}'" if self.supports_namespace and self.namespace else ""
            return f"{self.hoc_name}({argument})({component_name})"
        return f"{self.hoc_name}({component_name})"

    def import_specifiers(self, *, has_jsx: bool, has_hook: bool, has_hoc: bool) -> List[str]:
        specifiers: List[str] = []
        if has_jsx:
            specifiers.append(self.jsx_component)
        if has_hook:
            specifiers.append(self.hook_name)
        if has_hoc:
            specifiers.extend([self.hoc_name, self.hoc_props_type])
        return specifiers

    @property
    def props_destructuring(self) -> str:
        return f"const {{ {self.translation_var} }} = this.props;"

    # ----------------------------------------------------- recognition

    def is_translation_call(self, source: SourceFile, call: Node) -> bool:
        function = call.child_by_field_name("function")
        if function is None:
            return False
        if self.descriptor_call:
            return function.type == "member_expression" and callee_property(source, call) == self.call_method
        if function.type == "identifier":
            return source.text_of(function) == self.call_method
        return function.type == "member_expression" and callee_property(source, call) == self.call_method

    def is_translation_component(self, tag_name: str) -> bool:
        return tag_name == self.jsx_component

    def is_hook_declaration(self, source: SourceFile, declarator: Node) -> bool:
        name = declarator.child_by_field_name("name")
        value = unwrap_expression(declarator.child_by_field_name("value"))
        if name is None or value is None or value.type != "call_expression":
            return False
        if source.text_of(value.child_by_field_name("function")) != self.hook_name:
            return False
        if self.hook_declaration.startswith("const {"):
            return name.type == "object_pattern"
        return name.type == "identifier"

    def is_global_declaration(self, source: SourceFile, declarator: Node) -> bool:
        if not self.global_declaration:
            return False
        name = declarator.child_by_field_name("name")
        value = unwrap_expression(declarator.child_by_field_name("value"))
        if name is None or name.type != "identifier" or value is None or value.type != "call_expression":
            return False
        return source.text_of(value.child_by_field_name("function")) == self.global_function

    def hoc_wrapped_component(self, source: SourceFile, expression: Node | None) -> Optional[str]:
        """Name of the component wrapped by a HOC call, or ``None``."""

        expression = unwrap_expression(expression)
        if expression is None or expression.type != "call_expression":
            return None
        function = expression.child_by_field_name("function")
        if function is None:
            return None
        if self.hoc_is_factory:
            if function.type != "call_expression":
                return None
            if source.text_of(function.child_by_field_name("function")) != self.hoc_name:
                return None
        elif source.text_of(function) != self.hoc_name:
            return None
        args = call_arguments(expression)
        if args and args[0].type == "identifier":
            return source.text_of(args[0])
        return None

    def is_hoc_call(self, source: SourceFile, expression: Node | None) -> bool:
        return self.hoc_wrapped_component(source, expression) is not None

    def component_uses_translation(self, source: SourceFile, node: Node) -> bool:
        for child in walk(node):
            if child.type != "call_expression":
                continue
            text = callee_name(source, child)
            if self.descriptor_call:
                if text.endswith(f".{self.call_method}"):
                    return True
            elif text == self.call_method:
                return True
        return False

    def is_translation_available_in_scope(self, source: SourceFile, node: Node) -> bool:
        text = source.text_of(node)
        var = re.escape(self.translation_var)
        hook = re.escape(self.hook_name)
        if self.hook_declaration.startswith("const {"):
            if re.search(rf"const\s*\{{[^}}]*\b{var}\b[^}}]*\}}\s*=\s*{hook}\s*\(", text):
                return True
        elif re.search(rf"const\s+{var}\s*=\s*{hook}\s*\(", text):
            return True
        return bool(
            re.search(rf"props\.{var}\b", text)
            or re.search(rf"const\s*\{{[^}}]*\b{var}\b[^}}]*\}}\s*=\s*(?:this\.)?props\b", text)
        )

    def is_already_internationalized(self, source: SourceFile, node: Node) -> bool:
        parent = node.parent
        while parent is not None:
            if parent.type == "call_expression":
                if self.is_translation_call(source, parent):
                    return True
                if self.registry_function and callee_name(source, parent) == self.registry_function:
                    return True
            if parent.type in {"jsx_element", "jsx_self_closing_element"}:
                if self.is_translation_component(jsx_tag_name(source, parent)):
                    return True
            if parent.type in BLOCK_TYPES or parent.type in FUNCTION_TYPES or parent.type in CLASS_TYPES:
                return False
            parent = parent.parent
        return False

    def message_info_from_call(
        self,
        source: SourceFile,
        call: Node,
        defined_messages: Mapping[str, Mapping[str, MessageInfo]] | None = None,
    ) -> MessageInfo:
        """Decode the id, default text and value expressions of a call."""

        args = call_arguments(call)
        info = MessageInfo()
        if not args:
            return info
        first = unwrap_expression(args[0])
        rest = args[1] if len(args) > 1 else None

        if self.descriptor_call:
            if first is not None and first.type == "object":
                props = object_properties(source, first)
                info.id = _literal_text(source, props.get("id"))
                info.default_message = _literal_text(source, props.get(self.default_value_key))
            elif first is not None and first.type == "member_expression" and defined_messages:
                obj = source.text_of(first.child_by_field_name("object"))
                prop = source.text_of(first.child_by_field_name("property"))
                registered = defined_messages.get(obj, {}).get(prop)
                if registered is not None:
                    info.id = registered.id
                    info.default_message = registered.default_message
            info.values = _values_from_object(source, rest)
            return info

        if first is not None and first.type in {"string", "template_string"}:
            key = _literal_text(source, first)
            info.id = self.strip_namespace(key) if key else None
        options = _values_from_object(source, rest)
        default = options.pop(self.default_value_key, None)
        if default is not None:
            info.default_message = decode_js_string(default)
        info.values = options
        return info


@dataclass(frozen=True)
class VueLibrary:
    """Calling conventions of one Vue translation library."""

    name: str
    package_name: str
    hook_name: str
    translation_var: str = "t"
    template_function: str = "$t"
    supports_namespace: bool = False
    namespace: Optional[str] = None

    @property
    def hook_declaration(self) -> str:
        return f"const {{ {self.translation_var} }} = {self.hook_name}();"

    def qualified_key(self, message_id: str) -> str:
        if self.supports_namespace and self.namespace:
            return f"{self.namespace}:{message_id}"
        return message_id

    def strip_namespace(self, key: str) -> str:
        if ":" in key:
            return key.split(":", 1)[1]
        return key

    def script_call(self, message_id: str, values: Mapping[str, str] | None = None, *, options_api: bool = False) -> str:
        callee = f"this.{self.template_function}" if options_api else self.translation_var
        key = self.qualified_key(message_id)
        if values:
            return f"{callee}('{key}', {format_values_mapping(values)})"
        return f"{callee}('{key}')"

    def template_call(self, message_id: str, values: Mapping[str, str] | None = None, *, quote: str = "'") -> str:
        key = self.qualified_key(message_id)
        if values:
            return f"{self.template_function}({quote}{key}{quote}, {format_values_mapping(values)})"
        return f"{self.template_function}({quote}{key}{quote})"

    def is_translation_call(self, source: SourceFile, call: Node) -> bool:
        function = call.child_by_field_name("function")
        if function is None:
            return False
        names = {self.translation_var, self.template_function}
        if function.type == "identifier":
            return source.text_of(function) in names
        if function.type == "member_expression":
            return callee_property(source, call) in names
        return False

    def is_hook_declaration(self, source: SourceFile, declarator: Node) -> bool:
        name = declarator.child_by_field_name("name")
        value = unwrap_expression(declarator.child_by_field_name("value"))
        if name is None or value is None or value.type != "call_expression":
            return False
        return (
            name.type == "object_pattern"
            and source.text_of(value.child_by_field_name("function")) == self.hook_name
        )

    def is_already_internationalized(self, source: SourceFile, node: Node) -> bool:
        parent = node.parent
        while parent is not None:
            if parent.type == "call_expression" and self.is_translation_call(source, parent):
                return True
            if parent.type in BLOCK_TYPES or parent.type in FUNCTION_TYPES or parent.type in CLASS_TYPES:
                return False
            parent = parent.parent
        return False

    def message_info_from_call(self, source: SourceFile, call: Node) -> MessageInfo:
        args = call_arguments(call)
        info = MessageInfo()
        if not args:
            return info
        first = unwrap_expression(args[0])
        if first is not None and first.type in {"string", "template_string"}:
            key = _literal_text(source, first)
            info.id = self.strip_namespace(key) if key else None
        info.values = _values_from_object(source, args[1] if len(args) > 1 else None)
        return info


def _json_string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _literal_text(source: SourceFile, node: Node | None) -> Optional[str]:
    node = unwrap_expression(node)
    if node is None:
        return None
    if node.type == "string":
        return decode_js_string(source.text_of(node))
    if node.type == "template_string" and not any(
        child.type == "template_substitution" for child in node.children
    ):
        return decode_js_string(source.text_of(node))
    return None


def _values_from_object(source: SourceFile, node: Node | None) -> Dict[str, str]:
    """Property name -> expression text of an object literal argument."""

    values: Dict[str, str] = {}
    node = unwrap_expression(node)
    if node is None or node.type != "object":
        return values
    for name, value in object_properties(source, node).items():
        values[name] = source.text_of(value)
    return values


def react_intl(namespace: str | None = None) -> ReactLibrary:
    return ReactLibrary(
        name="react-intl",
        package_name="react-intl",
        hook_name="useIntl",
        hook_declaration="const intl = useIntl();",
        translation_var="intl",
        jsx_component="FormattedMessage",
        jsx_id_prop="id",
        jsx_default_prop="defaultMessage",
        hoc_name="injectIntl",
        hoc_props_type="WrappedComponentProps",
        hoc_is_factory=False,
        global_function="getIntl",
        global_declaration="const intl = getIntl();",
        call_method="formatMessage",
        descriptor_call=True,
        default_value_key="defaultMessage",
        registry_function="defineMessages",
    )


def react_i18next(namespace: str | None = None) -> ReactLibrary:
    return ReactLibrary(
        name="react-i18next",
        package_name="react-i18next",
        hook_name="useTranslation",
        hook_declaration="const { t } = useTranslation();",
        translation_var="t",
        jsx_component="Trans",
        jsx_id_prop="i18nKey",
        jsx_default_prop="defaults",
        hoc_name="withTranslation",
        hoc_props_type="WithTranslation",
        hoc_is_factory=True,
        global_function="i18next.t",
        global_declaration="",
        call_method="t",
        descriptor_call=False,
        default_value_key="defaultValue",
        supports_namespace=True,
        namespace=namespace or None,
    )


def vue_i18n(namespace: str | None = None) -> VueLibrary:
    return VueLibrary(name="vue-i18n", package_name="vue-i18n", hook_name="useI18n")


def vue_i18next(namespace: str | None = None) -> VueLibrary:
    return VueLibrary(
        name="vue-i18next",
        package_name="i18next-vue",
        hook_name="useTranslation",
        supports_namespace=True,
        namespace=namespace or None,
    )


REACT_LIBRARIES = {"react-intl": react_intl, "react-i18next": react_i18next}
VUE_LIBRARIES = {"vue-i18n": vue_i18n, "vue-i18next": vue_i18next}


def build_react_library(name: str | None, namespace: str | None = None) -> ReactLibrary:
    factory = REACT_LIBRARIES.get((name or "react-i18next").strip().lower())
    if factory is None:
        raise UnsupportedFrameworkError(
            f"Unsupported React translation library '{name}'. "
            f"Choose one of: {', '.join(REACT_LIBRARIES)}."
        )
    return factory(namespace)


def build_vue_library(name: str | None, namespace: str | None = None) -> VueLibrary:
    factory = VUE_LIBRARIES.get((name or "vue-i18n").strip().lower())
    if factory is None:
        raise UnsupportedFrameworkError(
            f"Unsupported Vue translation library '{name}'. "
            f"Choose one of: {', '.join(VUE_LIBRARIES)}."
        )
    return factory(namespace)
