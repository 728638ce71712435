"""Turns ``$t``/``t`` calls in Vue components back into literal text."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional

from ..libraries import VueLibrary
from ..messages import build_string_or_template, fill_placeholders
from ..reporting import Reporter, silent_reporter
from ..structures import Edit, LocaleMap, MessageInfo, TransformContext
from ..syntax import apply_edits, object_properties, parse_source, read_source, walk, walk_pruned
from .imports import VueImportManager
from .sfc import parse_vue

TEXT_CALL_RE = re.compile(r"\{\{\s*\$?t\(\s*(['\"])([^'\"]+)\1\s*(?:,\s*(\{[^{}]+\}))?\s*\)\s*\}\}")
BOUND_ATTRIBUTE_RE = re.compile(r"(?<![\w-]):([\w-]+)=(\"|')\s*\$t\(\s*(['\"])([^'\"]+)\3\s*\)\s*\2")
EXPRESSION_CALL_RE = re.compile(r"(?<![\w.$])\$t\(\s*(['\"])([^'\"]+)\1\s*(?:,\s*(\{[^{}]*\}))?\s*\)")


def parse_values(text: str | None) -> Dict[str, str]:
    """Name -> expression text of an object literal written in a template."""

    if not text:
        return {}
    source = parse_source(f"({text})", dialect="typescript")
    for node in walk(source.root):
        if node.type == "object":
            return {name: source.text_of(value) for name, value in object_properties(source, node).items()}
    return {}


class VueRestoreTransformer:
    """Restores template and script calls from a locale map."""

    def __init__(
        self,
        library: VueLibrary,
        *,
        import_manager: VueImportManager | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.library = library
        self.import_manager = import_manager or VueImportManager(library)
        self.reporter = reporter or silent_reporter()

    def transform(self, path: str | Path, locale_map: LocaleMap, *, text: str | None = None) -> str:
        path = str(path)
        original = text if text is not None else read_source(path)
        context = TransformContext(locale_map=dict(locale_map))

        code = self._restore_script(original, path, context)
        code = self._restore_template(code, path, context)
        if not context.dirty or code == original:
            return original
        return code

    def _lookup(self, key: str, context: TransformContext) -> Optional[str]:
        info = MessageInfo(id=self.library.strip_namespace(key))
        text = context.lookup(info)
        if text is None:
            self.reporter.debug(f"no text for id {key}; call left unchanged")
        return text

    # ------------------------------------------------------------ template

    def _restore_template(self, code: str, path: str, context: TransformContext) -> str:
        document = parse_vue(code, path)
        block = document.template
        if block is None:
            return code
        region = document.block_text(block)

        def bound_attribute(match: re.Match[str]) -> str:
            value = self._lookup(match.group(4), context)
            if value is None or '"' in value or "{{" in value:
                return match.group(0)
            context.dirty = True
            return f'{match.group(1)}="{value}"'

        def text_call(match: re.Match[str]) -> str:
            value = self._lookup(match.group(2), context)
            if value is None:
                return match.group(0)
            context.dirty = True
            return fill_placeholders(value, parse_values(match.group(3)))

        def expression_call(match: re.Match[str]) -> str:
            value = self._lookup(match.group(2), context)
            if value is None:
                return match.group(0)
            context.dirty = True
            return build_string_or_template(value, parse_values(match.group(3)), reporter=self.reporter)

        restored = BOUND_ATTRIBUTE_RE.sub(bound_attribute, region)
        restored = TEXT_CALL_RE.sub(text_call, restored)
        restored = EXPRESSION_CALL_RE.sub(expression_call, restored)
        if restored == region:
            return code
        return document.replace_block(block, restored)

    # ------------------------------------------------------------ script

    def _restore_script(self, code: str, path: str, context: TransformContext) -> str:
        document = parse_vue(code, path)
        block = document.script
        if block is None:
            return code
        script = document.script_source(block)
        if script is None:
            return code

        edits: List[Edit] = []
        done: List[Edit] = []

        def descend(node) -> bool:
            return not any(edit.start <= node.start_byte and node.end_byte <= edit.end for edit in done)

        for node in walk_pruned(script.root, descend):
            if node.type != "call_expression" or not self.library.is_translation_call(script, node):
                continue
            if not descend(node):
                continue
            info = self.library.message_info_from_call(script, node)
            if not info.id:
                continue
            value = self._lookup(info.id, context)
            if value is None:
                continue
            edit = Edit(
                node.start_byte,
                node.end_byte,
                build_string_or_template(value, info.values, reporter=self.reporter),
            )
            edits.append(edit)
            done.append(edit)

        if not edits:
            return code
        context.dirty = True
        restored = apply_edits(script.data, edits)
        restored = self.import_manager.cleanup_variable_statements(restored, dialect=script.dialect)
        restored = self.import_manager.cleanup_imports(restored, dialect=script.dialect)
        return document.replace_block(block, restored)
