"""Rewrites extracted Vue text into ``$t``/``t`` calls."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import ErrorCategory
from ..libraries import VueLibrary
from ..messages import create_message_with_options
from ..policy import ErrorPolicy
from ..reporting import Reporter, silent_reporter
from ..structures import ComponentKind, Edit, ExtractedString, StringContext
from ..syntax import apply_edits, read_source
from .extractor import VueTarget, VueTextExtractor
from .imports import VueImportManager
from .injector import VueComponentInjector
from .sfc import parse_vue

LINE_TOLERANCE = 5


class VueTransformer:
    """Replaces template and script text with translation calls."""

    def __init__(
        self,
        library: VueLibrary,
        *,
        import_manager: VueImportManager | None = None,
        injector: VueComponentInjector | None = None,
        reporter: Reporter | None = None,
        policy: ErrorPolicy | None = None,
    ) -> None:
        self.library = library
        self.reporter = reporter or silent_reporter()
        self.policy = policy
        self.import_manager = import_manager or VueImportManager(library)
        self.injector = injector or VueComponentInjector(library)
        self.extractor = VueTextExtractor(library, reporter=self.reporter)

    def transform(
        self,
        path: str | Path,
        extracted: Sequence[ExtractedString],
        include_default: bool = False,
        *,
        text: str | None = None,
    ) -> str:
        """Return the rewritten file; ``include_default`` has no Vue call shape and is ignored."""

        path = str(path)
        code = text if text is not None else read_source(path)
        wanted = [item for item in extracted if item.semantic_id]
        if len(wanted) != len(extracted):
            self._fail(path, f"{len(extracted) - len(wanted)} string(s) without an identifier were skipped")
        if not wanted:
            return code

        document = parse_vue(code, path)
        matches = self._locate(self.extractor.scan(document), wanted)
        if not matches:
            return code

        edits = [self._replacement(record, target) for record, target in matches]
        updated = apply_edits(document.data, edits)

        script_kinds = {record.component_kind for record, _ in matches if record.context is StringContext.SCRIPT}
        if script_kinds & {ComponentKind.SETUP, ComponentKind.OTHER}:
            updated = self._wire_script(updated, path)
        return updated

    def _wire_script(self, code: str, path: str) -> str:
        document = parse_vue(code, path)
        block = document.script
        if block is None:
            return code
        kind = document.component_kind
        script = document.block_text(block)
        script = self.import_manager.add_i18n_imports(script, kind, dialect=block.dialect)
        if kind is ComponentKind.SETUP:
            script = self.injector.inject(script, dialect=block.dialect)
        return document.replace_block(block, script)

    # ------------------------------------------------------------ matching

    def _locate(
        self,
        candidates: Sequence[Tuple[ExtractedString, VueTarget]],
        wanted: Sequence[ExtractedString],
    ) -> List[Tuple[ExtractedString, VueTarget]]:
        by_position: Dict[Tuple[int, int, str], int] = {}
        for index, (record, _target) in enumerate(candidates):
            by_position.setdefault((record.line, record.column, record.original), index)
        used: set[int] = set()
        matches: List[Tuple[ExtractedString, VueTarget]] = []
        for record in wanted:
            index = by_position.get((record.line, record.column, record.original))
            if index is None or index in used:
                index = self._nearest(candidates, record, used)
            if index is None:
                self._fail(record.file_path, f'Could not locate "{record.original}" at line {record.line}')
                continue
            used.add(index)
            matches.append((record, candidates[index][1]))
        return matches

    @staticmethod
    def _nearest(
        candidates: Sequence[Tuple[ExtractedString, VueTarget]],
        record: ExtractedString,
        used: set[int],
    ) -> Optional[int]:
        best: Optional[int] = None
        best_distance = LINE_TOLERANCE + 1
        for index, (candidate, _target) in enumerate(candidates):
            if index in used or candidate.original != record.original or candidate.context is not record.context:
                continue
            distance = abs(candidate.line - record.line)
            if distance < best_distance:
                best, best_distance = index, distance
        return best

    # ---------------------------------------------------------- replacement

    def _replacement(self, record: ExtractedString, target: VueTarget) -> Edit:
        library = self.library
        if record.is_template_literal:
            _message, values = create_message_with_options(record.message_key, record.template_variables)
        else:
            values = {}
        quote = "'" if target.quote == '"' else '"'
        key = record.semantic_id

        if record.context is StringContext.SCRIPT:
            text = library.script_call(key, values, options_api=record.component_kind is ComponentKind.OPTIONS)
        elif record.context is StringContext.TEXT_NODE:
            text = "{{ " + library.template_call(key, values) + " }}"
        elif record.context is StringContext.STATIC_ATTRIBUTE:
            text = f':{target.attribute_name or record.attribute_name}="{library.template_call(key, values)}"'
        else:
            text = library.template_call(key, values, quote=quote)
        return Edit(target.start, target.end, text)

    def _fail(self, path: str, message: str) -> None:
        text = f"{path}: {message}"
        if self.policy is not None:
            self.policy.handle_error(ErrorCategory.TRANSFORM, text)
        else:
            self.reporter.warn(text)
