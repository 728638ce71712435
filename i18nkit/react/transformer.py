"""Rewrites extracted React literals into translation-library calls."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from tree_sitter import Node

from ..errors import ErrorCategory
from ..libraries import ReactLibrary
from ..messages import create_message_with_options
from ..policy import ErrorPolicy
from ..reporting import Reporter, silent_reporter
from ..structures import ComponentKind, Edit, ExtractedString, StringContext
from ..syntax import SourceFile, apply_edits, dialect_for_path, parse_source, read_source, trimmed_span
from .components import iter_components
from .extractor import ReactTextExtractor, mixed_children_span
from .hooks import add_to_hook_dependencies
from .imports import ReactImportManager
from .injector import ReactComponentInjector

# how far (in lines) a record may drift from its recorded position
LINE_TOLERANCE = 5


class ReactTransformer:
    """Replaces literals with calls and wires imports and component access."""

    def __init__(
        self,
        library: ReactLibrary,
        *,
        import_manager: ReactImportManager | None = None,
        injector: ReactComponentInjector | None = None,
        reporter: Reporter | None = None,
        policy: ErrorPolicy | None = None,
    ) -> None:
        self.library = library
        self.reporter = reporter or silent_reporter()
        self.policy = policy
        self.import_manager = import_manager or ReactImportManager(library)
        self.injector = injector or ReactComponentInjector(library, reporter=self.reporter)
        self.extractor = ReactTextExtractor(library, reporter=self.reporter)

    def transform(
        self,
        path: str | Path,
        extracted: Sequence[ExtractedString],
        include_default: bool = False,
        *,
        text: str | None = None,
    ) -> str:
        """Return the rewritten source of ``path``; the input when nothing applies."""

        path = str(path)
        code = text if text is not None else read_source(path)
        wanted = [item for item in extracted if item.semantic_id]
        if len(wanted) != len(extracted):
            self._fail(path, f"{len(extracted) - len(wanted)} string(s) without an identifier were skipped")
        if not wanted:
            return code

        dialect = dialect_for_path(path)
        source = parse_source(code, path, dialect=dialect)
        matches = self._locate(source, wanted)
        if not matches:
            return code

        spans = self._component_spans(source)
        edits: List[Edit] = []
        replaced: List[ExtractedString] = []
        for record, node in matches:
            kind = self._effective_kind(node, spans)
            edit = self._replacement(source, record, node, kind, include_default)
            if edit is None:
                continue
            edits.append(edit)
            replaced.append(replace(record, component_kind=kind))

        if not edits:
            return code
        updated = apply_edits(source.data, edits)
        updated = self.import_manager.add_component_import(updated, replaced, path=path)
        updated = self.import_manager.handle_global_imports(
            updated, [item for item in replaced if item.component_kind is ComponentKind.OTHER], path=path
        )
        updated = self.injector.inject(updated, path=path)
        updated = add_to_hook_dependencies(updated, self.library.translation_var, dialect=dialect)
        return updated

    # ------------------------------------------------------------ matching

    def _locate(self, source: SourceFile, wanted: Sequence[ExtractedString]) -> List[Tuple[ExtractedString, Node]]:
        candidates = self.extractor.scan(source)
        by_position: Dict[Tuple[int, int], int] = {
            (record.line, record.column): index for index, (record, _node) in enumerate(candidates)
        }
        used: set[int] = set()
        matches: List[Tuple[ExtractedString, Node]] = []
        for record in wanted:
            index = by_position.get((record.line, record.column))
            if index is None or index in used or candidates[index][0].original != record.original:
                index = self._nearest(candidates, record, used)
            if index is None:
                self._fail(record.file_path, f'Could not locate "{record.original}" at line {record.line}')
                continue
            used.add(index)
            matches.append((record, candidates[index][1]))
        return matches

    @staticmethod
    def _nearest(
        candidates: Sequence[Tuple[ExtractedString, Node]],
        record: ExtractedString,
        used: set[int],
    ) -> Optional[int]:
        best: Optional[int] = None
        best_distance = LINE_TOLERANCE + 1
        for index, (candidate, _node) in enumerate(candidates):
            if index in used or candidate.original != record.original:
                continue
            distance = abs(candidate.line - record.line)
            if distance < best_distance:
                best, best_distance = index, distance
        return best

    # ------------------------------------------------------- component kind

    @staticmethod
    def _component_spans(source: SourceFile) -> List[Tuple[int, int, ComponentKind]]:
        return [
            (component.node.start_byte, component.node.end_byte, component.kind)
            for component in iter_components(source, include_hooks=True)
        ]

    @staticmethod
    def _effective_kind(node: Node, spans: Sequence[Tuple[int, int, ComponentKind]]) -> ComponentKind:
        """Kind of the top-level component that will receive translation access.

        Literals outside any injectable component use the global accessor.
        """

        for start, end, kind in spans:
            if start <= node.start_byte and node.end_byte <= end:
                return kind
        return ComponentKind.OTHER

    # ---------------------------------------------------------- replacement

    def _replacement(
        self,
        source: SourceFile,
        record: ExtractedString,
        node: Node,
        kind: ComponentKind,
        include_default: bool,
    ) -> Optional[Edit]:
        library = self.library
        if record.is_template_literal:
            message, values = create_message_with_options(record.message_key, record.template_variables)
        else:
            message, values = record.message_key, {}

        if record.context is StringContext.JSX_TEXT:
            component = library.generate_jsx_component(record.semantic_id, values, include_default, message)
            if node.type == "jsx_element":
                span = mixed_children_span(source, node)
                if span is None:
                    return None
                return Edit(span[0], span[1], component)
            start, end = trimmed_span(source, node)
            return Edit(start, end, component)

        call = library.generate_function_call(
            record.semantic_id,
            values,
            include_default,
            message,
            global_context=kind is ComponentKind.OTHER,
        )
        if record.context is StringContext.JSX_ATTRIBUTE:
            return Edit(node.start_byte, node.end_byte, "{" + call + "}")
        return Edit(node.start_byte, node.end_byte, call)

    def _fail(self, path: str, message: str) -> None:
        text = f"{path}: {message}"
        if self.policy is not None:
            self.policy.handle_error(ErrorCategory.TRANSFORM, text)
        else:
            self.reporter.warn(text)
