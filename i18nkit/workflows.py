"""High-level orchestration of the generate, translate and restore workflows."""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

from .adapters import FrameworkAdapter, build_adapter
from .batching import BatchProcessor, chunk_translations
from .configuration import I18nKitConfig, validate_provider_settings
from .errors import ErrorCategory, I18nKitError, LocaleConflictError, SourceParseError
from .ids import IdentifierAssigner, IdGenerator, collect_existing_ids
from .locale_files import (
    TRANSLATIONS_FILE,
    UNTRANSLATED_FILE,
    LocaleFileManager,
    dump_json,
    find_conflicting_keys,
    is_valid_translation,
)
from .policy import ErrorPolicy
from .providers import Provider, build_provider
from .reporting import Reporter, silent_reporter
from .sources import collect_files
from .syntax import read_source
from .structures import ExtractedString, Translations

MODES = ("generate", "pick", "translate", "merge", "restore", "export", "automatic")


@dataclass
class WorkflowSummary:
    """Report returned after one workflow run."""

    mode: str
    files_scanned: int = 0
    files_changed: int = 0
    strings_found: int = 0
    identifiers: int = 0
    entries_added: int = 0
    entries_translated: int = 0
    entries_pending: int = 0
    failed_batches: int = 0
    elapsed_seconds: float = 0.0
    changed_files: List[str] = field(default_factory=list)
    error_messages: List[str] = field(default_factory=list)

    def absorb(self, other: "WorkflowSummary") -> None:
        """Fold the counters of a sub-run into this summary."""

        for name in (
            "files_scanned",
            "files_changed",
            "strings_found",
            "identifiers",
            "entries_added",
            "entries_translated",
            "failed_batches",
        ):
            setattr(self, name, getattr(self, name) + getattr(other, name))
        self.entries_pending = other.entries_pending
        self.changed_files.extend(other.changed_files)


def group_by_file(extracted: Sequence[ExtractedString]) -> "OrderedDict[str, List[ExtractedString]]":
    groups: "OrderedDict[str, List[ExtractedString]]" = OrderedDict()
    for item in extracted:
        groups.setdefault(item.file_path, []).append(item)
    return groups


class WorkflowRunner:
    """Coordinates extraction, identifier assignment, rewriting and locale files."""

    def __init__(
        self,
        config: I18nKitConfig,
        *,
        custom: bool = False,
        reporter: Reporter | None = None,
        policy: ErrorPolicy | None = None,
        provider: Provider | None = None,
        skip_llm: bool = False,
        dry_run: bool = False,
        provider_debug: bool = False,
    ) -> None:
        self.config = config
        self.custom = custom
        self.reporter = reporter or silent_reporter()
        self.policy = policy or ErrorPolicy(reporter=self.reporter)
        self.skip_llm = skip_llm
        self.dry_run = dry_run
        self.provider_debug = provider_debug
        self._provider = provider
        self._owns_provider = provider is None
        self.adapter: FrameworkAdapter = build_adapter(
            config.framework,
            config.library_name,
            t_import=config.paths.t_import,
            namespace=config.namespace,
            reporter=self.reporter,
            policy=self.policy,
        )
        self.locales = LocaleFileManager(config, custom, reporter=self.reporter)

    # ------------------------------------------------------------ plumbing

    @property
    def source_locale(self) -> str:
        return self.config.locale.source

    @property
    def target_locale(self) -> str:
        return self.config.locale.target

    def provider(self) -> Provider:
        if self._provider is None:
            if self.config.provider != "echo":
                validate_provider_settings(self.config)
            self._provider = build_provider(
                self.config.provider,
                model=self.config.model,
                timeout=self.config.timeout,
                overrides=self.config.prompts.overrides(),
                source_locale=self.source_locale,
                dify_id=self.config.dify.id_generation.endpoint(),
                dify_translation=self.config.dify.translation.endpoint(),
                environ=self.config.environment,
                debug=self.provider_debug,
            )
        return self._provider

    def processor(self, max_concurrency: int) -> BatchProcessor:
        return BatchProcessor(
            self.provider(),
            max_concurrency=max_concurrency,
            retry=self.config.retry.policy(),
            timeout=self.config.timeout,
            source_locale=self.source_locale,
            target_locale=self.target_locale,
            reporter=self.reporter,
            policy=self.policy,
        )

    async def aclose(self) -> None:
        if self._provider is not None and self._owns_provider:
            await self._provider.aclose()

    def source_files(self, target: str | Path | None = None) -> List[Path]:
        root = Path(target) if target else self.config.resolve(self.config.paths.source)
        return collect_files(
            root,
            self.adapter.suffixes,
            include=self.config.include,
            exclude=self.config.exclude,
        )

    def _finish(self, summary: WorkflowSummary, started: float) -> WorkflowSummary:
        summary.elapsed_seconds = time.time() - started
        summary.error_messages = self.policy.messages()
        return summary

    # ------------------------------------------------------------ generate

    async def generate(self, target: str | Path | None = None) -> WorkflowSummary:
        """Extract text, assign identifiers, rewrite sources and record new entries."""

        started = time.time()
        summary = WorkflowSummary(mode="generate")
        files = self.source_files(target)
        summary.files_scanned = len(files)
        if not files:
            self.reporter.info("No source files found.")
            return self._finish(summary, started)
        self.reporter.info(f"Found {len(files)} {self.config.framework} file(s).")

        extracted = self.adapter.get_text_extractor().extract_from_files(files)
        summary.strings_found = len(extracted)
        if not extracted:
            self.reporter.info("No text to extract.")
            return self._finish(summary, started)

        # Parse failures in the locale file abort here, before any source is touched.
        locale_map = self.locales.load_locale(self.source_locale, strict=True)
        groups = group_by_file(extracted)
        sources = {path: read_source(path) for path in groups}
        existing = set(locale_map) | collect_existing_ids(sources.values(), namespace=self.config.namespace)

        generator = IdGenerator(
            existing,
            anchor=self.config.id_prefix.anchor,
            prefix=self.config.id_prefix.value,
            dictionary=self.config.dictionary,
        )
        assigner = IdentifierAssigner(
            generator,
            processor=None if self.skip_llm else self.processor(self.config.concurrency.id_generation),
            known_texts=self.locales.known_texts(self.source_locale),
            reporter=self.reporter,
            policy=self.policy,
        )
        assigned = await assigner.assign(extracted)
        summary.identifiers = len(set(assigned.values()))

        for file_path, items in groups.items():
            self.reporter.info(f"{file_path} ({len(items)}):")
            for index, item in enumerate(items, start=1):
                self.reporter.info(f'  {index}. "{item.original}" -> {item.semantic_id} ({item.context.value})')

        if self.dry_run:
            self.reporter.info("Dry run: no files written.")
            return self._finish(summary, started)

        entries: Dict[str, str] = {}
        for item in extracted:
            entries.setdefault(item.semantic_id, item.display_text)
        added, _updated = self.locales.update_locale(self.source_locale, entries)
        summary.entries_added = added
        if self.target_locale != self.source_locale:
            self.locales.update_locale(self.target_locale, {key: "" for key in entries}, overwrite=False)

        transformer = self.adapter.get_transformer()
        for file_path, items in groups.items():
            original = sources[file_path]
            try:
                updated = transformer.transform(file_path, items, self.config.include_default, text=original)
            except I18nKitError:
                raise
            except Exception as exc:
                self.policy.handle_error(ErrorCategory.TRANSFORM, f"Could not rewrite {file_path}: {exc}")
                continue
            if updated == original:
                continue
            Path(file_path).write_text(updated, encoding="utf-8")
            summary.files_changed += 1
            summary.changed_files.append(file_path)
            self.policy.record_success()
            self.reporter.success(f"Rewrote {file_path}")
        return self._finish(summary, started)

    # ---------------------------------------------------------------- pick

    def pick(self) -> WorkflowSummary:
        """Split the locale files into untranslated and translated working files."""

        started = time.time()
        summary = WorkflowSummary(mode="pick")
        source = self.locales.load_locale(self.source_locale, strict=True)
        target = self.locales.load_locale(self.target_locale, strict=True)

        untranslated: Translations = {}
        translated: Translations = {}
        for key, text in source.items():
            value = target.get(key, "")
            entry = {self.source_locale: text, self.target_locale: value}
            if is_valid_translation(value):
                translated[key] = entry
            else:
                untranslated[key] = entry

        self.locales.write_working_file(UNTRANSLATED_FILE, untranslated)
        self.locales.write_working_file(TRANSLATIONS_FILE, translated)
        summary.entries_pending = len(untranslated)
        summary.entries_translated = len(translated)
        self.reporter.info(
            f"{len(untranslated)} entries to translate, {len(translated)} already translated "
            f"({self.locales.description})"
        )
        return self._finish(summary, started)

    # ----------------------------------------------------------- translate

    async def translate(self) -> WorkflowSummary:
        """Machine-translate ``untranslated.json`` in place."""

        started = time.time()
        summary = WorkflowSummary(mode="translate")
        entries = self.locales.load_working_file(UNTRANSLATED_FILE)
        pending = {key: entry for key, entry in entries.items() if not is_valid_translation(entry.get(self.target_locale))}
        if not pending:
            self.reporter.info("Nothing to translate.")
            return self._finish(summary, started)

        processor = self.processor(self.config.concurrency.translation)
        batches = chunk_translations(pending, self.config.batch_size)
        results = await processor.batch_translate(batches)
        results = await processor.retry_sequentially(results)

        merged: Translations = dict(entries)
        for result in results:
            if result.ok:
                merged.update(result.data)
            else:
                summary.failed_batches += 1
        self.locales.write_working_file(UNTRANSLATED_FILE, merged)

        done = [key for key in pending if is_valid_translation(merged[key].get(self.target_locale))]
        summary.entries_translated = len(done)
        summary.entries_pending = len(pending) - len(done)
        self.reporter.info(
            f"Translated {len(done)} of {len(pending)} entries; "
            f"{summary.failed_batches} batch(es) kept their original content"
        )
        return self._finish(summary, started)

    # --------------------------------------------------------------- merge

    def merge(self) -> WorkflowSummary:
        """Move completed entries into ``translations.json`` and the target locale file."""

        started = time.time()
        summary = WorkflowSummary(mode="merge")
        untranslated = self.locales.load_working_file(UNTRANSLATED_FILE)
        newly: Translations = {}
        still: Translations = {}
        for key, entry in untranslated.items():
            if is_valid_translation(entry.get(self.target_locale)):
                newly[key] = entry
            else:
                still[key] = entry
        summary.entries_pending = len(still)
        if not newly:
            self.reporter.warn("No completed translations to merge.")
            return self._finish(summary, started)

        translations = self.locales.load_working_file(TRANSLATIONS_FILE)
        translations.update(newly)
        self.locales.write_working_file(TRANSLATIONS_FILE, translations)
        self.locales.write_working_file(UNTRANSLATED_FILE, still)
        _added, _updated = self.locales.update_locale(
            self.target_locale,
            {key: entry[self.target_locale] for key, entry in newly.items()},
        )
        summary.entries_translated = len(newly)
        self.reporter.success(f"Merged {len(newly)} translations; {len(still)} still pending")
        return self._finish(summary, started)

    # ------------------------------------------------------------- restore

    def restore(self, target: str | Path | None = None, output: str | Path | None = None) -> WorkflowSummary:
        """Rewrite translation calls back into source-language text."""

        started = time.time()
        summary = WorkflowSummary(mode="restore")
        root = Path(target) if target else self.config.resolve(self.config.paths.source)
        files = self.source_files(root)
        summary.files_scanned = len(files)
        locale_map = self.locales.load_locale(self.source_locale, strict=True)
        transformer = self.adapter.get_restore_transformer()
        base = root if root.is_dir() else root.parent

        for path in files:
            try:
                original = read_source(path)
                restored = transformer.transform(path, locale_map, text=original)
            except SourceParseError as exc:
                self.policy.handle_error(ErrorCategory.PARSE, str(exc))
                continue
            except I18nKitError:
                raise
            except Exception as exc:
                self.policy.handle_error(ErrorCategory.TRANSFORM, f"Could not restore {path}: {exc}")
                continue
            if restored == original:
                continue
            destination = Path(output) / path.relative_to(base) if output else path
            summary.files_changed += 1
            summary.changed_files.append(str(destination))
            if self.dry_run:
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(restored, encoding="utf-8")
            self.reporter.success(f"Restored {destination}")
        return self._finish(summary, started)

    # -------------------------------------------------------------- export

    def export(self, output: str | Path | None = None) -> WorkflowSummary:
        """Merge the primary and custom locale files into the export directory."""

        started = time.time()
        summary = WorkflowSummary(mode="export")
        primary = LocaleFileManager(self.config, False, reporter=self.reporter)
        custom = LocaleFileManager(self.config, True, reporter=self.reporter)
        destination = Path(output) if output else self.config.resolve(self.config.paths.export_locale)

        merged: Dict[str, Dict[str, str]] = {}
        problems: List[str] = []
        for locale in (self.source_locale, self.target_locale):
            base_map = primary.load_locale(locale, strict=True)
            custom_map = custom.load_locale(locale, strict=True)
            conflicts = find_conflicting_keys(base_map, custom_map)
            if conflicts:
                problems.append(f"{locale}: {', '.join(conflicts)}")
            merged[locale] = {**base_map, **custom_map}
        if problems:
            raise LocaleConflictError(
                "Custom locale files redefine keys of the primary ones; resolve these first:\n"
                + "\n".join(f"- {problem}" for problem in problems)
            )

        for locale, messages in merged.items():
            path = destination / f"{locale}.json"
            if not self.dry_run:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(dump_json(messages), encoding="utf-8")
            summary.entries_added += len(messages)
            summary.changed_files.append(str(path))
            self.reporter.info(f"{locale}: {len(messages)} entries -> {path}")
        summary.files_changed = len(merged)
        return self._finish(summary, started)

    # ----------------------------------------------------------- automatic

    async def automatic(self, target: str | Path | None = None) -> WorkflowSummary:
        """generate, pick, translate and merge in sequence."""

        started = time.time()
        summary = WorkflowSummary(mode="automatic")
        summary.absorb(await self.generate(target))
        if self.dry_run:
            return self._finish(summary, started)
        summary.absorb(self.pick())
        summary.absorb(await self.translate())
        summary.absorb(self.merge())
        return self._finish(summary, started)

    async def run(
        self,
        mode: str,
        *,
        target: str | Path | None = None,
        output: str | Path | None = None,
    ) -> WorkflowSummary:
        """Dispatch ``mode`` and release provider resources afterwards."""

        try:
            if mode == "generate":
                return await self.generate(target)
            if mode == "pick":
                return self.pick()
            if mode == "translate":
                return await self.translate()
            if mode == "merge":
                return self.merge()
            if mode == "restore":
                return self.restore(target, output)
            if mode == "export":
                return self.export(output)
            if mode == "automatic":
                return await self.automatic(target)
            raise I18nKitError(f"Unknown mode '{mode}'. Choose one of: {', '.join(MODES)}.")
        finally:
            await self.aclose()

