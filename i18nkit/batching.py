"""Concurrency-bounded batch calls against an identifier/translation provider."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence

from .concurrency import ConcurrencyController
from .errors import AbortRequested, ErrorCategory, ProviderError
from .policy import ErrorPolicy
from .providers import DEFAULT_TIMEOUT, Provider, RetryPolicy
from .reporting import Reporter, silent_reporter
from .structures import BatchErr, BatchOk, BatchResult, Translations

ID_BATCH_SIZE = 10
DEFAULT_TRANSLATION_BATCH_SIZE = 20
SEQUENTIAL_DELAY = 0.5


def chunk(items: Sequence[Any], size: int) -> List[List[Any]]:
    size = max(1, size)
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


def chunk_translations(entries: Mapping[str, Mapping[str, str]], size: int) -> List[Translations]:
    """Split ``entries`` into ordered batches of at most ``size`` keys."""

    keys = list(entries)
    return [{key: dict(entries[key]) for key in part} for part in chunk(keys, size)]


def _raise_abort(settled: Sequence[Any]) -> None:
    for result in settled:
        if isinstance(result, AbortRequested):
            raise result


def merge_translated(original: Translations, translated: Translations, target_locale: str) -> Translations:
    """Take the target text of ``translated`` for keys of ``original`` only.

    Source text and unknown keys coming back from a provider are ignored, and
    an existing target text is never replaced.
    """

    merged: Translations = {}
    for key, entry in original.items():
        filled = dict(entry)
        answer = translated.get(key) or {}
        text = answer.get(target_locale)
        if not filled.get(target_locale) and isinstance(text, str) and text:
            filled[target_locale] = text
        merged[key] = filled
    return merged


class BatchProcessor:
    """Runs provider requests through a :class:`ConcurrencyController`.

    Every request is retried by :class:`RetryPolicy` under a per-request
    timeout. Results are collected per batch index so a failed batch
    never disturbs the order or content of the others.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        max_concurrency: int = 5,
        retry: RetryPolicy | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        source_locale: str = "zh-CN",
        target_locale: str = "en-US",
        reporter: Reporter | None = None,
        policy: ErrorPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.controller = ConcurrencyController(max_concurrency)
        self.retry = retry or RetryPolicy()
        self.timeout = timeout
        self.source_locale = source_locale
        self.target_locale = target_locale
        self.reporter = reporter or silent_reporter()
        self.policy = policy
        self._sleep = sleep

    # ------------------------------------------------------------ controls

    def adjust_concurrency(self, max_concurrency: int) -> None:
        """Swap in a controller with a new limit; running work keeps the old one."""

        if max_concurrency < 1:
            self.reporter.warn(f"Invalid concurrency {max_concurrency}; it must be at least 1.")
            return
        self.reporter.info(
            f"Adjusting max concurrency: {self.controller.max_concurrency} -> {max_concurrency}"
        )
        self.controller = ConcurrencyController(max_concurrency)

    def get_concurrency_status(self) -> Dict[str, int]:
        return self.controller.get_status()

    async def _request(self, factory: Callable[[], Awaitable[Any]]) -> Any:
        return await self.retry.run(factory, timeout=self.timeout, sleep=self._sleep, reporter=self.reporter)

    def _record(self, category: ErrorCategory, message: str) -> None:
        if self.policy is not None:
            self.policy.handle_error(category, message)
        else:
            self.reporter.error(message)

    # --------------------------------------------------------- identifiers

    async def _ids_for_chunk(self, texts: Sequence[str]) -> List[str]:
        return await self._request(lambda: self.provider.generate_ids(list(texts)))

    async def generate_semantic_ids(self, texts: Sequence[str], batch_size: int = ID_BATCH_SIZE) -> List[str]:
        """Identifiers for ``texts`` in order; raises if any chunk failed."""

        if not texts:
            return []
        if len(texts) <= batch_size:
            return await self._ids_for_chunk(texts)

        batches = chunk(texts, batch_size)
        self.reporter.info(f"Splitting {len(texts)} texts into {len(batches)} batches of {batch_size}")
        futures = [self.controller.add(lambda part=part: self._ids_for_chunk(part)) for part in batches]
        settled = await asyncio.gather(*futures, return_exceptions=True)
        failures = [result for result in settled if isinstance(result, BaseException)]
        if failures:
            raise ProviderError(
                f"{len(failures)}/{len(batches)} identifier batches failed: {failures[0]}",
                retryable=False,
            )
        ids: List[str] = []
        for result in settled:
            ids.extend(result)  # type: ignore[arg-type]
        return ids

    async def generate_ids_for_files(self, texts_by_file: Mapping[str, Sequence[str]]) -> Dict[str, List[str]]:
        """One controller task per file; a failed file maps to ``[]``."""

        results: Dict[str, List[str]] = {path: [] for path in texts_by_file}
        if not texts_by_file:
            return results
        self.reporter.info(f"Requesting identifiers for {len(texts_by_file)} file(s)...")

        async def for_file(path: str, texts: Sequence[str]) -> None:
            # Chunks run inline: nesting them in the same controller could
            # starve once every slot holds a file task.
            ids: List[str] = []
            try:
                for part in chunk(texts, ID_BATCH_SIZE):
                    ids.extend(await self._ids_for_chunk(part))
            except Exception as exc:
                self._record(
                    ErrorCategory.IDENTIFIER,
                    f"{path}: identifier request failed ({exc}); using local identifiers",
                )
                return
            results[path] = ids
            self.reporter.debug(f"{path}: received {len(ids)} identifiers")

        futures = [self.controller.add(lambda p=path, t=texts: for_file(p, t)) for path, texts in texts_by_file.items()]
        _raise_abort(await asyncio.gather(*futures, return_exceptions=True))
        return results

    # --------------------------------------------------------- translation

    async def _translate_one(self, batch: Translations) -> Translations:
        translated = await self._request(
            lambda: self.provider.translate(
                batch,
                source_locale=self.source_locale,
                target_locale=self.target_locale,
            )
        )
        return merge_translated(batch, translated, self.target_locale)

    async def batch_translate(self, batches: Sequence[Translations]) -> List[BatchResult]:
        """Translate every batch concurrently; result ``i`` belongs to batch ``i``."""

        results: List[BatchResult] = [None] * len(batches)  # type: ignore[list-item]
        if not batches:
            return results
        self.reporter.info(
            f"Translating {len(batches)} batch(es), max concurrency {self.controller.max_concurrency}"
        )

        async def run(index: int, batch: Translations) -> None:
            try:
                data = await self._translate_one(batch)
            except Exception as exc:
                results[index] = BatchErr(index=index, original=batch, error=exc)
                self._record(ErrorCategory.TRANSLATION, f"Translation batch {index + 1} failed: {exc}")
                return
            results[index] = BatchOk(index=index, data=data)
            if self.policy is not None:
                self.policy.record_success()
            self.reporter.success(f"Translation batch {index + 1}/{len(batches)} done")

        futures = [self.controller.add(lambda i=index, b=batch: run(i, b)) for index, batch in enumerate(batches)]
        _raise_abort(await asyncio.gather(*futures, return_exceptions=True))

        failed = sum(1 for result in results if not result.ok)
        if failed:
            self.reporter.warn(f"Batch translation finished: {len(batches) - failed} succeeded, {failed} failed")
        else:
            self.reporter.success(f"All {len(batches)} translation batches succeeded")
        return results

    async def retry_sequentially(
        self,
        results: Sequence[BatchResult],
        *,
        delay: float = SEQUENTIAL_DELAY,
    ) -> List[BatchResult]:
        """Re-run failed batches one at a time, pausing ``delay`` seconds between them."""

        updated = list(results)
        failed = [result for result in results if not result.ok]
        if not failed:
            return updated
        self.reporter.info(f"Retrying {len(failed)} failed batch(es) sequentially...")
        for position, result in enumerate(failed):
            if position:
                await self._sleep(delay)
            try:
                data = await self._translate_one(result.original)
            except Exception as exc:
                updated[result.index] = BatchErr(index=result.index, original=result.original, error=exc)
                self._record(
                    ErrorCategory.TRANSLATION,
                    f"Translation batch {result.index + 1} failed again: {exc}; original content kept",
                )
                continue
            updated[result.index] = BatchOk(index=result.index, data=data)
        return updated
