"""Shared fixtures for the i18nkit test suite."""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from i18nkit.configuration import I18nKitConfig
from i18nkit.providers import Provider
from i18nkit.reporting import Reporter
from i18nkit.structures import Translations


class FakeProvider(Provider):
    """In-process provider with scripted answers and a call log."""

    name = "fake"

    def __init__(self, *, ids: Dict[str, str] | None = None, translations: Dict[str, str] | None = None) -> None:
        super().__init__()
        self.ids = ids or {}
        self.translations = translations or {}
        self.id_calls: List[List[str]] = []
        self.translate_calls: List[Translations] = []
        self.closed = False

    async def generate_ids(self, texts: Sequence[str]) -> List[str]:
        self.id_calls.append(list(texts))
        return [self.ids.get(text, "") for text in texts]

    async def translate(self, batch: Translations, *, source_locale: str, target_locale: str) -> Translations:
        self.translate_calls.append(batch)
        return {
            key: {source_locale: entry.get(source_locale, ""), target_locale: self.translations.get(entry.get(source_locale, ""), "")}
            for key, entry in batch.items()
        }

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def reporter() -> Reporter:
    return Reporter(level="info", stream=io.StringIO(), error_stream=io.StringIO())


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty front-end project with ``src/`` and ``src/locales/``."""

    (tmp_path / "src" / "locales").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def make_config(project: Path):
    def factory(**options) -> I18nKitConfig:
        data = {"root_dir": str(project), "provider": "echo"}
        data.update(options)
        return I18nKitConfig.model_validate(data)

    return factory


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))
