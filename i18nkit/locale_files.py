"""Reading and writing locale files and the translation working files."""

from __future__ import annotations

import json
import re
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .configuration import I18nKitConfig
from .errors import LocaleFileError
from .reporting import Reporter, silent_reporter
from .structures import LocaleMap, Translations

UNTRANSLATED_FILE = "untranslated.json"
TRANSLATIONS_FILE = "translations.json"

_KEY_RE = re.compile(r'"((?:[^"\\]|\\.)+)"\s*:')
_PUNCTUATION_RE = re.compile(r"""[{}\[\]().,;:!?'"`~@#$%^&*+=<>|\\/\-\s，。；：！？、“”‘’（）《》【】…]""")


def flatten(data: Mapping[str, Any], prefix: str = "", separator: str = ".") -> Dict[str, Any]:
    """Collapse nested objects into dot-joined keys."""

    result: Dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}{separator}{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            result.update(flatten(value, name, separator))
        else:
            result[name] = value
    return result


def unflatten(data: Mapping[str, Any], separator: str = ".") -> Dict[str, Any]:
    """Inverse of :func:`flatten`.

    A key whose parent path already holds a plain value keeps its
    remaining dotted path at that level instead of replacing the value.
    """

    result: Dict[str, Any] = {}
    for key, value in data.items():
        parts = key.split(separator)
        current = result
        for index, part in enumerate(parts[:-1]):
            child = current.get(part)
            if child is None:
                child = current[part] = {}
            if not isinstance(child, dict):
                current[separator.join(parts[index:])] = value
                break
            current = child
        else:
            current[parts[-1]] = value
    return result


def is_nested(data: Mapping[str, Any]) -> bool:
    return any(isinstance(value, Mapping) for value in data.values())


def find_duplicate_keys(text: str) -> List[str]:
    """Keys that appear more than once in raw JSON text (at any depth)."""

    counts = Counter(match.group(1) for match in _KEY_RE.finditer(text))
    return [key for key, count in counts.items() if count > 1]


def find_conflicting_keys(first: Mapping[str, Any], second: Mapping[str, Any], prefix: str = "") -> List[str]:
    """Dotted keys present in both mappings with different values."""

    conflicts: List[str] = []
    for key, value in first.items():
        if key not in second:
            continue
        path = f"{prefix}.{key}" if prefix else key
        other = second[key]
        if isinstance(value, Mapping) and isinstance(other, Mapping):
            conflicts.extend(find_conflicting_keys(value, other, path))
        elif value != other:
            conflicts.append(path)
    return conflicts


def is_valid_translation(value: Any) -> bool:
    """True when ``value`` carries real text, not just punctuation or placeholders' braces."""

    if not isinstance(value, str) or not value.strip():
        return False
    if not _PUNCTUATION_RE.sub("", value):
        return False
    return any(char.isalnum() for char in value)


def dump_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2) + "\n"


class LocaleFileManager:
    """Locale files of one directory (the primary or the custom one).

    A locale file is read once per update, merged in memory and written
    once; a file that cannot be parsed stops the update with
    :class:`LocaleFileError` so no translation is ever overwritten by a
    guess.
    """

    def __init__(
        self,
        config: I18nKitConfig,
        custom: bool = False,
        *,
        reporter: Reporter | None = None,
    ) -> None:
        self.config = config
        self.custom = custom
        self.reporter = reporter or silent_reporter()

    @property
    def directory(self) -> Path:
        return self.config.locale_dir(self.custom)

    @property
    def description(self) -> str:
        return "custom directory" if self.custom else "primary directory"

    def locale_path(self, locale: str) -> Path:
        return self.directory / f"{locale}.json"

    def working_path(self, name: str) -> Path:
        return self.directory / name

    # ------------------------------------------------------------ reading

    def _read_json(self, path: Path, *, strict: bool) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        text = path.read_text(encoding="utf-8")
        try:
            data = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as exc:
            if strict:
                raise LocaleFileError(str(path), str(exc)) from exc
            self.reporter.warn(f"Could not parse {path} ({exc}); treating it as empty")
            return {}
        if not isinstance(data, dict):
            if strict:
                raise LocaleFileError(str(path), "expected a JSON object at the root")
            self.reporter.warn(f"{path} does not hold a JSON object; treating it as empty")
            return {}
        duplicates = find_duplicate_keys(text)
        if duplicates:
            self.reporter.warn(f"{path} repeats keys: {', '.join(duplicates)}")
        return data

    def load_locale(self, locale: str, strict: bool = False) -> LocaleMap:
        """Flattened ``id -> text`` map; a missing file is empty."""

        data = self._read_json(self.locale_path(locale), strict=strict)
        if data is None:
            return {}
        return {key: value for key, value in flatten(data).items() if isinstance(value, str)}

    def load_messages(self) -> Dict[str, LocaleMap]:
        locales = (self.config.locale.source, self.config.locale.target)
        return {locale: self.load_locale(locale) for locale in locales}

    def known_texts(self, locale: str | None = None) -> Dict[str, str]:
        """Text -> identifier for an existing locale file (first id wins)."""

        mapping: Dict[str, str] = {}
        for key, text in self.load_locale(locale or self.config.locale.source).items():
            mapping.setdefault(text, key)
        return mapping

    def load_working_file(self, name: str) -> Translations:
        data = self._read_json(self.working_path(name), strict=True)
        if not data:
            return {}
        return {
            key: {locale: text for locale, text in entry.items() if isinstance(text, str)}
            for key, entry in data.items()
            if isinstance(entry, dict)
        }

    # ------------------------------------------------------------ writing

    def _write(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_json(data), encoding="utf-8")

    def write_working_file(self, name: str, data: Translations) -> Path:
        path = self.working_path(name)
        self._write(path, data)
        return path

    def write_locale(self, locale: str, messages: LocaleMap, *, nested: bool = False) -> Path:
        path = self.locale_path(locale)
        self._write(path, unflatten(messages) if nested else dict(messages))
        return path

    def _layout_of(self, locale: str) -> bool:
        """Nesting style to write ``locale`` with, falling back to the source locale's."""

        for candidate in (locale, self.config.locale.source):
            data = self._read_json(self.locale_path(candidate), strict=False)
            if data:
                return is_nested(data)
        return False

    def update_locale(
        self,
        locale: str,
        entries: Mapping[str, str],
        *,
        overwrite: bool = True,
    ) -> Tuple[int, int]:
        """Merge ``entries`` into ``locale`` and return ``(added, updated)``.

        New keys are appended after the existing ones. With ``overwrite``
        false an existing key is never changed. The file is only written
        when something changed.
        """

        path = self.locale_path(locale)
        raw = self._read_json(path, strict=True)
        nested = is_nested(raw) if raw else self._layout_of(locale)
        messages: Dict[str, Any] = flatten(raw or {})

        added = updated = 0
        for key, text in entries.items():
            if key not in messages:
                messages[key] = text
                added += 1
            elif overwrite and messages[key] != text and text:
                messages[key] = text
                updated += 1

        if added or updated:
            self.write_locale(locale, messages, nested=nested)
            self.reporter.info(f"Updated {path.name} ({self.description}): {added} added, {updated} changed")
        return added, updated
