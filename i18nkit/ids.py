"""Semantic identifier generation for extracted strings."""

from __future__ import annotations

import hashlib
import re
from collections import OrderedDict
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .errors import ErrorCategory
from .policy import ErrorPolicy
from .reporting import Reporter, silent_reporter
from .structures import ExtractedString
from .syntax import CHINESE_RE

if TYPE_CHECKING:
    from .batching import BatchProcessor

ID_SEPARATOR = "__"
DEFAULT_ANCHOR = "src"

DEFAULT_DICTIONARY: Dict[str, str] = {
    "确认": "confirm",
    "确定": "ok",
    "取消": "cancel",
    "保存": "save",
    "删除": "delete",
    "编辑": "edit",
    "提交": "submit",
    "搜索": "search",
    "查询": "query",
    "重置": "reset",
    "新增": "add",
    "添加": "add",
    "返回": "back",
    "关闭": "close",
    "登录": "login",
    "退出": "logout",
    "成功": "success",
    "失败": "failed",
    "提示": "tip",
    "警告": "warning",
    "错误": "error",
    "加载中": "loading",
    "上一步": "previous",
    "下一步": "next",
    "详情": "detail",
    "操作": "action",
    "导出": "export",
    "导入": "import",
    "刷新": "refresh",
    "设置": "settings",
}

EXISTING_ID_PATTERNS = (
    re.compile(r"""(?:\$t|(?<!\w)t)\s*\(\s*['"]([^'"]+)['"]"""),
    re.compile(r"""(?<![\w$])id:\s*['"]([^'"]+)['"]"""),
    re.compile(r"""(?<![\w-])(?:id|i18nKey)=['"]([^'"]+)['"]"""),
)

_CLEAN_TEXT_RE = re.compile(r"[^\u4e00-\u9fff\w\s]")
_HASH_ID_RE = re.compile(r"^t_[0-9a-z]+$")


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    out: List[str] = []
    while number:
        number, remainder = divmod(number, 36)
        out.append(digits[remainder])
    return "".join(reversed(out))


def text_hash(text: str) -> str:
    """Short, stable base36 digest of ``text``."""

    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()[:8]
    return _base36(int(digest, 16))


def sanitize_semantic_id(value: str, *, preserve_case: bool = False) -> str:
    """Normalise one identifier segment.

    Lowercases, drops punctuation, turns whitespace into ``_``, squeezes
    runs of three or more underscores to ``__`` and removes single interior
    underscores so that ``__`` stays the only separator.
    """

    if _HASH_ID_RE.match(value):
        return value
    result = value if preserve_case else value.lower()
    result = re.sub(r"[^a-zA-Z0-9\s_]", "", result).strip()
    result = re.sub(r"\s+", "_", result)
    result = re.sub(r"_{3,}", ID_SEPARATOR, result)
    result = result.strip("_")
    return re.sub(r"([^_])_([^_])", r"\1\2", result)


def sanitize_prefix(prefix: str) -> str:
    parts = [re.sub(r"[^a-zA-Z0-9]", "", part) for part in prefix.split(ID_SEPARATOR)]
    return ID_SEPARATOR.join(part for part in parts if part)


def collect_existing_ids(texts: Iterable[str], *, namespace: str | None = None) -> Set[str]:
    """Identifiers already referenced by call sites in ``texts``."""

    found: Set[str] = set()
    for text in texts:
        for pattern in EXISTING_ID_PATTERNS:
            for match in pattern.finditer(text):
                key = match.group(1)
                if namespace and key.startswith(f"{namespace}:"):
                    key = key[len(namespace) + 1 :]
                found.add(key)
    return found


class IdGenerator:
    """Derives prefixed, unique identifiers without any network access.

    ``existing_ids`` is shared and mutated: every identifier handed out is
    recorded immediately so later calls never collide with it.
    """

    def __init__(
        self,
        existing_ids: Iterable[str] = (),
        *,
        anchor: str | None = DEFAULT_ANCHOR,
        prefix: str | None = None,
        dictionary: Mapping[str, str] | None = None,
    ) -> None:
        self.existing_ids: Set[str] = set(existing_ids)
        self.anchor = anchor or DEFAULT_ANCHOR
        self.prefix = prefix or None
        self.dictionary = dict(DEFAULT_DICTIONARY if dictionary is None else dictionary)

    def directory_prefix(self, file_path: str | Path) -> str:
        """Prefix derived from the file's place below the anchor directory."""

        if self.prefix:
            return self.prefix
        if not str(file_path):
            return ""
        parts = PurePosixPath(Path(file_path).as_posix()).parts
        try:
            anchor_index = parts.index(self.anchor)
        except ValueError:
            return ""
        if anchor_index >= len(parts) - 1:
            return ""
        first_level = parts[anchor_index + 1]
        current_dir = parts[-2]
        if current_dir == first_level:
            return f"{first_level}{ID_SEPARATOR}{PurePosixPath(parts[-1]).stem}"
        return f"{first_level}{ID_SEPARATOR}{current_dir}"

    def semantic_part(self, text: str) -> str:
        clean = _CLEAN_TEXT_RE.sub("", text).strip()
        if clean in self.dictionary:
            return self.dictionary[clean]
        if clean and not CHINESE_RE.search(clean):
            sanitized = sanitize_semantic_id(clean)
            if sanitized:
                return sanitized
        return f"t_{text_hash(clean or text)}"

    def ensure_unique(self, base_id: str) -> str:
        if base_id not in self.existing_ids:
            self.existing_ids.add(base_id)
            return base_id
        counter = 1
        while f"{base_id}_{counter}" in self.existing_ids:
            counter += 1
        unique = f"{base_id}_{counter}"
        self.existing_ids.add(unique)
        return unique

    def with_prefix(self, file_path: str | Path, semantic_id: str) -> str:
        """Attach the directory prefix to ``semantic_id`` and reserve the result."""

        semantic = sanitize_semantic_id(semantic_id) or f"t_{text_hash(semantic_id)}"
        prefix = sanitize_prefix(self.directory_prefix(file_path))
        full_id = f"{prefix}{ID_SEPARATOR}{semantic}" if prefix else semantic
        return self.ensure_unique(full_id)

    def generate(self, file_path: str | Path, text: str) -> str:
        return self.with_prefix(file_path, self.semantic_part(text))


class IdentifierAssigner:
    """Fills ``semantic_id`` on extracted strings.

    Identical messages share one identifier across all files. Each file's
    distinct messages are sent to the batch processor when one is given;
    a failed or mismatched answer makes that file fall back to
    :class:`IdGenerator` rules.
    """

    def __init__(
        self,
        generator: IdGenerator,
        *,
        processor: Optional["BatchProcessor"] = None,
        known_texts: Mapping[str, str] | None = None,
        reporter: Reporter | None = None,
        policy: ErrorPolicy | None = None,
    ) -> None:
        self.generator = generator
        self.processor = processor
        self.known_texts = dict(known_texts or {})
        self.reporter = reporter or silent_reporter()
        self.policy = policy

    async def assign(self, extracted: Sequence[ExtractedString]) -> Dict[str, str]:
        """Assign identifiers in place; return the message -> identifier map."""

        by_file: "OrderedDict[str, List[ExtractedString]]" = OrderedDict()
        for item in extracted:
            by_file.setdefault(item.file_path, []).append(item)

        assigned: Dict[str, str] = {}
        pending: "OrderedDict[str, List[str]]" = OrderedDict()
        for file_path, items in by_file.items():
            for item in items:
                key = item.message_key
                if key in assigned or key in pending.get(file_path, []):
                    continue
                known = self.known_texts.get(item.display_text)
                if known:
                    assigned[key] = known
                    continue
                pending.setdefault(file_path, []).append(key)

        proposals: Dict[str, List[str]] = {}
        if self.processor is not None and pending:
            texts_by_file = {
                file_path: [self._display(by_file[file_path], key) for key in keys]
                for file_path, keys in pending.items()
            }
            proposals = await self.processor.generate_ids_for_files(texts_by_file)

        for file_path, keys in pending.items():
            ids = proposals.get(file_path) or []
            if ids and len(ids) != len(keys):
                self._mismatch(file_path, expected=len(keys), received=len(ids))
                ids = []
            for index, key in enumerate(keys):
                if key in assigned:
                    continue
                proposed = ids[index] if ids else ""
                if proposed and isinstance(proposed, str):
                    assigned[key] = self.generator.with_prefix(file_path, proposed)
                else:
                    assigned[key] = self.generator.generate(file_path, key)

        for item in extracted:
            item.semantic_id = assigned[item.message_key]
        self.reporter.success(f"Assigned {len(set(assigned.values()))} unique identifiers")
        return assigned

    @staticmethod
    def _display(items: Sequence[ExtractedString], key: str) -> str:
        for item in items:
            if item.message_key == key:
                return item.display_text
        return key

    def _mismatch(self, file_path: str, *, expected: int, received: int) -> None:
        message = (
            f"{file_path}: provider returned {received} identifiers for {expected} "
            "texts; using local identifiers for this file"
        )
        if self.policy is not None:
            self.policy.handle_error(ErrorCategory.IDENTIFIER, message)
        else:
            self.reporter.warn(message)
