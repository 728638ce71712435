"""Source file discovery."""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable, List, Sequence

from .errors import ConfigurationError


def _matches(relative: str, patterns: Iterable[str]) -> bool:
    for pattern in patterns:
        if fnmatch(relative, pattern):
            return True
        # ``**/`` also matches at the top level.
        if pattern.startswith("**/") and fnmatch(relative, pattern[3:]):
            return True
    return False


def is_framework_file(path: str | Path, suffixes: Sequence[str]) -> bool:
    name = Path(path).name
    if name.endswith(".d.ts"):
        return False
    return Path(path).suffix.lower() in suffixes


def collect_files(
    target: str | Path,
    suffixes: Sequence[str],
    *,
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
) -> List[Path]:
    """Files under ``target`` (or ``target`` itself) handled by the framework.

    ``include``/``exclude`` are glob patterns matched against the path
    relative to ``target``; an empty ``include`` keeps every candidate.
    """

    root = Path(target)
    if not root.exists():
        raise ConfigurationError(f"Path {root} does not exist.")
    if root.is_file():
        if not is_framework_file(root, suffixes):
            raise ConfigurationError(
                f"{root} is not a supported source file (expected one of {', '.join(suffixes)})."
            )
        return [root]

    found: List[Path] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file() or not is_framework_file(path, suffixes):
            continue
        relative = path.relative_to(root).as_posix()
        if include and not _matches(relative, include):
            continue
        if _matches(relative, exclude):
            continue
        found.append(path)
    return found
