"""Include/exclude glob file set rooted at a project directory."""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path


class FileSet:
    """Enumerates project files matching include globs and no exclude glob.

    Globs are matched with `fnmatch` against POSIX paths relative to the root,
    so `*` also crosses directory separators. A leading `**/` additionally
    matches files directly under the root.
    """

    def __init__(
        self,
        root_path: str | Path,
        includes: list[str],
        excludes: list[str] | None = None,
    ) -> None:
        self.root_path = Path(root_path).resolve()
        self.includes = list(includes)
        self.excludes = list(excludes or [])

    def includes_file(self, path: str | Path) -> bool:
        full_path = Path(path)
        if not full_path.is_absolute():
            full_path = self.root_path / full_path
        try:
            relative = full_path.resolve().relative_to(self.root_path).as_posix()
        except ValueError:
            return False
        if not _matches_any(relative, self.includes):
            return False
        return not _matches_any(relative, self.excludes)

    def all_files(self) -> list[Path]:
        files: list[Path] = []
        for directory, _dirnames, filenames in os.walk(self.root_path):
            for filename in filenames:
                candidate = Path(directory) / filename
                if self.includes_file(candidate):
                    files.append(candidate)
        return sorted(files)


def _matches_any(relative: str, patterns: list[str]) -> bool:
    for pattern in patterns:
        if fnmatch.fnmatchcase(relative, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatchcase(relative, pattern[3:]):
            return True
    return False
