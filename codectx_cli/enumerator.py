"""Deterministic source-file enumeration with directory and test exclusions."""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple

from . import config
from .models import SourceFile

logger = logging.getLogger(__name__)

_TEST_PATTERNS: Tuple[str, ...] = (
    "*.spec.*", "*.test.*", "test_*.py", "*_test.py", "*_test.go",
)
_DIR_GLOBS: Tuple[str, ...] = ("*.egg-info",)


def is_test_file(name: str) -> bool:
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in _TEST_PATTERNS)


class FileEnumerator:
    """Walk a project tree and list candidate source files.

    The same tree always yields the same sorted sequence, so repeated runs
    produce identical artifacts. Results are cached per filter combination;
    :meth:`all_paths` exposes everything enumerated so far.
    """

    def __init__(
        self,
        project_root: Path,
        skip_dirs: Iterable[str] = config.BASE_SKIP_DIRS,
        exclude: Iterable[str] = (),
        output_dir: Optional[str] = None,
    ) -> None:
        self.project_root = project_root
        self.skip_dirs: FrozenSet[str] = frozenset(skip_dirs) | frozenset({".git"})
        self.exclude: Tuple[str, ...] = tuple(sorted(exclude))
        self.output_dir = (output_dir or "").strip("/")
        self._cache: Dict[Tuple, Tuple[SourceFile, ...]] = {}

    @classmethod
    def for_profile(
        cls,
        project_root: Path,
        profile: str,
        exclude: Iterable[str] = (),
        output_dir: Optional[str] = None,
    ) -> "FileEnumerator":
        skip = config.BASE_SKIP_DIRS | config.PROFILE_SKIP_DIRS.get(profile, frozenset())
        return cls(project_root, skip, exclude=exclude, output_dir=output_dir)

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def enumerate(
        self,
        extensions: Iterable[str],
        skip_tests: bool = False,
        skip_declarations: bool = False,
    ) -> Tuple[SourceFile, ...]:
        exts = tuple(sorted(set(extensions)))
        key = (exts, skip_tests, skip_declarations)
        if key not in self._cache:
            self._cache[key] = tuple(self._walk(exts, skip_tests, skip_declarations))
        return self._cache[key]

    def all_paths(self) -> Set[str]:
        paths: Set[str] = set()
        for files in self._cache.values():
            paths.update(f.path for f in files)
        return paths

    def _walk(
        self,
        extensions: Tuple[str, ...],
        skip_tests: bool,
        skip_declarations: bool,
    ) -> Iterable[SourceFile]:
        found: Set[SourceFile] = set()
        root = str(self.project_root)
        for dirpath, dirnames, filenames in os.walk(root):
            rel_dir = os.path.relpath(dirpath, root).replace(os.sep, "/")
            rel_dir = "" if rel_dir == "." else rel_dir
            dirnames[:] = sorted(
                d for d in dirnames
                if not self._skip_dir(d, f"{rel_dir}/{d}" if rel_dir else d)
            )
            for name in filenames:
                ext = os.path.splitext(name)[1]
                if ext not in extensions:
                    continue
                if skip_tests and is_test_file(name):
                    continue
                if skip_declarations and name.endswith(".d.ts"):
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if self._excluded(rel_path):
                    continue
                found.add(SourceFile(rel_path, ext))
        return sorted(found)

    def _skip_dir(self, name: str, rel_path: str) -> bool:
        if name in self.skip_dirs:
            return True
        if self.output_dir and rel_path == self.output_dir:
            return True
        if any(fnmatch.fnmatchcase(name, g) for g in _DIR_GLOBS):
            return True
        return self._excluded(rel_path) or self._excluded(name)

    def _excluded(self, rel_path: str) -> bool:
        return any(fnmatch.fnmatch(rel_path, pattern) for pattern in self.exclude)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(self, source: SourceFile) -> Optional[str]:
        """Return the text of *source*, or ``None`` when it cannot be read."""
        try:
            return (self.project_root / source.path).read_text(encoding="utf-8", errors="ignore")
        except OSError as exc:
            logger.debug("Skipping unreadable file %s: %s", source.path, exc)
            return None
