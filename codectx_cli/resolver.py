"""Import extraction and resolution to in-project files.

Each resolver pulls raw import specifiers out of one file and maps every
specifier onto a concrete file (or, for Go, a package directory) inside the
project. Specifiers that cannot be mapped are treated as external and
dropped silently. Resolution is a first-match walk over an ordered list of
candidate paths; nothing crawls the filesystem.
"""

from __future__ import annotations

import json
import logging
import posixpath
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from . import config
from .enumerator import FileEnumerator
from .models import EdgeSet, SourceFile, dedupe

logger = logging.getLogger(__name__)


def normalize(path: str) -> Optional[str]:
    """Normalise a root-relative path; ``None`` if it escapes the root."""
    if not path or path.startswith("/"):
        return None
    norm = posixpath.normpath(path)
    if norm == "." or norm == ".." or norm.startswith("../"):
        return None
    return norm


def first_existing(project_root: Path, candidates: Iterable[str]) -> Optional[str]:
    """Return the first candidate that is an existing regular file."""
    for candidate in candidates:
        rel = normalize(candidate)
        if rel is not None and (project_root / rel).is_file():
            return rel
    return None


class ImportResolver(ABC):
    """Per-language specifier extraction plus resolution."""

    extensions: Tuple[str, ...] = ()
    skip_tests: bool = True
    skip_declarations: bool = False

    def __init__(self, project_root: Path) -> None:
        self.project_root = project_root

    @abstractmethod
    def specifiers(self, source: SourceFile, text: str) -> List[str]:
        """Raw import specifiers in order of appearance."""
        ...

    @abstractmethod
    def resolve(self, source: SourceFile, specifier: str) -> Optional[str]:
        """Map *specifier* to a root-relative target, or ``None`` if external."""
        ...

    def targets(self, source: SourceFile, text: str) -> List[str]:
        resolved = []
        for spec in self.specifiers(source, text):
            target = self.resolve(source, spec)
            if target is None:
                logger.debug("Unresolved import %r in %s", spec, source.path)
                continue
            resolved.append(target)
        return dedupe(resolved)


class DependencyExtractor:
    """Map every file to its resolved imports and reduce into one edge set."""

    def __init__(self, resolver: Optional[ImportResolver]) -> None:
        self.resolver = resolver

    def _files(self, enumerator: FileEnumerator) -> Sequence[SourceFile]:
        assert self.resolver is not None
        return enumerator.enumerate(
            self.resolver.extensions,
            skip_tests=self.resolver.skip_tests,
            skip_declarations=self.resolver.skip_declarations,
        )

    def prepare(self, enumerator: FileEnumerator) -> None:
        if self.resolver is not None:
            self._files(enumerator)

    def partials(self, enumerator: FileEnumerator) -> Iterator[EdgeSet]:
        if self.resolver is None:
            return
        for source in self._files(enumerator):
            text = enumerator.read(source)
            if text is None:
                continue
            partial = EdgeSet()
            for target in self.resolver.targets(source, text):
                partial.add(source.path, target)
            yield partial

    def extract(self, enumerator: FileEnumerator) -> EdgeSet:
        edges = EdgeSet()
        for partial in self.partials(enumerator):
            edges.merge(partial)
        return edges


# ===================================================================
# TypeScript / JavaScript (path-based)
# ===================================================================

_JS_SPECIFIER_RES = (
    re.compile(r"""\bfrom\s*(['"])([^'"\n]+)\1"""),
    re.compile(r"""^[ \t]*import\s*(['"])([^'"\n]+)\1""", re.MULTILINE),
    re.compile(r"""\brequire\s*\(\s*(['"])([^'"\n]+)\1\s*\)"""),
    re.compile(r"""\bimport\s*\(\s*(['"])([^'"\n]+)\1\s*\)"""),
)
_JSONC_TOKEN_RE = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/', re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_JS_RUNTIME_EXTS = (".js", ".jsx", ".mjs", ".cjs")


@dataclass(frozen=True)
class PathAlias:
    """``prefix`` is replaced by each of ``targets`` in turn.

    A non-wildcard alias only matches the specifier exactly.
    """

    prefix: str
    targets: Tuple[str, ...]
    wildcard: bool = True

    def expand(self, specifier: str) -> Iterator[str]:
        if self.wildcard:
            if specifier.startswith(self.prefix):
                rest = specifier[len(self.prefix):]
                for target in self.targets:
                    yield target + rest
        elif specifier == self.prefix:
            yield from self.targets


def strip_jsonc(raw: str) -> str:
    """Drop comments and trailing commas so ``tsconfig.json`` parses as JSON."""
    text = _JSONC_TOKEN_RE.sub(lambda m: m.group(1) or "", raw)
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def load_tsconfig_aliases(project_root: Path) -> List[PathAlias]:
    """Read ``compilerOptions.paths`` from ``tsconfig.json`` or ``jsconfig.json``."""
    for name in ("tsconfig.json", "jsconfig.json"):
        path = project_root / name
        if not path.is_file():
            continue
        try:
            data = json.loads(strip_jsonc(path.read_text(encoding="utf-8", errors="ignore")))
        except (OSError, ValueError) as exc:
            logger.debug("Could not parse %s: %s", path, exc)
            continue
        options = data.get("compilerOptions") if isinstance(data, dict) else None
        if not isinstance(options, dict):
            continue
        return _aliases_from_paths(options.get("paths"), options.get("baseUrl") or ".")
    return []


def _aliases_from_paths(paths: object, base_url: str) -> List[PathAlias]:
    if not isinstance(paths, dict):
        return []
    aliases: List[PathAlias] = []
    for key, targets in paths.items():
        if not isinstance(targets, list):
            continue
        wildcard = key.endswith("*")
        prefix = key[:-1] if wildcard else key
        resolved: List[str] = []
        for target in targets:
            if not isinstance(target, str):
                continue
            if wildcard:
                if not target.endswith("*"):
                    continue
                joined = posixpath.normpath(posixpath.join(base_url, target[:-1] or "."))
                resolved.append("" if joined == "." else joined + "/")
            else:
                resolved.append(posixpath.normpath(posixpath.join(base_url, target)))
        if resolved and prefix:
            aliases.append(PathAlias(prefix, tuple(resolved), wildcard))
    return aliases


def build_aliases(
    project_root: Path,
    configured: Optional[Mapping[str, Sequence[str]]] = None,
) -> List[PathAlias]:
    """Combine settings, tsconfig and default aliases; longest prefix first.

    Settings win over ``tsconfig.json`` which wins over the built-in ``@/``.
    """
    by_prefix: Dict[Tuple[str, bool], PathAlias] = {}
    for prefix, targets in config.DEFAULT_ALIASES.items():
        by_prefix[(prefix, True)] = PathAlias(prefix, tuple(targets))
    for alias in load_tsconfig_aliases(project_root):
        by_prefix[(alias.prefix, alias.wildcard)] = alias
    for prefix, targets in (configured or {}).items():
        by_prefix[(prefix, True)] = PathAlias(prefix, tuple(targets))
    return sorted(by_prefix.values(), key=lambda a: (a.wildcard, -len(a.prefix), a.prefix))


class TypeScriptResolver(ImportResolver):
    """Relative and alias-qualified specifiers; bare package names are external."""

    extensions = config.JS_EXTENSIONS
    skip_declarations = True

    def __init__(
        self,
        project_root: Path,
        aliases: Optional[Sequence[PathAlias]] = None,
    ) -> None:
        super().__init__(project_root)
        self.aliases: List[PathAlias] = list(aliases) if aliases is not None else build_aliases(project_root)

    def specifiers(self, source: SourceFile, text: str) -> List[str]:
        found: List[Tuple[int, str]] = []
        for pattern in _JS_SPECIFIER_RES:
            found.extend((m.start(), m.group(2)) for m in pattern.finditer(text))
        return dedupe(spec for _, spec in sorted(found))

    def resolve(self, source: SourceFile, specifier: str) -> Optional[str]:
        for base in self._bases(source, specifier):
            hit = first_existing(self.project_root, self.candidates(base))
            if hit is not None:
                return hit
        return None

    def _bases(self, source: SourceFile, specifier: str) -> Iterator[str]:
        if specifier.startswith("."):
            yield posixpath.join(source.directory, specifier)
            return
        for alias in self.aliases:
            expanded = list(alias.expand(specifier))
            if expanded:
                yield from expanded
                return

    @staticmethod
    def candidates(base: str) -> Iterator[str]:
        """Bare path, then each extension, then ``index`` files, in that order."""
        yield base
        for ext in config.RESOLVE_EXTENSIONS:
            yield base + ext
        for ext in config.RESOLVE_EXTENSIONS:
            yield f"{base}/{config.INDEX_BASENAME}{ext}"
        # ESM sources written in TypeScript import "./x.js" for "./x.ts".
        stem, ext = posixpath.splitext(base)
        if ext in _JS_RUNTIME_EXTS:
            for ts_ext in config.TS_EXTENSIONS:
                yield stem + ts_ext


# ===================================================================
# Python (dotted modules)
# ===================================================================

# A parenthesised name list may span lines; the clause then runs to ``)``.
_PY_FROM_RE = re.compile(
    r"^[ \t]*from[ \t]+(\.*)([\w.]*)[ \t]+import[ \t]+(\([^)]*\)|[^\n]+)", re.MULTILINE
)
_PY_IMPORT_RE = re.compile(r"^[ \t]*import[ \t]+([\w.]+(?:[ \t]+as[ \t]+\w+)?(?:[ \t]*,[ \t]*[\w.]+(?:[ \t]+as[ \t]+\w+)?)*)", re.MULTILINE)


def _imported_names(clause: str) -> List[str]:
    clause = re.sub(r"#[^\n]*", "", clause).strip().strip("()\\").strip()
    names = []
    for part in clause.split(","):
        name = part.strip().split(" as ")[0].strip().strip("()")
        if name and name != "*" and re.fullmatch(r"\w+", name):
            names.append(name)
    return names


class PythonResolver(ImportResolver):
    """``import a.b`` / ``from a.b import c`` / ``from . import d``.

    ``from . import name`` tries ``name`` as a sibling module first and falls
    back to the package initializer when it is an attribute instead.
    """

    extensions = config.PY_EXTENSIONS

    def __init__(self, project_root: Path) -> None:
        super().__init__(project_root)
        self.roots: Tuple[str, ...] = ("", "src/") if (project_root / "src").is_dir() else ("",)

    def specifiers(self, source: SourceFile, text: str) -> List[str]:
        found: List[Tuple[int, str]] = []
        for match in _PY_IMPORT_RE.finditer(text):
            for part in match.group(1).split(","):
                module = part.strip().split()[0]
                found.append((match.start(), module))
        for match in _PY_FROM_RE.finditer(text):
            dots, module = match.group(1), match.group(2)
            if not dots and not module:
                continue
            if module:
                found.append((match.start(), dots + module))
                continue
            for name in _imported_names(match.group(3)):
                found.append((match.start(), dots + name))
        return dedupe(spec for _, spec in sorted(found, key=lambda item: item[0]))

    def resolve(self, source: SourceFile, specifier: str) -> Optional[str]:
        if specifier.startswith("."):
            return self._resolve_relative(source, specifier)
        module_path = specifier.replace(".", "/")
        for root in self.roots:
            hit = first_existing(
                self.project_root,
                (f"{root}{module_path}.py", f"{root}{module_path}/__init__.py"),
            )
            if hit is not None:
                return hit
        return None

    def _resolve_relative(self, source: SourceFile, specifier: str) -> Optional[str]:
        level = len(specifier) - len(specifier.lstrip("."))
        rest = specifier[level:]
        package = source.directory
        for _ in range(level - 1):
            if not package:
                return None
            package = package.rsplit("/", 1)[0] if "/" in package else ""
        prefix = f"{package}/" if package else ""
        if not rest:
            return first_existing(self.project_root, (f"{prefix}__init__.py",))
        module_path = rest.replace(".", "/")
        return first_existing(
            self.project_root,
            (
                f"{prefix}{module_path}.py",
                f"{prefix}{module_path}/__init__.py",
                f"{prefix}__init__.py",
            ),
        )


# ===================================================================
# Go (module-qualified packages)
# ===================================================================

_GO_SINGLE_IMPORT_RE = re.compile(r'^import[ \t]+(?:[\w.]+[ \t]+)?"([^"]+)"', re.MULTILINE)
_GO_IMPORT_BLOCK_RE = re.compile(r"^import[ \t]*\((.*?)^\)", re.MULTILINE | re.DOTALL)
_GO_QUOTED_RE = re.compile(r'"([^"]+)"')


class GoResolver(ImportResolver):
    """Imports under the ``go.mod`` module path resolve to package directories."""

    extensions = config.GO_EXTENSIONS

    def __init__(self, project_root: Path, module_name: str) -> None:
        super().__init__(project_root)
        self.module_name = module_name.rstrip("/")

    def specifiers(self, source: SourceFile, text: str) -> List[str]:
        found: List[Tuple[int, str]] = [(m.start(), m.group(1)) for m in _GO_SINGLE_IMPORT_RE.finditer(text)]
        for block in _GO_IMPORT_BLOCK_RE.finditer(text):
            found.extend((block.start(), m.group(1)) for m in _GO_QUOTED_RE.finditer(block.group(1)))
        return dedupe(spec for _, spec in sorted(found, key=lambda item: item[0]))

    def resolve(self, source: SourceFile, specifier: str) -> Optional[str]:
        if not self.module_name or not specifier.startswith(self.module_name + "/"):
            return None
        package = normalize(specifier[len(self.module_name) + 1:])
        if package is None or not (self.project_root / package).is_dir():
            return None
        return package + "/"


# ===================================================================
# Rust (crate-qualified module paths)
# ===================================================================

_RS_USE_RE = re.compile(r"^[ \t]*(?:pub(?:\([^)]*\))?[ \t]+)?use[ \t]+([^;]+);", re.MULTILINE)
_RS_MOD_RE = re.compile(r"^[ \t]*(?:pub(?:\([^)]*\))?[ \t]+)?mod[ \t]+(\w+)[ \t]*;", re.MULTILINE)
_RS_CRATE_ROOTS = ("lib.rs", "main.rs")


def expand_use_tree(tree: str, prefix: str = "") -> List[str]:
    """``a::{b, c::{D, E as F}}`` -> ``a::b``, ``a::c::D``, ``a::c::E``."""
    tree = " ".join(tree.split())
    if "{" not in tree:
        path = tree.split(" as ")[0].strip()
        if path.endswith("::*"):
            path = path[:-3]
        if path == "self":
            return [prefix.rstrip(":")] if prefix else []
        return [prefix + path] if path else []
    head = tree[: tree.index("{")]
    inner = tree[tree.index("{") + 1: tree.rindex("}")] if "}" in tree else ""
    paths: List[str] = []
    depth = 0
    current = ""
    for ch in inner + ",":
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        if ch == "," and depth == 0:
            if current.strip():
                paths.extend(expand_use_tree(current, prefix + head))
            current = ""
        else:
            current += ch
    return paths


class RustResolver(ImportResolver):
    """``use crate::a::b`` / ``use super::x`` / ``mod name;`` inside a crate's ``src``."""

    extensions = config.RUST_EXTENSIONS
    skip_tests = False

    def specifiers(self, source: SourceFile, text: str) -> List[str]:
        found: List[Tuple[int, str]] = []
        for match in _RS_USE_RE.finditer(text):
            for path in expand_use_tree(match.group(1)):
                if path.split("::", 1)[0] in ("crate", "self", "super"):
                    found.append((match.start(), path))
        for match in _RS_MOD_RE.finditer(text):
            found.append((match.start(), f"self::{match.group(1)}"))
        return dedupe(spec for _, spec in sorted(found, key=lambda item: item[0]))

    @staticmethod
    def crate_location(source: SourceFile) -> Optional[Tuple[str, List[str]]]:
        """Return ``(crate src dir, module path)`` for a file under ``src/``."""
        parts = source.path.split("/")
        if "src" not in parts[:-1]:
            return None
        idx = parts.index("src")
        src_dir = "/".join(parts[: idx + 1])
        inner = parts[idx + 1:]
        name = inner[-1]
        if name in _RS_CRATE_ROOTS and len(inner) == 1:
            return src_dir, []
        if name == "mod.rs":
            return src_dir, inner[:-1]
        return src_dir, inner[:-1] + [name[: -len(".rs")]]

    def resolve(self, source: SourceFile, specifier: str) -> Optional[str]:
        located = self.crate_location(source)
        if located is None:
            return None
        src_dir, current = located
        segments = specifier.split("::")
        head = segments.pop(0)
        if head == "crate":
            module: List[str] = []
        else:
            module = list(current)
            if head == "super":
                module = module[:-1]
            while segments and segments[0] == "super":
                segments.pop(0)
                module = module[:-1]
        full = module + [s for s in segments if s]
        for n in range(len(full), 0, -1):
            base = f"{src_dir}/" + "/".join(full[:n])
            hit = first_existing(self.project_root, (base + ".rs", base + "/mod.rs"))
            if hit is not None:
                return hit
        return None
