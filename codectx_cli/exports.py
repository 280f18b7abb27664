"""Exported-symbol extraction, one rule per language family."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Tuple

from . import config
from .enumerator import FileEnumerator
from .models import ExportMap, dedupe

logger = logging.getLogger(__name__)

_STRING_LITERAL_RE = re.compile(r"""(['"])((?:\\.|(?!\1).)*)\1""")


class ExportRule(ABC):
    """Find the public symbols of a single file."""

    extensions: Tuple[str, ...] = ()
    skip_tests: bool = True

    @abstractmethod
    def symbols(self, text: str) -> List[str]:
        ...


class ExportExtractor:
    """Apply an :class:`ExportRule` across the enumerated files."""

    def __init__(self, rule: Optional[ExportRule]) -> None:
        self.rule = rule

    def prepare(self, enumerator: FileEnumerator) -> None:
        if self.rule is not None:
            enumerator.enumerate(self.rule.extensions, skip_tests=self.rule.skip_tests)

    def partials(self, enumerator: FileEnumerator) -> Iterator[ExportMap]:
        if self.rule is None:
            return
        for source in enumerator.enumerate(self.rule.extensions, skip_tests=self.rule.skip_tests):
            text = enumerator.read(source)
            if text is None:
                continue
            partial = ExportMap()
            partial.add(source.path, self.rule.symbols(text))
            yield partial

    def extract(self, enumerator: FileEnumerator) -> ExportMap:
        result = ExportMap()
        for partial in self.partials(enumerator):
            result.merge(partial)
        return result


# ===================================================================
# TypeScript / JavaScript
# ===================================================================

_TS_DECL_RE = re.compile(
    r"^[ \t]*export\s+(?:default\s+)?(?:declare\s+)?(?:async\s+)?(?:abstract\s+)?"
    r"(?:const\s+enum|const|let|var|function(?:\s*\*)?|class|type|interface|enum|namespace)"
    r"\s+([A-Za-z_$][\w$]*)",
    re.MULTILINE,
)
_TS_BULK_RE = re.compile(r"^[ \t]*export\s+(?:type\s+)?\{([^}]*)\}", re.MULTILINE)


def _bulk_names(block: str) -> List[str]:
    """Names listed in ``export { a, b as c }``; aliases resolve to the original."""
    names: List[str] = []
    for item in block.split(","):
        item = re.sub(r"/\*.*?\*/|//[^\n]*", "", item, flags=re.DOTALL).strip()
        if item.startswith("type "):
            item = item[5:].strip()
        name = item.split()[0] if item else ""
        if name and name not in ("default", "*") and re.fullmatch(r"[A-Za-z_$][\w$]*", name):
            names.append(name)
    return names


class TypeScriptExportRule(ExportRule):
    extensions = config.JS_EXTENSIONS

    def symbols(self, text: str) -> List[str]:
        declared = [m.group(1) for m in _TS_DECL_RE.finditer(text)]
        listed: List[str] = []
        for match in _TS_BULK_RE.finditer(text):
            listed.extend(_bulk_names(match.group(1)))
        return sorted(set(declared + listed))


# ===================================================================
# Python
# ===================================================================

_PY_ALL_RE = re.compile(
    r"^__all__\s*(?::[^=\n]*)?\+?=\s*[\[(]([^\])]*)[\])]",
    re.MULTILINE,
)
_PY_DEF_RE = re.compile(r"^(?:async\s+def|def|class)\s+([A-Za-z_]\w*)", re.MULTILINE)


class PythonExportRule(ExportRule):
    """``__all__`` when declared, otherwise public top-level defs and classes."""

    extensions = config.PY_EXTENSIONS

    def symbols(self, text: str) -> List[str]:
        declared = self.declared_all(text)
        if declared is not None:
            return sorted(set(declared))
        return sorted({
            m.group(1) for m in _PY_DEF_RE.finditer(text) if not m.group(1).startswith("_")
        })

    @staticmethod
    def declared_all(text: str) -> Optional[List[str]]:
        matches = list(_PY_ALL_RE.finditer(text))
        if not matches:
            return None
        names: List[str] = []
        for match in matches:
            names.extend(lit.group(2) for lit in _STRING_LITERAL_RE.finditer(match.group(1)))
        return dedupe(names)


# ===================================================================
# Go
# ===================================================================

_GO_DECL_RE = re.compile(
    r"^(?:func\s+([A-Z]\w*)\s*[\[(]|(?:type|var|const)\s+([A-Z]\w*))",
    re.MULTILINE,
)
_GO_GROUP_RE = re.compile(r"^(?:type|var|const)\s*\(\s*\n(.*?)^\)", re.MULTILINE | re.DOTALL)
_GO_GROUP_ITEM_RE = re.compile(r"^\s+([A-Z]\w*)\b", re.MULTILINE)


class GoExportRule(ExportRule):
    """Capitalised package-level identifiers; methods are not package members."""

    extensions = config.GO_EXTENSIONS

    def symbols(self, text: str) -> List[str]:
        names = {m.group(1) or m.group(2) for m in _GO_DECL_RE.finditer(text)}
        for group in _GO_GROUP_RE.finditer(text):
            names.update(m.group(1) for m in _GO_GROUP_ITEM_RE.finditer(group.group(1)))
        return sorted(names)


# ===================================================================
# Rust
# ===================================================================

_RS_DECL_RE = re.compile(
    r"^[ \t]*pub\s+(?:async\s+)?(?:unsafe\s+)?(?:extern\s+\"[^\"]*\"\s+)?"
    r"(?:fn|struct|enum|trait|type|const|static(?:\s+mut)?|mod|union)\s+([A-Za-z_]\w*)",
    re.MULTILINE,
)
_RS_PUB_USE_RE = re.compile(r"^[ \t]*pub\s+use\s+([^;]+);", re.MULTILINE)


def _use_names(tree: str) -> List[str]:
    """Names re-exported by a ``pub use`` tree; ``a::B as C`` yields ``B``."""
    tree = " ".join(tree.split())
    if "{" in tree:
        inner = tree[tree.index("{") + 1: tree.rindex("}")] if "}" in tree else ""
        names: List[str] = []
        for item in _split_top_level(inner):
            names.extend(_use_names(item))
        return names
    path = tree.split(" as ")[0].strip()
    last = path.rsplit("::", 1)[-1].strip()
    if not last or last in ("*", "self", "super", "crate"):
        return []
    return [last]


def _split_top_level(inner: str) -> List[str]:
    items: List[str] = []
    depth = 0
    current = ""
    for ch in inner:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        if ch == "," and depth == 0:
            items.append(current)
            current = ""
        else:
            current += ch
    if current.strip():
        items.append(current)
    return items


class RustExportRule(ExportRule):
    extensions = config.RUST_EXTENSIONS
    skip_tests = False

    def symbols(self, text: str) -> List[str]:
        names = {m.group(1) for m in _RS_DECL_RE.finditer(text)}
        for match in _RS_PUB_USE_RE.finditer(text):
            names.update(_use_names(match.group(1)))
        return sorted(names)
