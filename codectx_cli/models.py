"""Core data models shared by detection, extraction, and serialization."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Set


class Profile(str, Enum):
    """Project ecosystem detected from marker files at the root."""

    NODE = "node"
    PYTHON = "python"
    GO = "go"
    RUST = "rust"
    UNKNOWN = "unknown"


class Framework(str, Enum):
    """Web framework of a node project; only steers entry-point strategies."""

    NEXTJS = "nextjs"
    EXPRESS = "express"
    NONE = "none"


@dataclass(frozen=True)
class ProjectProfile:
    profile: Profile
    framework: Framework = Framework.NONE
    module_name: str = ""

    @property
    def project_type(self) -> str:
        if self.profile is Profile.NODE and self.framework is not Framework.NONE:
            return self.framework.value
        return self.profile.value


@dataclass(frozen=True, order=True)
class SourceFile:
    """A file inside the enumerated set, addressed relative to the project root."""

    path: str
    extension: str = ""

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def directory(self) -> str:
        return self.path.rsplit("/", 1)[0] if "/" in self.path else ""


@dataclass(frozen=True)
class Location:
    file_path: str
    line: int

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}"


@dataclass(frozen=True)
class EntryPoint:
    method: str
    route: str
    location: Location

    @property
    def key(self) -> str:
        return f"{self.method} {self.route}"


@dataclass(frozen=True, order=True)
class DependencyEdge:
    source: str
    target: str


# ===================================================================
# Accumulators
# ===================================================================

@dataclass
class ConceptMap:
    """Concept name -> files, in discovery order, capped per concept."""

    limit: int = 10
    entries: Dict[str, List[str]] = field(default_factory=dict)

    def add(self, concept: str, file_path: str) -> None:
        files = self.entries.setdefault(concept, [])
        if file_path in files or len(files) >= self.limit:
            return
        files.append(file_path)

    def merge(self, other: "ConceptMap") -> "ConceptMap":
        for concept, files in other.entries.items():
            for file_path in files:
                self.add(concept, file_path)
        return self

    def as_dict(self) -> Dict[str, List[str]]:
        return {concept: list(files) for concept, files in self.entries.items() if files}

    def __len__(self) -> int:
        return sum(1 for files in self.entries.values() if files)


@dataclass
class EntryPointMap:
    """Route key -> handler location. A colliding key overwrites the earlier one."""

    entries: Dict[str, Location] = field(default_factory=dict)

    def add(self, entry: EntryPoint) -> None:
        self.entries[entry.key] = entry.location

    def merge(self, other: "EntryPointMap") -> "EntryPointMap":
        self.entries.update(other.entries)
        return self

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class ExportMap:
    """File -> sorted, duplicate-free exported symbols."""

    entries: Dict[str, List[str]] = field(default_factory=dict)

    def add(self, file_path: str, symbols: Iterable[str]) -> None:
        merged = set(self.entries.get(file_path, []))
        merged.update(s for s in symbols if s)
        if merged:
            self.entries[file_path] = sorted(merged)

    def merge(self, other: "ExportMap") -> "ExportMap":
        for file_path, symbols in other.entries.items():
            self.add(file_path, symbols)
        return self

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class TypeMap:
    """Type name -> definition location, last writer wins."""

    entries: Dict[str, Location] = field(default_factory=dict)

    def add(self, name: str, location: Location) -> None:
        self.entries[name] = location

    def merge(self, other: "TypeMap") -> "TypeMap":
        self.entries.update(other.entries)
        return self

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class EdgeSet:
    edges: Set[DependencyEdge] = field(default_factory=set)

    def add(self, source: str, target: str) -> None:
        if source == target:
            return
        self.edges.add(DependencyEdge(source, target))

    def merge(self, other: "EdgeSet") -> "EdgeSet":
        self.edges.update(other.edges)
        return self

    def sorted(self) -> List[DependencyEdge]:
        return sorted(self.edges)

    def __iter__(self) -> Iterator[DependencyEdge]:
        return iter(self.sorted())

    def __len__(self) -> int:
        return len(self.edges)


# ===================================================================
# Aggregate roots
# ===================================================================

@dataclass
class CodeIndex:
    profile: ProjectProfile
    generated: int
    concepts: ConceptMap = field(default_factory=ConceptMap)
    entry_points: EntryPointMap = field(default_factory=EntryPointMap)
    exports: ExportMap = field(default_factory=ExportMap)
    types: TypeMap = field(default_factory=TypeMap)

    def prune(self, known_paths: Set[str]) -> "CodeIndex":
        """Drop every reference to a file outside *known_paths*."""
        self.concepts.entries = {
            concept: [f for f in files if f in known_paths]
            for concept, files in self.concepts.entries.items()
        }
        self.entry_points.entries = {
            key: loc for key, loc in self.entry_points.entries.items()
            if loc.file_path in known_paths
        }
        self.exports.entries = {
            path: symbols for path, symbols in self.exports.entries.items()
            if path in known_paths
        }
        self.types.entries = {
            name: loc for name, loc in self.types.entries.items()
            if loc.file_path in known_paths
        }
        return self


@dataclass
class DependencyGraph:
    profile: ProjectProfile
    generated: int
    edges: EdgeSet = field(default_factory=EdgeSet)

    def prune(self, known_paths: Set[str]) -> "DependencyGraph":
        """Drop edges whose endpoints are not enumerated files.

        A target ending in ``/`` names a package directory and is kept when
        an enumerated file lives directly inside it.
        """
        known_dirs = {p.rsplit("/", 1)[0] + "/" for p in known_paths if "/" in p}
        kept = set()
        for edge in self.edges.edges:
            if edge.source not in known_paths:
                continue
            if edge.target.endswith("/"):
                if edge.target in known_dirs:
                    kept.add(edge)
            elif edge.target in known_paths:
                kept.add(edge)
        self.edges.edges = kept
        return self

    def files(self) -> List[str]:
        paths: Set[str] = set()
        for edge in self.edges.edges:
            paths.add(edge.source)
            paths.add(edge.target)
        return sorted(paths)

    def adjacency(self) -> Dict[str, List[str]]:
        result: Dict[str, List[str]] = {}
        for edge in self.edges.sorted():
            result.setdefault(edge.source, []).append(edge.target)
        return result


def first_line_of(text: str, offset: int) -> int:
    """Return the 1-based line number containing character *offset*."""
    return text.count("\n", 0, offset) + 1


def dedupe(items: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    out: List[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out
