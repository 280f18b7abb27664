"""Route/handler discovery: HTTP method + path mapped to the declaring line.

Three families of strategy are supported:

- **Directory convention** (file-system routing): the file's position under a
  routing directory encodes the URL, exported verb-named functions give the
  methods.
- **Declarative call**: ``router.get('/path', ...)`` style registration.
- **Decorator**: ``@app.get("/path")`` / ``@bp.route("/path")`` lines.

Go's ``mux.HandleFunc("/path", ...)`` and gin-style ``r.GET("/path", ...)``
calls are covered by a call strategy of their own.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from . import config
from .enumerator import FileEnumerator
from .models import EntryPoint, EntryPointMap, Location, SourceFile, first_line_of

logger = logging.getLogger(__name__)

HTTP_VERBS: Tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")
WILDCARD = "*"

_VERB_ALT = "|".join(HTTP_VERBS)
_LITERAL_RE = re.compile(r"""[rbuf]?(['"])((?:\\.|(?!\1).)*)\1""")


# ===================================================================
# Strategy interface
# ===================================================================

class EntryPointStrategy(ABC):
    """One way of recognising route declarations in a file."""

    extensions: Tuple[str, ...] = config.JS_EXTENSIONS
    skip_tests: bool = True

    def files(self, enumerator: FileEnumerator) -> Sequence[SourceFile]:
        return [f for f in enumerator.enumerate(self.extensions, skip_tests=self.skip_tests)
                if self.accepts(f)]

    def accepts(self, source: SourceFile) -> bool:
        return True

    @abstractmethod
    def scan(self, source: SourceFile, text: str) -> List[EntryPoint]:
        """Return every entry point declared in *text*."""
        ...


class EntryPointExtractor:
    """Run a sequence of strategies and collect entry points last-write-wins."""

    def __init__(self, strategies: Iterable[EntryPointStrategy]) -> None:
        self.strategies: List[EntryPointStrategy] = list(strategies)

    def prepare(self, enumerator: FileEnumerator) -> None:
        for strategy in self.strategies:
            strategy.files(enumerator)

    def partials(self, enumerator: FileEnumerator) -> Iterator[Tuple[SourceFile, EntryPointMap]]:
        """Yield one accumulator per scanned file, strategies in order."""
        for strategy in self.strategies:
            for source in strategy.files(enumerator):
                text = enumerator.read(source)
                if text is None:
                    continue
                partial = EntryPointMap()
                for entry in strategy.scan(source, text):
                    partial.add(entry)
                yield source, partial

    def extract(self, enumerator: FileEnumerator) -> EntryPointMap:
        result = EntryPointMap()
        for source, partial in self.partials(enumerator):
            for key in sorted(partial.entries.keys() & result.entries.keys()):
                logger.debug("Entry point %s redefined in %s", key, source.path)
            result.merge(partial)
        return result


# ===================================================================
# Directory convention (file-system routing)
# ===================================================================

_ROUTE_FILE_RE = re.compile(r"^route\.(ts|tsx|js|jsx)$")
_HANDLER_RE = re.compile(
    rf"^[ \t]*export\s+(?:(?:async\s+)?function\s*\*?\s*|(?:const|let|var)\s+)({_VERB_ALT})\b",
    re.MULTILINE,
)


def rewrite_segment(segment: str) -> Optional[str]:
    """Rewrite one routing-directory segment into URL syntax.

    ``[id]`` becomes ``:id``, ``[...slug]`` and ``[[...slug]]`` become
    ``:slug*``. Route groups ``(name)`` and parallel-route slots ``@name``
    contribute nothing and yield ``None``.
    """
    if not segment:
        return None
    if segment.startswith("(") and segment.endswith(")"):
        return None
    if segment.startswith("@"):
        return None
    catch_all = re.fullmatch(r"\[\[?\.\.\.([^\]]+)\]\]?", segment)
    if catch_all:
        return f":{catch_all.group(1)}*"
    return re.sub(r"\[([^\]]+)\]", r":\1", segment)


def build_route(segments: Sequence[str]) -> str:
    parts = [p for p in (rewrite_segment(s) for s in segments) if p]
    return "/" + "/".join(parts)


class AppRouterStrategy(EntryPointStrategy):
    """``.../api/users/[id]/route.ts`` exporting ``GET`` -> ``GET /users/:id``."""

    def accepts(self, source: SourceFile) -> bool:
        if not _ROUTE_FILE_RE.match(source.name):
            return False
        dirs = source.directory.split("/")
        return "api" in dirs or "app" in dirs

    @staticmethod
    def route_for(source: SourceFile) -> str:
        dirs = source.directory.split("/")
        if "api" in dirs:
            start = len(dirs) - 1 - dirs[::-1].index("api")
        else:
            start = dirs.index("app")
        return build_route(dirs[start + 1:])

    def scan(self, source: SourceFile, text: str) -> List[EntryPoint]:
        route = self.route_for(source)
        seen: Dict[str, int] = {}
        for match in _HANDLER_RE.finditer(text):
            verb = match.group(1)
            if verb not in seen:
                seen[verb] = first_line_of(text, match.start(1))
        return [
            EntryPoint(verb, route, Location(source.path, line))
            for verb, line in sorted(seen.items())
        ]


class PagesRouterStrategy(EntryPointStrategy):
    """Every file under ``pages/api`` is a catch-all handler for its path."""

    def accepts(self, source: SourceFile) -> bool:
        return "/pages/api/" in "/" + source.path

    @staticmethod
    def route_for(source: SourceFile) -> str:
        rel = ("/" + source.path).split("/pages/api/", 1)[1]
        stem = rel[: -len(source.extension)] if source.extension else rel
        segments = stem.split("/")
        if segments and segments[-1] == "index":
            segments = segments[:-1]
        return build_route(segments)

    def scan(self, source: SourceFile, text: str) -> List[EntryPoint]:
        return [EntryPoint(WILDCARD, self.route_for(source), Location(source.path, 1))]


# ===================================================================
# Declarative call (imperative registration)
# ===================================================================

_ROUTE_CALL_RE = re.compile(
    r"\b(?:app|router)\.(get|post|put|patch|delete|all)\s*\(\s*"
    r"""(?:(['"])((?:(?!\2).)+)\2|`([^`$]+)`)?"""
)


class RouteCallStrategy(EntryPointStrategy):
    """``router.get('/users', handler)`` style registrations."""

    def scan(self, source: SourceFile, text: str) -> List[EntryPoint]:
        entries: List[EntryPoint] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            for match in _ROUTE_CALL_RE.finditer(line):
                path = match.group(3) or match.group(4)
                if not path:
                    continue
                verb = match.group(1).upper()
                if verb == "ALL":
                    verb = WILDCARD
                entries.append(EntryPoint(verb, path, Location(source.path, lineno)))
        return entries


# ===================================================================
# Decorator (Python web frameworks)
# ===================================================================

_ROUTER_NAME = r"(?:app|router|api|bp|blueprint|\w+_(?:router|app|bp|api))"
_DECORATOR_RE = re.compile(
    rf"^\s*@{_ROUTER_NAME}\.(get|post|put|patch|delete|head|options|route|api_route)\s*\((.*)$"
)
_METHODS_RE = re.compile(r"methods\s*=\s*[\[(\{]([^\])\}]*)[\])\}]")
_PATH_KWARG_RE = re.compile(r"""\b(?:path|rule)\s*=\s*(?=[rbuf]?['"])""")


class DecoratorRouteStrategy(EntryPointStrategy):
    """FastAPI ``@router.get("/x")`` and Flask ``@bp.route("/x")`` decorators."""

    extensions = config.PY_EXTENSIONS

    def scan(self, source: SourceFile, text: str) -> List[EntryPoint]:
        entries: List[EntryPoint] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            match = _DECORATOR_RE.match(line)
            if not match:
                continue
            args = match.group(2)
            path = self._path(args)
            if not path:
                continue
            location = Location(source.path, lineno)
            for verb in self._methods(match.group(1), args):
                entries.append(EntryPoint(verb, path, location))
        return entries

    @staticmethod
    def _path(args: str) -> Optional[str]:
        """Literal first positional argument, else a ``path=``/``rule=`` keyword literal."""
        literal = _LITERAL_RE.match(args.lstrip())
        if literal is None:
            keyword = _PATH_KWARG_RE.search(args)
            if keyword is not None:
                literal = _LITERAL_RE.match(args, keyword.end())
        if literal is None:
            return None
        return literal.group(2) or None

    @staticmethod
    def _methods(attr: str, args: str) -> List[str]:
        if attr not in ("route", "api_route"):
            return [attr.upper()]
        listed = _METHODS_RE.search(args)
        if listed:
            verbs = [m.group(2).upper() for m in _LITERAL_RE.finditer(listed.group(1))]
            verbs = [v for v in verbs if v]
            if verbs:
                return verbs
        return [WILDCARD]


# ===================================================================
# Go call registration
# ===================================================================

_GO_VERB_CALL_RE = re.compile(
    r"\b\w+\.(GET|POST|PUT|PATCH|DELETE|HEAD|OPTIONS|Any"
    r"|Get|Post|Put|Patch|Delete|Head|Options)\(\s*\"([^\"]+)\""
)
_GO_HANDLE_RE = re.compile(r"\b\w+\.(?:HandleFunc|Handle)\(\s*\"([^\"]+)\"")
_GO_PATTERN_RE = re.compile(rf"^({_VERB_ALT})\s+(\S+)$")


class GoRouteStrategy(EntryPointStrategy):
    """``mux.HandleFunc("/x", h)``, ``r.GET("/x", h)`` and ``r.Get("/x", h)``."""

    extensions = config.GO_EXTENSIONS

    def scan(self, source: SourceFile, text: str) -> List[EntryPoint]:
        entries: List[EntryPoint] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            location = Location(source.path, lineno)
            for match in _GO_VERB_CALL_RE.finditer(line):
                verb = match.group(1).upper()
                entries.append(EntryPoint(WILDCARD if verb == "ANY" else verb, match.group(2), location))
            for match in _GO_HANDLE_RE.finditer(line):
                pattern = match.group(1)
                # net/http patterns may carry a method prefix: "GET /items/{id}"
                method_path = _GO_PATTERN_RE.match(pattern)
                if method_path:
                    entries.append(EntryPoint(method_path.group(1), method_path.group(2), location))
                else:
                    entries.append(EntryPoint(WILDCARD, pattern, location))
        return entries
