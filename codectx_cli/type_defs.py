"""Type-definition extraction: name -> file:line of the declaration."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Pattern, Tuple

from . import config
from .enumerator import FileEnumerator
from .models import Location, TypeMap, first_line_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeRule:
    """Line-anchored declaration pattern whose ``name`` group is the type name."""

    extensions: Tuple[str, ...]
    pattern: Pattern[str]
    skip_tests: bool = False

    def declarations(self, text: str) -> List[Tuple[str, int]]:
        """Return ``(name, line)`` pairs, first occurrence per name only."""
        seen = set()
        found: List[Tuple[str, int]] = []
        for match in self.pattern.finditer(text):
            group = "name" if match.group("name") is not None else "alias"
            name = match.group(group)
            if name in seen:
                continue
            seen.add(name)
            found.append((name, first_line_of(text, match.start(group))))
        return found


TYPESCRIPT_TYPES = TypeRule(
    extensions=config.TS_EXTENSIONS,
    pattern=re.compile(
        r"^(?:export\s+)?(?:default\s+)?(?:declare\s+)?(?:abstract\s+)?"
        r"(?:type|interface|enum|const\s+enum|class)\s+(?P<name>[A-Z][A-Za-z0-9_]*)",
        re.MULTILINE,
    ),
)

PYTHON_TYPES = TypeRule(
    extensions=config.PY_EXTENSIONS,
    pattern=re.compile(
        r"^(?:class\s+(?P<name>[A-Z][A-Za-z0-9_]*)"
        r"|(?P<alias>[A-Z][A-Za-z0-9_]*)\s*=\s*(?:typing\.)?(?:TypedDict|NamedTuple|NewType)\s*\()",
        re.MULTILINE,
    ),
)

GO_TYPES = TypeRule(
    extensions=config.GO_EXTENSIONS,
    pattern=re.compile(r"^type\s+(?P<name>[A-Za-z_]\w*)\b", re.MULTILINE),
)

RUST_TYPES = TypeRule(
    extensions=config.RUST_EXTENSIONS,
    pattern=re.compile(
        r"^[ \t]*(?:pub(?:\([^)]*\))?\s+)?(?:struct|enum|trait|type|union)\s+(?P<name>[A-Z]\w*)",
        re.MULTILINE,
    ),
)


class TypeExtractor:
    """Collect type declarations; across files the last one scanned wins."""

    def __init__(self, rule: Optional[TypeRule]) -> None:
        self.rule = rule

    def prepare(self, enumerator: FileEnumerator) -> None:
        if self.rule is not None:
            enumerator.enumerate(self.rule.extensions, skip_tests=self.rule.skip_tests)

    def partials(self, enumerator: FileEnumerator) -> Iterator[TypeMap]:
        if self.rule is None:
            return
        for source in enumerator.enumerate(self.rule.extensions, skip_tests=self.rule.skip_tests):
            text = enumerator.read(source)
            if text is None:
                continue
            partial = TypeMap()
            for name, line in self.rule.declarations(text):
                partial.add(name, Location(source.path, line))
            yield partial

    def extract(self, enumerator: FileEnumerator) -> TypeMap:
        result = TypeMap()
        for partial in self.partials(enumerator):
            for name in sorted(partial.entries.keys() & result.entries.keys()):
                logger.debug(
                    "Type %s at %s replaces %s", name, partial.entries[name], result.entries[name]
                )
            result.merge(partial)
        return result
