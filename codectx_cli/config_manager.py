"""Per-project settings loaded from an optional ``.codectx.toml`` file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

import toml

from . import config

logger = logging.getLogger(__name__)


@dataclass
class IndexSettings:
    """Effective settings for one run.

    Values come from the defaults in :mod:`codectx_cli.config`, then the
    project's ``.codectx.toml``, then explicit command-line overrides.
    """

    output_dir: str = config.OUTPUT_DIR_NAME
    concept_limit: int = config.DEFAULT_CONCEPT_LIMIT
    workers: int = config.DEFAULT_WORKERS
    exclude: FrozenSet[str] = frozenset()
    aliases: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def with_overrides(
        self,
        output_dir: Optional[str] = None,
        concept_limit: Optional[int] = None,
        workers: Optional[int] = None,
    ) -> "IndexSettings":
        return IndexSettings(
            output_dir=output_dir or self.output_dir,
            concept_limit=concept_limit if concept_limit is not None else self.concept_limit,
            workers=workers if workers is not None else self.workers,
            exclude=self.exclude,
            aliases=dict(self.aliases),
        )


def load_settings(project_root: Path) -> IndexSettings:
    """Load settings for *project_root*.

    Returns:
        Defaults when the settings file is absent or cannot be parsed.
    """
    path = project_root / config.SETTINGS_FILE_NAME
    if not path.is_file():
        return IndexSettings()

    try:
        raw = toml.load(str(path))
    except (toml.TomlDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return IndexSettings()

    return _settings_from_dict(raw)


def _settings_from_dict(raw: Dict[str, Any]) -> IndexSettings:
    settings = IndexSettings()
    index = raw.get("index", {})
    if not isinstance(index, dict):
        index = {}

    if isinstance(index.get("output_dir"), str) and index["output_dir"]:
        settings.output_dir = index["output_dir"]
    if isinstance(index.get("concept_limit"), int) and index["concept_limit"] > 0:
        settings.concept_limit = index["concept_limit"]
    if isinstance(index.get("workers"), int) and index["workers"] > 0:
        settings.workers = index["workers"]
    exclude = index.get("exclude", [])
    if isinstance(exclude, list):
        settings.exclude = frozenset(str(e) for e in exclude if e)

    aliases = raw.get("aliases", {})
    if isinstance(aliases, dict):
        for prefix, targets in aliases.items():
            if isinstance(targets, str):
                targets = [targets]
            if isinstance(targets, list):
                settings.aliases[str(prefix)] = tuple(str(t) for t in targets)
    return settings
