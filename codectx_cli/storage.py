"""Artifact persistence: atomic writes into the output directory.

Artifacts are only ever replaced whole. A reader sees either the previous
version or the new one, never a partially written file.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from . import config

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Write named artifacts below ``<project_root>/<output_dir>``."""

    def __init__(self, project_root: Path, output_dir: str = config.OUTPUT_DIR_NAME) -> None:
        self.project_root = Path(project_root)
        self.output_dir = Path(output_dir)
        self.directory = (
            self.output_dir if self.output_dir.is_absolute() else self.project_root / self.output_dir
        )

    def path_for(self, name: str) -> Path:
        return self.directory / name

    def write_text(self, name: str, content: str) -> Path:
        """Atomically replace artifact *name* with *content*."""
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.path_for(name)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.directory), prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_path, target)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("Wrote %s (%d bytes)", target, len(content))
        return target

    def write_json(self, name: str, payload: Dict[str, Any]) -> Path:
        return self.write_text(name, json.dumps(payload, indent=2) + "\n")


# ===================================================================
# Freshness snapshot
# ===================================================================

def _sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def structure_hash(project_root: Path, ignore: Iterable[str] = ()) -> str:
    """Hash the sorted names of top-level entries; directories end with ``/``."""
    skipped = {".git", *ignore}
    names = []
    for entry in sorted(project_root.iterdir(), key=lambda p: p.name):
        if entry.name in skipped:
            continue
        names.append(entry.name + "/" if entry.is_dir() else entry.name)
    return _sha256("\n".join(names).encode("utf-8"))


def config_hashes(project_root: Path) -> Dict[str, str]:
    hashes: Dict[str, str] = {}
    for name in config.SNAPSHOT_CONFIG_FILES:
        path = project_root / name
        if not path.is_file():
            continue
        try:
            hashes[name] = _sha256(path.read_bytes())
        except OSError as exc:
            logger.debug("Could not hash %s: %s", path, exc)
    return hashes


def build_snapshot(
    project_root: Path,
    output_dir: str = config.OUTPUT_DIR_NAME,
    generated: Optional[int] = None,
) -> Dict[str, Any]:
    """Record enough of the tree's shape for an external staleness check."""
    top_level = Path(output_dir).parts[0] if output_dir and not Path(output_dir).is_absolute() else ""
    return {
        "generated": int(time.time()) if generated is None else generated,
        "structure_hash": structure_hash(project_root, ignore=[top_level] if top_level else []),
        "config_hashes": config_hashes(project_root),
    }
