"""Project-type detection from ecosystem marker files."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Set

from .models import Framework, Profile, ProjectProfile

logger = logging.getLogger(__name__)

_GO_MODULE_RE = re.compile(r"^module\s+(\S+)", re.MULTILINE)
_DEPENDENCY_SECTIONS = ("dependencies", "devDependencies", "peerDependencies")


def detect_profile(project_root: Path) -> ProjectProfile:
    """Classify *project_root* into exactly one profile.

    Marker priority: ``package.json``, ``pyproject.toml``/``setup.py``,
    ``Cargo.toml``, ``go.mod``. No marker means ``unknown``.
    """
    if (project_root / "package.json").is_file():
        framework = _detect_node_framework(project_root / "package.json")
        logger.debug("Detected node project (framework=%s)", framework.value)
        return ProjectProfile(Profile.NODE, framework=framework)

    if (project_root / "pyproject.toml").is_file() or (project_root / "setup.py").is_file():
        return ProjectProfile(Profile.PYTHON)

    if (project_root / "Cargo.toml").is_file():
        return ProjectProfile(Profile.RUST)

    if (project_root / "go.mod").is_file():
        return ProjectProfile(Profile.GO, module_name=_read_go_module(project_root / "go.mod"))

    return ProjectProfile(Profile.UNKNOWN)


def _detect_node_framework(manifest: Path) -> Framework:
    try:
        raw = manifest.read_text(encoding="utf-8", errors="ignore")
    except OSError as exc:
        logger.debug("Could not read %s: %s", manifest, exc)
        return Framework.NONE

    try:
        deps = _declared_dependencies(json.loads(raw))
    except (json.JSONDecodeError, AttributeError):
        # Unparseable manifest: fall back to a plain text search.
        if '"next"' in raw:
            return Framework.NEXTJS
        if '"express"' in raw:
            return Framework.EXPRESS
        return Framework.NONE

    if "next" in deps:
        return Framework.NEXTJS
    if "express" in deps:
        return Framework.EXPRESS
    return Framework.NONE


def _declared_dependencies(manifest: Dict) -> Set[str]:
    names: Set[str] = set()
    for section in _DEPENDENCY_SECTIONS:
        value = manifest.get(section)
        if isinstance(value, dict):
            names.update(value.keys())
    return names


def _read_go_module(go_mod: Path) -> str:
    try:
        match = _GO_MODULE_RE.search(go_mod.read_text(encoding="utf-8", errors="ignore"))
    except OSError:
        return ""
    return match.group(1) if match else ""
