"""Defaults for artifact locations, file filters, and extraction limits."""

from __future__ import annotations

import logging
import os
from typing import Dict, FrozenSet, Optional, Tuple

logger = logging.getLogger(__name__)

OUTPUT_DIR_NAME = os.environ.get("CODECTX_OUTPUT_DIR", ".claude")
SETTINGS_FILE_NAME = ".codectx.toml"

INDEX_FILE = "code-index.json"
SNAPSHOT_FILE = "snapshot.json"
INDEX_VERSION = "1.0"

FALLBACK_WORKERS = 4


def workers_from_env(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        return FALLBACK_WORKERS
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring CODECTX_WORKERS=%r: not an integer", raw)
        return FALLBACK_WORKERS
    if value < 1:
        logger.warning("Ignoring CODECTX_WORKERS=%r: must be at least 1", raw)
        return FALLBACK_WORKERS
    return value


DEFAULT_WORKERS = workers_from_env(os.environ.get("CODECTX_WORKERS"))
DEFAULT_CONCEPT_LIMIT = 10

# ---------------------------------------------------------------------------
# File-extension filters
# ---------------------------------------------------------------------------
JS_EXTENSIONS: Tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx")
TS_EXTENSIONS: Tuple[str, ...] = (".ts", ".tsx")
PY_EXTENSIONS: Tuple[str, ...] = (".py",)
GO_EXTENSIONS: Tuple[str, ...] = (".go",)
RUST_EXTENSIONS: Tuple[str, ...] = (".rs",)
CONCEPT_EXTENSIONS: Tuple[str, ...] = JS_EXTENSIONS + PY_EXTENSIONS + GO_EXTENSIONS + RUST_EXTENSIONS

# Tried in order after the bare specifier when resolving JS/TS imports.
RESOLVE_EXTENSIONS: Tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
INDEX_BASENAME = "index"

DEFAULT_ALIASES: Dict[str, Tuple[str, ...]] = {"@/": ("src/", "")}

# ---------------------------------------------------------------------------
# Directory exclusions
# ---------------------------------------------------------------------------
BASE_SKIP_DIRS: FrozenSet[str] = frozenset({
    "node_modules", ".next", "dist", "build", ".git",
})

PROFILE_SKIP_DIRS: Dict[str, FrozenSet[str]] = {
    "node": frozenset({".turbo", "coverage", "out"}),
    "python": frozenset({
        "__pycache__", "venv", ".venv", "site-packages", ".tox",
        ".mypy_cache", ".pytest_cache", ".ruff_cache", ".eggs",
    }),
    "go": frozenset({"vendor"}),
    "rust": frozenset({"target"}),
    "unknown": frozenset(),
}

# Concept scanning ignores the profile and skips every build/cache directory.
CONCEPT_SKIP_DIRS: FrozenSet[str] = BASE_SKIP_DIRS.union(*PROFILE_SKIP_DIRS.values())

# ---------------------------------------------------------------------------
# Freshness snapshot
# ---------------------------------------------------------------------------
SNAPSHOT_CONFIG_FILES: Tuple[str, ...] = (
    "package.json",
    "tsconfig.json",
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "requirements.txt",
    "Cargo.toml",
    "go.mod",
)
