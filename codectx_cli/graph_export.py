"""Render the code index and the dependency graph to their artifact formats."""

from __future__ import annotations

import json
import posixpath
import re
from enum import Enum
from typing import Any, Dict, List

from . import config
from .models import CodeIndex, DependencyGraph

LEGEND_LIMIT = 20


class GraphFormat(str, Enum):
    MERMAID = "mermaid"
    DOT = "dot"
    JSON = "json"

    @property
    def file_name(self) -> str:
        return f"deps.{self.value}"


# ===================================================================
# Code index
# ===================================================================

def index_payload(index: CodeIndex) -> Dict[str, Any]:
    """Build the ``code-index.json`` document; maps other than concepts are key-sorted."""
    return {
        "version": config.INDEX_VERSION,
        "generated": index.generated,
        "project_type": index.profile.project_type,
        "profile": index.profile.profile.value,
        "framework": index.profile.framework.value,
        "concepts": index.concepts.as_dict(),
        "entry_points": {
            key: str(loc) for key, loc in sorted(index.entry_points.entries.items())
        },
        "exports": {
            path: list(symbols) for path, symbols in sorted(index.exports.entries.items())
        },
        "types": {name: str(loc) for name, loc in sorted(index.types.entries.items())},
    }


def render_index_json(index: CodeIndex) -> str:
    return json.dumps(index_payload(index), indent=2) + "\n"


# ===================================================================
# Dependency graph
# ===================================================================

def node_id(path: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", path)


def node_label(path: str) -> str:
    """File stem, or the directory name for a package target ending in ``/``."""
    if path.endswith("/"):
        return posixpath.basename(path.rstrip("/"))
    return posixpath.splitext(posixpath.basename(path))[0]


def cluster_of(path: str) -> str:
    """Parent directory truncated to two components; ``.`` for root files."""
    parent = posixpath.dirname(path.rstrip("/"))
    if not parent:
        return "."
    return "/".join(parent.split("/")[:2])


def clusters(graph: DependencyGraph) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for path in graph.files():
        grouped.setdefault(cluster_of(path), []).append(path)
    return dict(sorted(grouped.items()))


def render_mermaid(graph: DependencyGraph) -> str:
    lines = [
        "%% Dependency Graph",
        f"%% Profile: {graph.profile.project_type}",
        "%% Read this to understand import relationships",
        "",
        "graph LR",
    ]
    for cluster, paths in clusters(graph).items():
        cluster_key = "root" if cluster == "." else node_id(cluster)
        lines.append(f'  subgraph cluster_{cluster_key}["{cluster}"]')
        for path in paths:
            lines.append(f'    {node_id(path)}["{node_label(path)}"]')
        lines.append("  end")

    edges = graph.edges.sorted()
    if edges:
        lines.append("")
    for edge in edges:
        lines.append(f"  {node_id(edge.source)} --> {node_id(edge.target)}")

    lines.append("")
    lines.append("%% Full paths:")
    for edge in edges[:LEGEND_LIMIT]:
        lines.append(f"%%   {edge.source} -> {edge.target}")
    if len(edges) > LEGEND_LIMIT:
        lines.append(f"%%   ... and {len(edges) - LEGEND_LIMIT} more edges")
    return "\n".join(lines) + "\n"


def render_dot(graph: DependencyGraph) -> str:
    lines = [
        "// Dependency Graph",
        "// Render with: dot -Tsvg deps.dot -o deps.svg",
        "",
        "digraph deps {",
        "  rankdir=LR;",
        "  node [shape=box, style=rounded, fontsize=10];",
        "  edge [arrowsize=0.7];",
        "",
    ]
    for cluster, paths in clusters(graph).items():
        cluster_key = "root" if cluster == "." else node_id(cluster)
        lines.append(f"  subgraph cluster_{cluster_key} {{")
        lines.append(f'    label="{_esc(cluster)}";')
        lines.append("    style=dashed;")
        for path in paths:
            label = posixpath.basename(path.rstrip("/")) + ("/" if path.endswith("/") else "")
            lines.append(f'    "{node_id(path)}" [label="{_esc(label)}"];')
        lines.append("  }")
        lines.append("")

    lines.append("  // Dependencies")
    for edge in graph.edges.sorted():
        lines.append(f'  "{node_id(edge.source)}" -> "{node_id(edge.target)}";')
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_adjacency_json(graph: DependencyGraph) -> str:
    payload = {
        "generated": graph.generated,
        "edges": [{"from": e.source, "to": e.target} for e in graph.edges.sorted()],
        "adjacency": graph.adjacency(),
    }
    return json.dumps(payload, indent=2) + "\n"


RENDERERS = {
    GraphFormat.MERMAID: render_mermaid,
    GraphFormat.DOT: render_dot,
    GraphFormat.JSON: render_adjacency_json,
}


def render_graph(graph: DependencyGraph, fmt: GraphFormat) -> str:
    return RENDERERS[fmt](graph)


def _esc(text: str) -> str:
    return text.replace('"', '\\"')
