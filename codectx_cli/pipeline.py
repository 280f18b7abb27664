"""Top-level driver: detect, enumerate, extract in parallel, merge, prune."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Set

from . import config
from .concepts import ConceptExtractor
from .config_manager import IndexSettings, load_settings
from .detector import detect_profile
from .entry_points import EntryPointExtractor
from .enumerator import FileEnumerator
from .errors import NoSourceFilesError, ProjectRootError
from .exports import ExportExtractor
from .models import CodeIndex, ConceptMap, DependencyGraph, ProjectProfile
from .resolver import DependencyExtractor
from .rules import ExtractionRules, rules_for
from .type_defs import TypeExtractor

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    index: Optional[CodeIndex] = None
    graph: Optional[DependencyGraph] = None


class IndexPipeline:
    """One indexing run over a project tree.

    Detection and enumeration happen once; the index and the dependency graph
    share both when built together.
    """

    def __init__(self, project_root: Path, settings: Optional[IndexSettings] = None) -> None:
        root = Path(project_root)
        if not root.is_dir():
            raise ProjectRootError(f"Project root is not a readable directory: {root}")
        self.project_root = root.resolve()
        self.settings = settings or load_settings(self.project_root)
        self.profile: ProjectProfile = detect_profile(self.project_root)
        self.rules: ExtractionRules = rules_for(self.profile, self.project_root, self.settings)
        self.enumerator = FileEnumerator.for_profile(
            self.project_root,
            self.profile.profile.value,
            exclude=self.settings.exclude,
            output_dir=self.settings.output_dir,
        )
        self.concept_enumerator = FileEnumerator(
            self.project_root,
            config.CONCEPT_SKIP_DIRS,
            exclude=self.settings.exclude,
            output_dir=self.settings.output_dir,
        )
        logger.info("Indexing %s as %s", self.project_root, self.profile.project_type)

    def run(self, build_index: bool = True, build_graph: bool = True) -> RunResult:
        """Run the requested extractors and return pruned, ready-to-render results.

        Raises:
            NoSourceFilesError: no file with a supported extension exists.
        """
        concept_files = self.concept_enumerator.enumerate(config.CONCEPT_EXTENSIONS)
        if not concept_files:
            raise NoSourceFilesError(f"No supported source files under {self.project_root}")

        concepts = ConceptExtractor(limit=self.settings.concept_limit)
        entries = EntryPointExtractor(self.rules.entry_strategies)
        exports = ExportExtractor(self.rules.export_rule)
        types = TypeExtractor(self.rules.type_rule)
        imports = DependencyExtractor(self.rules.import_resolver)

        # Enumeration populates the shared cache before any worker reads it.
        if build_index:
            for extractor in (entries, exports, types):
                extractor.prepare(self.enumerator)
        if build_graph:
            imports.prepare(self.enumerator)

        generated = int(time.time())
        result = RunResult()
        workers = max(1, self.settings.workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures: Dict[str, Future] = {}
            if build_index:
                futures["concepts"] = pool.submit(concepts.extract, concept_files)
                futures["entry_points"] = pool.submit(entries.extract, self.enumerator)
                futures["exports"] = pool.submit(exports.extract, self.enumerator)
                futures["types"] = pool.submit(types.extract, self.enumerator)
            if build_graph:
                futures["edges"] = pool.submit(imports.extract, self.enumerator)
            wait(futures.values())

        # Every extractor has finished; merge into accumulators owned by the run.
        if build_index:
            index = CodeIndex(
                profile=self.profile,
                generated=generated,
                concepts=ConceptMap(limit=self.settings.concept_limit),
            )
            index.concepts.merge(futures["concepts"].result())
            index.entry_points.merge(futures["entry_points"].result())
            index.exports.merge(futures["exports"].result())
            index.types.merge(futures["types"].result())
            result.index = index
        if build_graph:
            graph = DependencyGraph(profile=self.profile, generated=generated)
            graph.edges.merge(futures["edges"].result())
            result.graph = graph

        known = self.known_paths()
        if result.index is not None:
            result.index.prune(known)
            logger.debug(
                "Index: %d concepts, %d entry points, %d exports, %d types",
                len(result.index.concepts), len(result.index.entry_points),
                len(result.index.exports), len(result.index.types),
            )
        if result.graph is not None:
            result.graph.prune(known)
            logger.debug("Graph: %d edges", len(result.graph.edges))
        return result

    def known_paths(self) -> Set[str]:
        return self.enumerator.all_paths() | self.concept_enumerator.all_paths()


def build_index(project_root: Path, settings: Optional[IndexSettings] = None) -> CodeIndex:
    result = IndexPipeline(project_root, settings).run(build_graph=False)
    assert result.index is not None
    return result.index


def build_graph(project_root: Path, settings: Optional[IndexSettings] = None) -> DependencyGraph:
    result = IndexPipeline(project_root, settings).run(build_index=False)
    assert result.graph is not None
    return result.graph
