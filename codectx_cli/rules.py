"""Profile -> extraction rule set.

Adding a language is adding one entry here plus its strategies; the driver
never branches on the profile itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .config_manager import IndexSettings
from .entry_points import (
    AppRouterStrategy,
    DecoratorRouteStrategy,
    EntryPointStrategy,
    GoRouteStrategy,
    PagesRouterStrategy,
    RouteCallStrategy,
)
from .exports import (
    ExportRule,
    GoExportRule,
    PythonExportRule,
    RustExportRule,
    TypeScriptExportRule,
)
from .models import Framework, Profile, ProjectProfile
from .resolver import (
    GoResolver,
    ImportResolver,
    PythonResolver,
    RustResolver,
    TypeScriptResolver,
    build_aliases,
)
from .type_defs import GO_TYPES, PYTHON_TYPES, RUST_TYPES, TYPESCRIPT_TYPES, TypeRule


@dataclass
class ExtractionRules:
    entry_strategies: List[EntryPointStrategy] = field(default_factory=list)
    export_rule: Optional[ExportRule] = None
    type_rule: Optional[TypeRule] = None
    import_resolver: Optional[ImportResolver] = None


def rules_for(
    profile: ProjectProfile,
    project_root: Path,
    settings: Optional[IndexSettings] = None,
) -> ExtractionRules:
    """Build the rule set for *profile*. ``unknown`` gets an empty one."""
    settings = settings or IndexSettings()

    if profile.profile is Profile.NODE:
        strategies: List[EntryPointStrategy]
        if profile.framework is Framework.NEXTJS:
            strategies = [AppRouterStrategy(), PagesRouterStrategy()]
        else:
            strategies = [RouteCallStrategy()]
        return ExtractionRules(
            entry_strategies=strategies,
            export_rule=TypeScriptExportRule(),
            type_rule=TYPESCRIPT_TYPES,
            import_resolver=TypeScriptResolver(
                project_root, build_aliases(project_root, settings.aliases)
            ),
        )

    if profile.profile is Profile.PYTHON:
        return ExtractionRules(
            entry_strategies=[DecoratorRouteStrategy()],
            export_rule=PythonExportRule(),
            type_rule=PYTHON_TYPES,
            import_resolver=PythonResolver(project_root),
        )

    if profile.profile is Profile.GO:
        return ExtractionRules(
            entry_strategies=[GoRouteStrategy()],
            export_rule=GoExportRule(),
            type_rule=GO_TYPES,
            import_resolver=GoResolver(project_root, profile.module_name),
        )

    if profile.profile is Profile.RUST:
        return ExtractionRules(
            export_rule=RustExportRule(),
            type_rule=RUST_TYPES,
            import_resolver=RustResolver(project_root),
        )

    return ExtractionRules()
