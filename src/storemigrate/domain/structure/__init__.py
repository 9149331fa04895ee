"""Structure import: reference resolution, menu trees and the staged orchestrator."""

from __future__ import annotations

from .context import StageContext
from .menus import MenuBuildStats, MenuTreeBuilder
from .orchestrator import StructureImportPipeline
from .references import ReferenceLookup, ReferenceMatch, classify_link, resolve_reference
from .stages import STAGE_HANDLERS, build_reference_lookup
from .state import ImportJob, StageState, initial_stages

__all__ = [
    "STAGE_HANDLERS",
    "ImportJob",
    "MenuBuildStats",
    "MenuTreeBuilder",
    "ReferenceLookup",
    "ReferenceMatch",
    "StageContext",
    "StageState",
    "StructureImportPipeline",
    "build_reference_lookup",
    "classify_link",
    "initial_stages",
    "resolve_reference",
]
