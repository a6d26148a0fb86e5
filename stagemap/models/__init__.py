"""
stagemap models package.

This package is the single source of truth for all type definitions and enums
used throughout the engine. All TypedDicts and enums are defined here and
imported by other modules.

Usage:
    from stagemap.models import (
        State,
        Roaming,
        ElementDefinition,
        MapSnapshot,
    )
"""

from .base import (
    AccessRestrictionsDefinition,
    ContentDefinition,
    ElementDefinition,
    ExerciseBundleSnapshot,
    ExerciseSnapshot,
    MapDefinition,
    MapSnapshot,
    PathSnapshot,
    RestrictionDefinition,
    RestrictionSetDefinition,
    StageIdsDict,
    StageSnapshot,
    TimeDefinition,
)
from .enums import (
    STATE_PROGRESS,
    Combinator,
    DialogKind,
    Fog,
    RestrictionOperator,
    RestrictionType,
    Roaming,
    SpecialStageType,
    StageType,
    StartStages,
    State,
    TimerMode,
    TimerState,
)

__all__ = [
    # Enums
    "State",
    "STATE_PROGRESS",
    "Roaming",
    "Fog",
    "StartStages",
    "StageType",
    "SpecialStageType",
    "Combinator",
    "RestrictionType",
    "RestrictionOperator",
    "TimerMode",
    "TimerState",
    "DialogKind",
    # Definitions
    "AccessRestrictionsDefinition",
    "ContentDefinition",
    "ElementDefinition",
    "MapDefinition",
    "RestrictionDefinition",
    "RestrictionSetDefinition",
    "TimeDefinition",
    # Snapshots
    "StageIdsDict",
    "StageSnapshot",
    "PathSnapshot",
    "ExerciseSnapshot",
    "ExerciseBundleSnapshot",
    "MapSnapshot",
]
