"""
Base model definitions for stagemap.

This module is the single source of truth for all TypedDict definitions used
throughout the engine: the authored map definition read from files and the
snapshot shape produced for persistence. Keys use the camelCase spelling of
the authoring format so files round-trip without renaming.
"""

from typing import Any, NotRequired, Required, TypedDict

__all__ = [
    # Restriction types
    "RestrictionGroupDict",
    "RestrictionDefinition",
    "RestrictionSetDefinition",
    "AccessRestrictionsDefinition",
    # Element types
    "ContentDefinition",
    "TimeDefinition",
    "ElementDefinition",
    "MapDefinition",
    # Snapshot types
    "StageIdsDict",
    "StageSnapshot",
    "PathSnapshot",
    "ExerciseSnapshot",
    "ExerciseBundleSnapshot",
    "MapSnapshot",
]


# ============================================================================
# Restriction Definitions
# ============================================================================


class RestrictionGroupDict(TypedDict, total=False):
    """Per-type parameter group, e.g. ``totalScoreGroup``.

    Keys are prefixed with the restriction type in the authoring format
    (``totalScoreOperator``, ``totalScoreValue``, ...), so this dict is left
    open and read through the factory.
    """


class RestrictionDefinition(TypedDict, total=False):
    """A single restriction.

    Two spellings are accepted:
    - grouped: ``{"restrictionType": "totalScore", "totalScoreGroup":
      {"totalScoreOperator": "greaterThan", "totalScoreValue": 5}}``
    - flat: ``{"restrictionType": "totalScore", "operator": "greaterThan",
      "value": 5}``
    """

    restrictionType: Required[str]
    operator: str
    value: int | float | str
    label: str
    stageId: str
    totalScoreGroup: dict[str, Any]
    stageScoreGroup: dict[str, Any]
    stageProgressGroup: dict[str, Any]
    timeGroup: dict[str, Any]


class RestrictionSetDefinition(TypedDict, total=False):
    """A list of restrictions combined with ``all`` or ``any``."""

    allOrAnyRestriction: str
    restrictionList: list[RestrictionDefinition]


class AccessRestrictionsDefinition(TypedDict, total=False):
    """All access restrictions of one stage."""

    allOrAnyRestrictionSet: str
    restrictionSetList: list[RestrictionSetDefinition]
    openOnScoreSufficient: bool


# ============================================================================
# Element Definitions
# ============================================================================


class ContentDefinition(TypedDict, total=False):
    """One content instance attached to a stage."""

    subContentId: str
    contentType: str
    isTask: bool
    maxScore: int | float


class TimeDefinition(TypedDict, total=False):
    """Time limit settings of an exercise bundle, in seconds."""

    timeLimit: int | float
    timeoutWarning: int | float


class ElementDefinition(TypedDict, total=False):
    """A map element: either a stage or a special stage.

    ``neighbors`` lists ids of adjacent elements. Numeric strings that are not
    ids are read as indexes into the element list (authoring tool format).
    """

    id: Required[str]
    type: str
    label: str
    neighbors: list[str]
    canBeStartStage: bool
    accessRestrictions: AccessRestrictionsDefinition
    contentsList: list[ContentDefinition]
    time: TimeDefinition
    specialStageType: str
    specialStageExtraTime: int
    specialStageLinkURL: str
    specialStageLinkTarget: str
    telemetry: dict[str, Any]


class MapDefinition(TypedDict, total=False):
    """A complete authored map."""

    name: str
    elements: Required[list[ElementDefinition]]
    settings: dict[str, Any]


# ============================================================================
# Snapshot Definitions
# ============================================================================


StageIdsDict = TypedDict("StageIdsDict", {"from": str, "to": str})


class StageSnapshot(TypedDict):
    """Persisted state of a stage."""

    id: str
    state: str
    visible: bool
    reachable: NotRequired[bool]


class PathSnapshot(TypedDict):
    """Persisted state of a path."""

    stageIds: StageIdsDict
    state: str
    visible: bool


class ExerciseSnapshot(TypedDict, total=False):
    """Persisted state of one content instance."""

    subContentId: str
    score: int | float
    maxScore: int | float
    completed: bool
    success: bool
    answerGiven: bool


class ExerciseBundleSnapshot(TypedDict):
    """Persisted state of an exercise bundle."""

    id: str
    subContentId: str | None
    state: str
    remainingTime: int | float | None
    isCompleted: bool
    instances: list[ExerciseSnapshot]


class MapSnapshot(TypedDict):
    """Persisted state of a whole map session."""

    stages: list[StageSnapshot]
    paths: list[PathSnapshot]
    exerciseBundles: list[ExerciseBundleSnapshot]
    livesLeft: NotRequired[int | float]
    timeLeft: NotRequired[int | float]
    gameDone: NotRequired[bool]
