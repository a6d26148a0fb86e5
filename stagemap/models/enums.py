"""
Enums and constants for the stagemap engine.

This module defines all enums used throughout the codebase to avoid magic
strings. Authored map files and persisted snapshots carry the plain string
values; the parsing helpers here are the only place where loose input is
turned into enum members.

Usage:
    from stagemap.models.enums import (
        State,
        Roaming,
        Combinator,
    )
"""

import logging
from enum import IntEnum, StrEnum
from typing import Any

logger = logging.getLogger(__name__)


# ============================================================================
# Entity State
# ============================================================================


class State(StrEnum):
    """Shared state vocabulary for stages, paths and exercise bundles.

    Not every entity uses every value:
    - Stage: locked, unlocking, open, completed, cleared, sealed
    - Path: open, cleared
    - ExerciseBundle: unstarted, opened, completed, cleared
    """

    UNSTARTED = "unstarted"
    LOCKED = "locked"
    UNLOCKING = "unlocking"
    OPEN = "open"
    OPENED = "opened"
    COMPLETED = "completed"
    CLEARED = "cleared"
    SEALED = "sealed"

    @property
    def code(self) -> int:
        """Legacy numeric code of this state."""
        return _STATE_CODES[self]

    @classmethod
    def parse(cls, value: Any) -> "State | None":
        """Resolve a state from a member, its name or its legacy numeric code.

        Returns None for anything that is not a known state.
        """
        if isinstance(value, State):
            return value
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            for state, code in _STATE_CODES.items():
                if code == value:
                    return state
            logger.warning("Unknown state code %r ignored", value)
            return None
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                logger.warning("Unknown state name %r ignored", value)
                return None
        return None


_STATE_CODES: dict[State, int] = {
    State.UNSTARTED: 0,
    State.LOCKED: 1,
    State.UNLOCKING: 2,
    State.OPEN: 3,
    State.OPENED: 4,
    State.COMPLETED: 5,
    State.CLEARED: 6,
    State.SEALED: 7,
}

# Progress order used when comparing stage states against each other
STATE_PROGRESS: dict[State, int] = {
    State.SEALED: 0,
    State.LOCKED: 0,
    State.UNLOCKING: 0,
    State.UNSTARTED: 1,
    State.OPEN: 1,
    State.OPENED: 1,
    State.COMPLETED: 2,
    State.CLEARED: 3,
}


# ============================================================================
# Map Policies
# ============================================================================


class Roaming(StrEnum):
    """How freely the learner may move across the map."""

    FREE = "free"  # No gating, everything open from the start
    COMPLETE = "complete"  # Neighbors unlock when a stage is finished
    SUCCESS = "success"  # Neighbors unlock only on full success


class Fog(StrEnum):
    """Visibility policy for parts of the map not reached yet."""

    ALL = "all"  # Everything visible
    NONE = "0"  # Only reached stages visible
    ONE = "1"  # Reached stages plus their direct neighbors visible


class StartStages(StrEnum):
    """How start stages are picked from the candidates."""

    RANDOM = "random"
    ALL = "all"


# ============================================================================
# Stage Kinds
# ============================================================================


class StageType(StrEnum):
    """Kind of map node."""

    STAGE = "stage"
    SPECIAL_STAGE = "special-stage"


class SpecialStageType(StrEnum):
    """Effects a special stage can run when clicked."""

    FINISH = "finish"
    EXTRA_LIFE = "extra-life"
    EXTRA_TIME = "extra-time"
    LINK = "link"


# ============================================================================
# Restriction Enums
# ============================================================================


class Combinator(StrEnum):
    """How a list of boolean checks is combined."""

    ALL = "all"
    ANY = "any"

    def combine(self, values: list[bool]) -> bool:
        if self == Combinator.ALL:
            return all(values)
        return any(values)


class RestrictionType(StrEnum):
    """Built-in restriction types."""

    TOTAL_SCORE = "totalScore"
    STAGE_SCORE = "stageScore"
    STAGE_PROGRESS = "stageProgress"
    TIME = "time"


class RestrictionOperator(StrEnum):
    """Operators known to any restriction type."""

    LESS_THAN = "lessThan"
    LESS_THAN_OR_EQUAL_TO = "lessThanOrEqualTo"
    EQUAL_TO = "equalTo"
    NOT_EQUAL_TO = "notEqualTo"
    GREATER_THAN_OR_EQUAL_TO = "greaterThanOrEqualTo"
    GREATER_THAN = "greaterThan"
    BEFORE = "before"
    IS = "is"
    IS_NOT = "isNot"
    AFTER = "after"


# ============================================================================
# Timer Enums
# ============================================================================


class TimerMode(StrEnum):
    """Direction a timer runs in."""

    TIMER = "timer"  # Counts down and expires at zero
    STOPWATCH = "stopwatch"  # Counts up, never expires


class TimerState(IntEnum):
    """Run state of a timer."""

    ENDED = 0
    PLAYING = 1
    PAUSED = 2


# ============================================================================
# Collaborator Enums
# ============================================================================


class DialogKind(StrEnum):
    """Confirmation dialogs the engine can request."""

    FINISH = "finish"
    GAME_OVER = "game_over"
    TIMEOUT = "timeout"
    INCOMPLETE_SCORE = "incomplete_score"
    FULL_SCORE = "full_score"
    ACCESS_RESTRICTED = "access_restricted"
