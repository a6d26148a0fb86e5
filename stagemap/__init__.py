"""
stagemap: a stage progression engine for game maps.

A map is a graph of stages joined by paths. Each stage holds a bundle of
exercises; scoring them clears or completes the stage, which unlocks its
neighbors according to the roaming and fog settings of the map. stagemap
keeps the state of every stage, path and exercise bundle, enforces access
restrictions, lives and timers, orders visual effects, and produces
snapshots that a session can be resumed from.

Core Components:
    - MapEngine: Controller of one map session
    - MapSettings: Behaviour and visual configuration
    - MapContext: Injected dependencies (scheduler, collaborators, clock)
    - Stage / Stages: Stage state machine and graph
    - Path / Paths: Connections between stages
    - ExerciseBundle: Exercises of one stage and their scoring
    - Restrictions: Access restrictions of a stage

Example Usage:
    ```python
    from stagemap import MapEngine, load_map

    definition = load_map("path/to/map.yaml")
    engine = MapEngine(definition)
    engine.click_stage("stage-1")
    engine.score_exercise("stage-1", 3, 3)
    engine.close_exercise()
    snapshot = engine.get_current_state()
    ```
"""

__version__ = "0.1.0"

from .callback_queue import CallbackQueue
from .collaborators import (
    AudioPlayer,
    Collaborators,
    DialogPresenter,
    EventRecorder,
    MapView,
    StatusDisplay,
)
from .context import MapContext
from .engine import MapEngine
from .exceptions import ConfigurationError, LoadError, SnapshotError, StageMapError
from .exercise import Exercise, ExerciseBundle
from .exercise_bundles import ExerciseBundles
from .loader import load_map, load_snapshot, parse_map, parse_snapshot, save_snapshot
from .models import Fog, Roaming, State
from .path import Path, Paths
from .restrictions import Restrictions
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .settings import MapSettings
from .stage import Stage
from .stages import Stages, compute_reachable_set, resolve_neighbors
from .timer import Timer

__all__ = [
    # Core functionality
    "MapEngine",
    "MapSettings",
    "MapContext",
    "Stage",
    "Stages",
    "Path",
    "Paths",
    "Exercise",
    "ExerciseBundle",
    "ExerciseBundles",
    "Restrictions",
    "Timer",
    "CallbackQueue",
    # Graph helpers
    "resolve_neighbors",
    "compute_reachable_set",
    # Scheduling
    "Scheduler",
    "ManualScheduler",
    "AsyncioScheduler",
    # Collaborators
    "Collaborators",
    "MapView",
    "DialogPresenter",
    "AudioPlayer",
    "StatusDisplay",
    "EventRecorder",
    # Enums
    "State",
    "Roaming",
    "Fog",
    # Loading
    "load_map",
    "load_snapshot",
    "save_snapshot",
    "parse_map",
    "parse_snapshot",
    # Exceptions
    "StageMapError",
    "ConfigurationError",
    "LoadError",
    "SnapshotError",
]
