"""Per-session context shared by all parts of one map.

Everything a stage, path or exercise bundle needs from its surroundings is
reached through ``MapContext``: the settings, the scheduler, the callback
queue, the random source, the clock, the external collaborators and the
live values restrictions compare against. Each engine owns its own context,
so several maps can run side by side.
"""

import random as random_module
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from stagemap.callback_queue import CallbackQueue
from stagemap.collaborators import Collaborators
from stagemap.restriction import RestrictionSources
from stagemap.scheduler import ManualScheduler, Scheduler
from stagemap.settings import MapSettings


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class MapContext:
    """
    Injected dependencies of a map session.

    Attributes:
        settings: Read-only configuration
        scheduler: Runs deferred callbacks and timer ticks
        collaborators: Rendering, dialogs, audio and status display
        random: Source of randomness for start stage selection
        clock: Current wall-clock time for time restrictions
        callback_queue: Ordering of visible effects, built from the scheduler
        sources: Live values for restrictions, wired by the engine
    """

    settings: MapSettings = field(default_factory=MapSettings)
    scheduler: Scheduler = field(default_factory=ManualScheduler)
    collaborators: Collaborators = field(default_factory=Collaborators)
    random: random_module.Random = field(default_factory=random_module.Random)
    clock: Callable[[], datetime] = _utc_now
    callback_queue: CallbackQueue = field(init=False)
    sources: RestrictionSources = field(init=False)

    def __post_init__(self):
        self.callback_queue = CallbackQueue(self.scheduler)
        # Without animation, scheduled effects all fire together
        self.callback_queue.set_respects_delay(self.settings.use_animation)
        self.sources = RestrictionSources(time=lambda: self.clock())
