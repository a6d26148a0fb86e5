"""Stage entity: a node of the map with its own state machine."""

import logging
from collections.abc import Callable
from typing import Protocol

from stagemap.constants import ANIMATION_CLEARED_BLOCK_MS
from stagemap.context import MapContext
from stagemap.models import (
    ElementDefinition,
    Fog,
    Roaming,
    SpecialStageType,
    StageSnapshot,
    StageType,
    State,
)
from stagemap.restrictions import Restrictions

logger = logging.getLogger(__name__)

# States in which a click only gives "locked" feedback
LOCKED_STATES = (State.LOCKED, State.UNLOCKING, State.SEALED)


class SpecialFeatureHost(Protocol):
    """What a special stage may ask of the map when it is clicked."""

    def show_finish_confirmation(self) -> None:
        ...

    def add_extra_life(self) -> None:
        ...

    def add_extra_time(self, seconds: float) -> None:
        ...

    def open_link(self, url: str, target: str) -> None:
        ...


def _noop(*_args) -> None:
    pass


class Stage:
    """
    A node of the map.

    State changes go through ``set_state``, which applies the transition
    rules of the roaming policy, queues the visible effect and notifies
    ``on_state_changed`` once per actual change. Special stages carry a
    ``special_stage_type`` and run their effect through
    ``run_special_feature`` instead of opening an exercise.

    Attributes:
        id: Unique stage id
        label: Label shown to learners
        neighbors: Ids of adjacent stages
        state: Current state
        visible: Whether the stage is shown
        reachable: Whether the stage is connected to a start stage
        disabled: Whether clicks are ignored
        playful: Whether state changes queue effects
    """

    def __init__(
        self,
        definition: ElementDefinition,
        context: MapContext,
        neighbors: list[str] | None = None,
        restored: StageSnapshot | None = None,
        on_clicked: Callable[[str], None] | None = None,
        on_state_changed: Callable[[str, State], None] | None = None,
        on_access_restrictions_hit: Callable[[str], None] | None = None,
    ):
        self.context = context
        self.id = definition["id"]
        self.label = definition.get("label", self.id)
        self.neighbors = list(neighbors or [])
        self.can_be_start_stage = bool(definition.get("canBeStartStage", False))
        self.access_restrictions = Restrictions.create(
            definition.get("accessRestrictions"), context.sources
        )

        self.special_stage_type = _parse_special_stage_type(definition.get("specialStageType"))
        self.type = (
            StageType.SPECIAL_STAGE if self.special_stage_type is not None else StageType.STAGE
        )
        self.extra_time = definition.get("specialStageExtraTime", 0)
        self.link_url = definition.get("specialStageLinkURL", "")
        self.link_target = definition.get("specialStageLinkTarget", "_blank")

        self.on_clicked = on_clicked or _noop
        self.on_state_changed = on_state_changed or _noop
        self.on_access_restrictions_hit = on_access_restrictions_hit or _noop

        restored_state = State.parse(restored.get("state")) if restored else None
        self.initial_state = restored_state or State.LOCKED
        self.restored_visible: bool | None = restored.get("visible") if restored else None
        restored_reachable = restored.get("reachable") if restored else None
        self.restored_reachable: bool | None = (
            restored_reachable if isinstance(restored_reachable, bool) else None
        )
        self.hidden_initially = context.settings.fog != Fog.ALL

        self.state = self.initial_state
        self.visible = not self.hidden_initially
        self.reachable = False
        self.disabled = False
        self.playful = True
        # Special stages run their feature once per session
        self.used_up = False
        self._update_used_up()

    def _update_used_up(self) -> None:
        self.used_up = self.is_special and self.state == State.CLEARED
        if self.used_up:
            self.disable()
        else:
            self.enable()

    @property
    def is_special(self) -> bool:
        return self.type == StageType.SPECIAL_STAGE

    @property
    def open_on_score_sufficient(self) -> bool:
        return self.access_restrictions.open_on_score_sufficient

    # Visibility and interaction

    def show(self) -> None:
        if not self.visible:
            self.visible = True
            self._publish()

    def hide(self) -> None:
        if self.visible:
            self.visible = False
            self._publish()

    def enable(self) -> None:
        if self.used_up:
            return
        self.disabled = False

    def disable(self) -> None:
        self.disabled = True

    def set_reachable(self, reachable: bool) -> None:
        if not isinstance(reachable, bool):
            return
        self.reachable = reachable

    def toggle_playfulness(self, playful: bool | None = None) -> None:
        self.playful = playful if isinstance(playful, bool) else not self.playful

    def animate(self, effect: str) -> None:
        if not self.context.settings.use_animation:
            return
        self.context.collaborators.view.on_stage_effect(self.id, effect)

    # State machine

    def unlock(self) -> None:
        """Open a locked stage, or park it as unlocking while its restrictions fail."""
        if self.state not in (State.LOCKED, State.UNLOCKING):
            return

        if self.open_on_score_sufficient and not self.access_restrictions.all_passed():
            self.set_state(State.UNLOCKING)
            return

        self.set_state(State.OPEN)

    def set_state(self, state: State, force: bool = False) -> None:
        """
        Request a state.

        Args:
            state: Requested state
            force: Set the state without applying any transition rule
        """
        if not isinstance(state, State):
            return

        new_state: State | None = None

        if force:
            new_state = state
        elif state == State.LOCKED:
            new_state = State.LOCKED
        elif state == State.UNLOCKING:
            new_state = State.UNLOCKING
            self.show()
        elif state in (State.OPEN, State.OPENED):
            if self.state not in (State.COMPLETED, State.CLEARED):
                new_state = State.OPEN
            self.show()
        elif state == State.COMPLETED:
            if self.context.settings.roaming in (Roaming.FREE, Roaming.COMPLETE):
                new_state = State.CLEARED
        elif state == State.CLEARED:
            new_state = State.CLEARED
        elif state == State.SEALED:
            new_state = State.SEALED

        if new_state is None or new_state == self.state:
            return

        self.state = new_state
        self._publish()

        if self.playful:
            self._queue_effect(new_state)

        self.on_state_changed(self.id, new_state)

    def _queue_effect(self, state: State) -> None:
        audio = self.context.collaborators.audio

        def play_effect() -> None:
            if state in (State.OPEN, State.OPENED):
                self.animate("bounce")
                audio.play("unlockStage")
            elif state == State.CLEARED:
                self.animate("bounce")
                audio.play("clearStage")

        if state == State.CLEARED:
            self.context.callback_queue.add(play_effect, block=ANIMATION_CLEARED_BLOCK_MS)
        elif state == State.SEALED:
            self.context.callback_queue.add(play_effect, skip_queue=True)
        else:
            self.context.callback_queue.add(play_effect)

    def handle_click(self) -> None:
        """React to a learner clicking the stage."""
        if self.disabled:
            return

        if self.state in LOCKED_STATES:
            self.animate("shake")
            self.context.collaborators.audio.play("clickStageLocked")
            if self.state != State.SEALED and not self.access_restrictions.all_passed():
                self.on_access_restrictions_hit(self.id)
            return

        if not self.access_restrictions.all_passed():
            self.animate("shake")
            self.on_access_restrictions_hit(self.id)
            return

        self.on_clicked(self.id)

    def reset(self, is_initial: bool = False) -> None:
        self.set_state(self.initial_state if is_initial else State.LOCKED, force=True)
        self._update_used_up()

        if is_initial and self.restored_visible is not None:
            hidden = not self.restored_visible
        else:
            hidden = self.hidden_initially

        if hidden:
            self.hide()
        else:
            self.show()

    # Special stages

    def run_special_feature(self, host: SpecialFeatureHost) -> None:
        """Run the effect of a special stage. Ordinary stages do nothing."""
        if self.special_stage_type is None:
            return
        SPECIAL_FEATURES[self.special_stage_type](self, host)

    def _run_finish(self, host: SpecialFeatureHost) -> None:
        host.show_finish_confirmation()

    def _run_extra_life(self, host: SpecialFeatureHost) -> None:
        self.set_state(State.CLEARED)
        host.add_extra_life()
        self.used_up = True
        self.disable()

    def _run_extra_time(self, host: SpecialFeatureHost) -> None:
        host.add_extra_time(self.extra_time or 0)
        self.set_state(State.CLEARED)
        self.used_up = True
        self.disable()

    def _run_link(self, host: SpecialFeatureHost) -> None:
        if self.link_url:
            host.open_link(self.link_url, self.link_target)
        self.set_state(State.CLEARED)

    # Persistence

    def get_current_state(self) -> StageSnapshot:
        return {
            "id": self.id,
            "state": self.state.value,
            "visible": self.visible,
            "reachable": self.reachable,
        }

    def _publish(self) -> None:
        self.context.collaborators.view.on_stage_changed(self.id, self.state, self.visible)

    def __repr__(self) -> str:
        return f"Stage({self.id!r}, {self.state.value})"


SPECIAL_FEATURES: dict[SpecialStageType, Callable[[Stage, SpecialFeatureHost], None]] = {
    SpecialStageType.FINISH: Stage._run_finish,
    SpecialStageType.EXTRA_LIFE: Stage._run_extra_life,
    SpecialStageType.EXTRA_TIME: Stage._run_extra_time,
    SpecialStageType.LINK: Stage._run_link,
}


def _parse_special_stage_type(value: object) -> SpecialStageType | None:
    if value is None or value == "":
        return None
    try:
        return SpecialStageType(value)
    except ValueError:
        logger.warning("Unknown special stage type %r, treating as ordinary stage", value)
        return None
