"""
Map engine: the controller of one game map session.

``MapEngine`` owns the stages, the paths and the exercise bundles of a map
and reacts to what happens to them. A state change of a stage is always
followed, within the same call chain, by neighbor propagation, a
reachability update and a status refresh. Path effects are handed to the
callback queue so they play after the exercise overlay has closed.

Typical use:

    engine = MapEngine(definition, settings=MapSettings.from_dict(raw))
    engine.click_stage("stage-1")
    engine.score_exercise("stage-1", 3, 3)
    engine.close_exercise()
    snapshot = engine.get_current_state()
"""

import logging
import math
from collections.abc import Callable
from typing import Any

from stagemap.callback_queue import CallbackQueue
from stagemap.collaborators import AudioPlayer, DialogPresenter, MapView
from stagemap.constants import MS_IN_S, TIMER_INTERVAL_MS
from stagemap.context import MapContext
from stagemap.exercise_bundles import ExerciseBundles
from stagemap.models import (
    DialogKind,
    MapDefinition,
    MapSnapshot,
    Roaming,
    State,
    TimerMode,
)
from stagemap.path import Paths
from stagemap.settings import MapSettings
from stagemap.stage import Stage
from stagemap.stages import Stages
from stagemap.timer import Timer

logger = logging.getLogger(__name__)

# States counted as done in the stages status
DONE_STATES = (State.COMPLETED, State.CLEARED)


def _as_count(value: float) -> float:
    """Lives are whole numbers unless unlimited."""
    if math.isinf(value):
        return value
    return int(value)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class MapEngine:
    """
    Controller of a map session.

    Implements ``SpecialFeatureHost`` for special stages.

    Attributes:
        context: Injected dependencies of this session
        stages: All stages of the map
        paths: All paths of the map
        exercise_bundles: Exercise bundles of stages with content
        lives_left: Remaining lives, ``math.inf`` when unlimited
        game_done: Whether the session ended by finishing or game over
        open_exercise_id: Id of the stage whose exercise is open, or None
    """

    def __init__(
        self,
        definition: MapDefinition,
        settings: MapSettings | None = None,
        context: MapContext | None = None,
        previous_state: MapSnapshot | None = None,
        on_finished: Callable[[], None] | None = None,
    ):
        if context is None:
            if settings is None:
                settings = MapSettings.from_dict(definition.get("settings"))
            context = MapContext(settings=settings)

        self.context = context
        self.settings = context.settings
        self.previous_state: dict[str, Any] = (
            previous_state if isinstance(previous_state, dict) else {}
        )
        self.on_finished = on_finished

        elements = [
            element
            for element in definition.get("elements") or []
            if isinstance(element, dict) and element.get("id")
        ]
        self.elements = elements

        self.stages = Stages(
            elements,
            context,
            restored=self.previous_state.get("stages"),
            on_stage_clicked=self.handle_stage_clicked,
            on_stage_state_changed=self.handle_stage_state_changed,
            on_access_restrictions_hit=self.handle_access_restrictions_hit,
        )
        self.paths = Paths(self.stages.adjacency, context, restored=self.previous_state.get("paths"))
        self.exercise_bundles = ExerciseBundles(
            elements,
            context,
            restored=self.previous_state.get("exerciseBundles"),
            on_state_changed=self.handle_exercise_state_changed,
            on_score_changed=self.handle_exercise_score_changed,
            on_completed=self.handle_exercise_completed,
            on_timer_ticked=self.handle_exercise_timer_ticked,
            on_timeout_warning=self.handle_exercise_timeout_warning,
            on_timeout=self.handle_exercise_timeout,
            on_continue_available=self.handle_continue_available,
            on_continued=self.handle_exercise_continued,
        )

        sources = context.sources
        sources.total_score = self.get_score
        sources.stage_score = self._get_stage_score
        sources.stage_progress = self._get_stage_progress

        self.timer: Timer | None = None
        self.time_left: float | None = None
        self.has_played_timeout_warning_global = False
        if self.settings.behaviour.time_limit_global:
            self.timer = Timer(
                context.scheduler,
                mode=TimerMode.TIMER,
                interval_ms=TIMER_INTERVAL_MS,
                on_tick=lambda _time: self._handle_global_tick(),
                on_expired=lambda _time: self.show_game_over_confirmation(reason="timeout"),
            )

        self.lives_left: float = self.settings.behaviour.lives
        self.game_done = False
        self.is_showing_solutions = False
        self.stages_game_over_state: dict[str, State] = {}
        self.current_stage_index = 0
        self.full_score_was_announced = False
        self.has_user_made_progress = False
        self.open_exercise_id: str | None = None
        self.exercise_closed_callback: Callable[[], None] | None = None

        self.reset(is_initial=True)

    # Shortcuts to collaborators

    @property
    def view(self) -> MapView:
        return self.context.collaborators.view

    @property
    def dialogs(self) -> DialogPresenter:
        return self.context.collaborators.dialogs

    @property
    def audio(self) -> AudioPlayer:
        return self.context.collaborators.audio

    @property
    def queue(self) -> CallbackQueue:
        return self.context.callback_queue

    # Lifecycle

    def reset(self, is_initial: bool = False) -> None:
        """
        Bring the map back to its starting point.

        Args:
            is_initial: Restore the previous state handed to the constructor
                instead of starting over
        """
        previous = self.previous_state if is_initial else {}

        lives = previous.get("livesLeft")
        self.lives_left = _as_count(
            lives if _is_number(lives) else self.settings.behaviour.lives
        )

        self.game_done = bool(previous.get("gameDone", False))
        if not is_initial:
            self.is_showing_solutions = False
        self.stages_game_over_state = {}
        self.current_stage_index = 0
        self.full_score_was_announced = False
        self.open_exercise_id = None
        self.exercise_closed_callback = None

        self.dialogs.hide()
        self.queue.clear_scheduled()
        self.queue.clear_queued()
        self.queue.set_skippable(True)
        self.queue.open()

        self.stages.toggle_playfulness(False)
        self.paths.reset(is_initial)
        self.stages.reset(is_initial)
        self.exercise_bundles.reset_all(is_initial)

        if self.settings.roaming == Roaming.FREE:
            self.stages.open_all()
            self.paths.clear_all()

        restored_progress = is_initial and any(
            stage.state not in (State.LOCKED, State.UNLOCKING) for stage in self.stages
        )
        if not restored_progress:
            self.stages.set_start_stages()

        if self.lives_left == 0:
            self.update_reachability()
            self.stages.seal_all()

        self.update_reachability()
        self.stages.toggle_playfulness(True)
        self.stages.enable()

        self._reset_global_timer(previous.get("timeLeft"))
        self.refresh_status()

        logger.debug(
            "Map reset (initial=%s): %d stages, %d reachable",
            is_initial,
            len(self.stages),
            len(self.stages.reachable_ids),
        )

    def restart(self) -> None:
        """Start the map over, as the retry button does."""
        self.reset(is_initial=False)

    def update_reachability(self) -> set[str]:
        reachable = self.stages.update_reachability()
        self.paths.update_reachability(reachable)
        self.exercise_bundles.update_reachability(reachable)
        return reachable

    def refresh_status(self) -> None:
        status = self.context.collaborators.status
        status.set_status("stages", self.stages.get_count(DONE_STATES), len(self.stages))
        status.set_status("score", self.get_score(), self.get_max_score())
        if not math.isinf(self.lives_left):
            status.set_status("lives", self.lives_left)

    # Learner actions

    def click_stage(self, stage_id: str) -> None:
        """The learner clicked a stage."""
        stage = self.stages.get_stage(stage_id)
        if stage is None:
            return
        stage.handle_click()

    def score_exercise(
        self,
        stage_id: str,
        score: float,
        max_score: float | None = None,
        exercise: int | str = 0,
    ) -> None:
        """
        Report the result of one exercise of a stage.

        Args:
            stage_id: Stage the exercise belongs to
            score: Score reached
            max_score: Maximum score, if the content reports one
            exercise: Position or sub content id of the exercise in the bundle
        """
        if self.game_done and not self.is_showing_solutions:
            return

        bundle = self.exercise_bundles.get_exercise_bundle(stage_id)
        if bundle is None:
            return

        target = bundle.get_exercise(exercise)
        if target is None:
            return

        target.record_score(score, max_score)

    def continue_exercise(self) -> None:
        if self.open_exercise_id is None:
            return
        bundle = self.exercise_bundles.get_exercise_bundle(self.open_exercise_id)
        if bundle is not None:
            bundle.continue_()

    def close_exercise(self) -> None:
        self.handle_exercise_screen_closed()

    def seek_attention(self) -> Stage | None:
        """Draw attention to the next open stage."""
        stage = self.stages.get_next_open_stage()
        if stage is not None:
            stage.animate("bounce")
        return stage

    # Stage handlers

    def handle_stage_clicked(self, stage_id: str) -> None:
        if self.game_done and not self.is_showing_solutions:
            return

        stage = self.stages.get_stage(stage_id)
        if stage is None:
            return

        if stage.is_special:
            stage.run_special_feature(self)
            self.refresh_status()
            return

        bundle = self.exercise_bundles.get_exercise_bundle(stage_id)
        if bundle is None:
            return

        self.stages.disable()
        self.open_exercise_id = stage_id
        self.has_user_made_progress = True
        self.queue.set_skippable(False)

        remaining_time = bundle.get_remaining_time()
        if remaining_time is not None:
            self.view.on_timer_ticked(stage_id, remaining_time, False)

        self.view.on_exercise_opened(stage_id)
        self.audio.play("openExercise")
        self.exercise_bundles.start(stage_id)

        if not self.is_showing_solutions:
            index = self.stages.index_of(stage_id)
            self.current_stage_index = (index or 0) + 1

    def handle_stage_state_changed(self, stage_id: str, state: State) -> None:
        if self.is_showing_solutions:
            return

        self.queue.add(lambda: self.paths.update_state(stage_id, state))
        self.stages.update_neighbors_state(stage_id, state)
        self.update_reachability()
        self.refresh_status()

    def handle_access_restrictions_hit(self, stage_id: str) -> None:
        stage = self.stages.get_stage(stage_id)
        if stage is None:
            return

        messages = stage.access_restrictions.get_messages()
        self.view.on_access_restrictions_hit(stage_id, messages)
        if messages is None:
            return

        result = stage.access_restrictions.evaluate()
        logger.debug("Access to %s refused: %s", stage_id, result.message_keys)
        self.dialogs.show(
            DialogKind.ACCESS_RESTRICTED,
            {"stageId": stage_id, "messages": messages, "failed": result.message_keys},
        )

    # Exercise handlers

    def handle_exercise_state_changed(self, stage_id: str, state: State) -> None:
        if self.is_showing_solutions:
            return
        self.stages.update_state(stage_id, state)

    def handle_exercise_completed(self, stage_id: str, state: State) -> None:
        self.view.on_exercise_completed(stage_id, state)

    def handle_exercise_score_changed(self, stage_id: str, score: float, max_score: float) -> None:
        if self.game_done:
            return

        if (
            not self.full_score_was_announced
            and self.get_max_score() > 0
            and self.get_score() == self.get_max_score()
        ):
            self.full_score_was_announced = True
            self.queue.add(self._announce_full_score)

        self.stages.update_unlocking_stages()

        bundle = self.exercise_bundles.get_exercise_bundle(stage_id)
        if bundle is not None and bundle.is_completed and score != max_score:
            self.handle_incomplete_score(stage_id)

        self.refresh_status()

    def handle_incomplete_score(self, stage_id: str) -> None:
        if math.isinf(self.lives_left):
            return

        self.handle_lost_life()

        if self.lives_left > 0:
            self.dialogs.show(
                DialogKind.INCOMPLETE_SCORE,
                {"stageId": stage_id, "livesLeft": self.lives_left},
            )

    def handle_exercise_timer_ticked(self, stage_id: str, time_left: float, warning: bool) -> None:
        if stage_id != self.open_exercise_id:
            return
        self.view.on_timer_ticked(stage_id, time_left, warning)

    def handle_exercise_timeout_warning(self, stage_id: str) -> None:
        if stage_id != self.open_exercise_id:
            return
        self.audio.play("timeoutWarning")

    def handle_exercise_timeout(self, stage_id: str) -> None:
        if stage_id != self.open_exercise_id:
            return

        self.handle_lost_life()

        if self.lives_left > 0:

            def after_close() -> None:
                self.exercise_bundles.reset(stage_id)
                self.dialogs.show(
                    DialogKind.TIMEOUT,
                    {"stageId": stage_id, "lostLife": not math.isinf(self.lives_left)},
                )

            self.handle_exercise_screen_closed(animation_ended_callback=after_close)

    def handle_continue_available(self, stage_id: str) -> None:
        if stage_id != self.open_exercise_id:
            return
        self.view.on_continue_available(stage_id)

    def handle_exercise_continued(self, stage_id: str) -> None:
        if stage_id != self.open_exercise_id:
            return
        self.handle_exercise_screen_closed()

    def handle_lost_life(self) -> None:
        if self.lives_left == 0:
            return

        self.lives_left -= 1
        self.audio.play("lostLife")
        self.refresh_status()
        logger.info("Life lost, %s left", self.lives_left)

        if self.lives_left > 0:
            return

        logger.info("No lives left, sealing the map")
        self.queue.clear_queued()
        self.stages_game_over_state = {stage.id: stage.state for stage in self.stages}
        self.stages.seal_all()

        if self.open_exercise_id is None:
            self.show_game_over_confirmation()
        else:
            self.handle_exercise_screen_closed(
                animation_ended_callback=self.show_game_over_confirmation
            )

    # Exercise screen

    def handle_exercise_screen_closed(
        self, animation_ended_callback: Callable[[], None] | None = None
    ) -> None:
        """Close the open exercise. Queued effects play once the overlay is gone."""
        stage_id = self.open_exercise_id
        if stage_id is None:
            return

        self.exercise_closed_callback = animation_ended_callback

        self.view.on_exercise_closed(stage_id)
        self.audio.play("closeExercise")
        self.stages.enable()
        self.exercise_bundles.stop(stage_id)
        self.stages.update_unlocking_stages()

        if self.settings.use_animation:
            self.context.scheduler.call_later(
                self.settings.visual.misc.anim_duration_ms,
                self.handle_exercise_screen_close_animation_ended,
            )
        else:
            self.handle_exercise_screen_close_animation_ended()

    def handle_exercise_screen_close_animation_ended(self) -> None:
        self.open_exercise_id = None
        self.queue.set_skippable(True)

        if self.game_done:
            self.queue.clear_queued()
            return

        self.queue.schedule_queued()

        callback, self.exercise_closed_callback = self.exercise_closed_callback, None
        if callback is not None:
            callback()

    # Special features

    def show_finish_confirmation(self) -> None:
        if self.is_showing_solutions:
            self.view.on_finished()
            return

        self.audio.play("showDialog")
        self.dialogs.show(
            DialogKind.FINISH,
            {"score": self.get_score(), "maxScore": self.get_max_score()},
            on_confirmed=self.handle_confirmed_finish,
            on_canceled=self.audio.stop_all,
        )

    def handle_confirmed_finish(self) -> None:
        logger.info("Map finished with score %s/%s", self.get_score(), self.get_max_score())
        self.game_done = True
        self.queue.clear_queued()
        self.queue.clear_scheduled()
        self.stages.toggle_playfulness(False)
        self.audio.stop_all()
        if self.timer is not None:
            self.timer.stop()
        self._notify_finished()

    def show_game_over_confirmation(self, reason: str = "lives") -> None:
        logger.info("Game over (%s)", reason)
        self.game_done = True
        self.stages.toggle_playfulness(False)
        self.exercise_bundles.stop_all()
        self.audio.stop_all()
        if self.timer is not None:
            self.timer.stop()
        self.audio.play("gameOver")

        def confirmed() -> None:
            self.audio.stop_all()
            self._notify_finished()

        self.dialogs.show(
            DialogKind.GAME_OVER,
            {"reason": reason, "score": self.get_score(), "maxScore": self.get_max_score()},
            on_confirmed=confirmed,
        )

    def _notify_finished(self) -> None:
        self.view.on_finished()
        if self.on_finished is not None:
            self.on_finished()

    def _announce_full_score(self) -> None:
        self.audio.play("fullScore")
        self.dialogs.show(
            DialogKind.FULL_SCORE,
            {"score": self.get_score(), "livesLimited": not math.isinf(self.lives_left)},
        )

    def add_extra_life(self) -> None:
        if math.isinf(self.lives_left):
            return
        self.lives_left += 1
        self.audio.play("extraLife")
        self.refresh_status()

    def add_extra_time(self, seconds: float) -> None:
        if not _is_number(seconds) or seconds < 1 or self.timer is None:
            return
        self.timer.add_time(seconds * MS_IN_S)
        self.time_left = self.timer.get_time()
        self.context.collaborators.status.set_status("timer", Timer.to_timecode(self.time_left))
        self.audio.play("extraTime")

    def open_link(self, url: str, target: str) -> None:
        self.view.on_link_opened(url, target)

    def show_solutions(self) -> None:
        """Restore the stages as they were before game over and reveal solutions."""
        self.game_done = True
        self.is_showing_solutions = True
        self.dialogs.hide()
        self.stages.restore_states(self.stages_game_over_state)
        self.audio.stop_all()
        self.stages.enable()
        self.exercise_bundles.show_solutions()

    # Global timer

    def _reset_global_timer(self, restored_time: Any = None) -> None:
        if self.timer is None:
            return

        if _is_number(restored_time) and restored_time > 0:
            time_ms = restored_time
        else:
            time_ms = self.settings.behaviour.time_limit_global * MS_IN_S

        self.has_played_timeout_warning_global = False
        self.timer.reset()
        self.time_left = time_ms
        self.context.collaborators.status.set_status("timer", Timer.to_timecode(time_ms))

        if not self.game_done:
            self.timer.start(time_ms)

    def is_timeout_warning(self) -> bool:
        if self.has_played_timeout_warning_global:
            return False
        warning = self.settings.behaviour.timeout_warning_global
        return _is_number(warning) and self.time_left is not None and self.time_left <= warning * MS_IN_S

    def _handle_global_tick(self) -> None:
        self.time_left = self.timer.get_time()
        warning = self.is_timeout_warning()
        if warning:
            self.has_played_timeout_warning_global = True
            self.audio.play("timeoutWarning")

        self.view.on_timer_ticked(None, self.time_left, warning)
        self.context.collaborators.status.set_status("timer", Timer.to_timecode(self.time_left))

    # Restriction sources

    def _get_stage_score(self, stage_id: str) -> float | None:
        bundle = self.exercise_bundles.get_exercise_bundle(stage_id)
        return bundle.get_score() if bundle is not None else None

    def _get_stage_progress(self, stage_id: str) -> State | None:
        stage = self.stages.get_stage(stage_id)
        return stage.state if stage is not None else None

    # Contract queries

    def get_score(self) -> float:
        return min(self.exercise_bundles.get_score(), self.get_max_score())

    def get_max_score(self) -> float:
        return min(self.settings.behaviour.finish_score, self.exercise_bundles.get_max_score())

    def get_answer_given(self) -> bool:
        return self.exercise_bundles.get_answer_given() or self.has_user_made_progress

    def get_context(self) -> dict[str, Any]:
        return {"type": "stage", "value": self.current_stage_index}

    def get_current_state(self) -> MapSnapshot:
        snapshot: MapSnapshot = {
            "exerciseBundles": self.exercise_bundles.get_current_state(),
            "stages": self.stages.get_current_state(),
            "paths": self.paths.get_current_state(),
        }
        if not math.isinf(self.lives_left):
            snapshot["livesLeft"] = self.lives_left
        if self.timer is not None and self.time_left:
            snapshot["timeLeft"] = self.time_left
        if self.game_done:
            snapshot["gameDone"] = True
        return snapshot
