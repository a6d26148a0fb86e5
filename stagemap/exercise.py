"""Exercises and exercise bundles attached to stages."""

import logging
from collections.abc import Callable

from stagemap.constants import MS_IN_S, TIMER_INTERVAL_MS
from stagemap.context import MapContext
from stagemap.models import (
    ContentDefinition,
    ExerciseBundleSnapshot,
    ExerciseSnapshot,
    Roaming,
    State,
    TimeDefinition,
    TimerMode,
)
from stagemap.timer import Timer

logger = logging.getLogger(__name__)

# States an exercise bundle can take
BUNDLE_STATES = (State.UNSTARTED, State.OPENED, State.COMPLETED, State.CLEARED)


def _noop(*_args) -> None:
    pass


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Exercise:
    """
    Score record of one content instance.

    The content itself is rendered elsewhere. The engine only learns about
    it through ``record_score``, which stores the result and notifies the
    owning bundle.
    """

    def __init__(
        self,
        definition: ContentDefinition,
        restored: ExerciseSnapshot | None = None,
        on_scored: Callable[[], None] | None = None,
    ):
        self.sub_content_id = definition.get("subContentId")
        self.content_type = definition.get("contentType", "")
        self.is_task = bool(definition.get("isTask", True))

        default_max = 1 if self.is_task else 0
        max_score = definition.get("maxScore", default_max)
        self.default_max_score = max_score if _is_number(max_score) and max_score >= 0 else default_max

        self.restored = restored if isinstance(restored, dict) else None
        self.on_scored = on_scored or _noop

        self.max_score = self.default_max_score
        self.score = 0
        self.completed = False
        self.success = False
        self.answer_given = False
        self.showing_solutions = False

    def reset(self, is_initial: bool = False) -> None:
        self.showing_solutions = False
        self.max_score = self.default_max_score

        if is_initial and self.restored:
            restored_max = self.restored.get("maxScore")
            if _is_number(restored_max) and restored_max >= 0:
                self.max_score = restored_max
            restored_score = self.restored.get("score", 0)
            self.score = self._clamp(restored_score if _is_number(restored_score) else 0)
            self.completed = bool(self.restored.get("completed", False))
            self.success = bool(self.restored.get("success", False))
            self.answer_given = bool(self.restored.get("answerGiven", False))
            return

        self.score = 0
        self.completed = False
        self.success = False
        self.answer_given = False

    def _clamp(self, score: float) -> float:
        return min(max(0, score), self.max_score)

    def record_score(self, score: float, max_score: float | None = None) -> None:
        """Store the result of an attempt. Invalid scores are ignored."""
        if not _is_number(score):
            return
        if _is_number(max_score) and max_score >= 0:
            self.max_score = max_score

        self.score = self._clamp(score)
        self.completed = True
        self.success = self.score >= self.max_score
        self.answer_given = True
        self.on_scored()

    def toggle_completed(self, completed: bool) -> None:
        if isinstance(completed, bool):
            self.completed = completed

    def toggle_success(self, success: bool) -> None:
        if isinstance(success, bool):
            self.success = success

    def get_score(self) -> float:
        return self.score

    def get_max_score(self) -> float:
        return self.max_score

    def get_answer_given(self) -> bool:
        return self.answer_given

    def show_solutions(self) -> None:
        self.showing_solutions = True

    def get_current_state(self) -> ExerciseSnapshot:
        result: ExerciseSnapshot = {
            "score": self.score,
            "maxScore": self.max_score,
            "completed": self.completed,
            "success": self.success,
            "answerGiven": self.answer_given,
        }
        if self.sub_content_id:
            result["subContentId"] = self.sub_content_id
        return result


class ExerciseBundle:
    """
    The exercises of one stage, scored as a unit.

    A bundle moves from ``unstarted`` to ``opened`` when its stage is
    opened, and to ``completed`` or ``cleared`` when its exercises are
    finished. Each bundle may own a countdown that warns once before it
    expires.

    Attributes:
        id: Id of the stage the bundle belongs to
        state: Current bundle state
        is_completed: Whether every exercise was finished
        time_left: Remaining time in milliseconds, or None without a time limit
        continue_available: Whether the learner may leave the exercise
    """

    def __init__(
        self,
        stage_id: str,
        contents: list[ContentDefinition],
        context: MapContext,
        time: TimeDefinition | None = None,
        restored: ExerciseBundleSnapshot | None = None,
        on_state_changed: Callable[[State], None] | None = None,
        on_score_changed: Callable[[float, float], None] | None = None,
        on_completed: Callable[[State], None] | None = None,
        on_timer_ticked: Callable[[float, bool], None] | None = None,
        on_timeout_warning: Callable[[], None] | None = None,
        on_timeout: Callable[[], None] | None = None,
        on_continue_available: Callable[[], None] | None = None,
        on_continued: Callable[[], None] | None = None,
    ):
        self.id = stage_id
        self.context = context
        self.time: TimeDefinition = time or {}
        self.restored = restored if isinstance(restored, dict) else {}

        self.on_state_changed = on_state_changed or _noop
        self.on_score_changed = on_score_changed or _noop
        self.on_completed = on_completed or _noop
        self.on_timer_ticked = on_timer_ticked or _noop
        self.on_timeout_warning = on_timeout_warning or _noop
        self.on_timeout = on_timeout or _noop
        self.on_continue_available = on_continue_available or _noop
        self.on_continued = on_continued or _noop

        instances = self.restored.get("instances") or []
        self.exercises = [
            Exercise(
                content,
                restored=instances[index] if index < len(instances) else None,
                on_scored=self.handle_scored,
            )
            for index, content in enumerate(contents)
        ]
        self.has_task = any(exercise.is_task for exercise in self.exercises)

        self.state = State.UNSTARTED
        self.is_completed = False
        self.reachable = False
        self.time_left: float | None = None
        self.timer: Timer | None = None
        self.is_attached = False
        self.continue_available = False
        self.has_played_timeout_warning = False
        self.showing_solutions = False

    @property
    def sub_content_id(self) -> str | None:
        return self.exercises[0].sub_content_id if self.exercises else None

    @property
    def time_limit_ms(self) -> float | None:
        time_limit = self.time.get("timeLimit")
        if not _is_number(time_limit) or time_limit <= 0:
            return None
        return time_limit * MS_IN_S

    @property
    def max_remaining_time_ms(self) -> float:
        return (self.time_limit_ms or 0) + self.context.settings.visual.misc.anim_duration_ms

    def _clamp_remaining_time(self, time_left: float) -> float:
        return max(0, min(time_left, self.max_remaining_time_ms))

    def reset(self, is_initial: bool = False) -> None:
        if is_initial:
            time_left = self.restored.get("remainingTime")
            if _is_number(time_left):
                time_left = self._clamp_remaining_time(time_left)
            else:
                time_left = self.time_limit_ms
            self.is_completed = bool(self.restored.get("isCompleted", False))
            state = State.parse(self.restored.get("state")) or State.UNSTARTED
        else:
            time_left = self.time_limit_ms
            self.is_completed = False
            state = State.UNSTARTED

        if self.time_limit_ms is not None:
            if self.timer is None:
                self.timer = Timer(
                    self.context.scheduler,
                    mode=TimerMode.TIMER,
                    interval_ms=TIMER_INTERVAL_MS,
                    on_expired=lambda _time: self.handle_timeout(),
                    on_tick=lambda _time: self._handle_tick(),
                )
            self.time_left = time_left

        if not is_initial and self.timer is not None:
            self.timer.reset()
            self.timer.set_time(self.time_left or 0)

        self.continue_available = False
        self.set_state(state)
        self.has_played_timeout_warning = False
        self.showing_solutions = False

        for exercise in self.exercises:
            exercise.reset(is_initial)

    def set_reachable(self, reachable: bool) -> None:
        if isinstance(reachable, bool):
            self.reachable = reachable

    def get_exercise(self, key: int | str = 0) -> Exercise | None:
        """Look up an exercise by position or by sub content id."""
        if isinstance(key, int) and not isinstance(key, bool):
            return self.exercises[key] if 0 <= key < len(self.exercises) else None
        return next(
            (exercise for exercise in self.exercises if exercise.sub_content_id == key), None
        )

    def get_score(self) -> float:
        return sum(exercise.get_score() for exercise in self.exercises)

    def get_max_score(self) -> float:
        return sum(exercise.get_max_score() for exercise in self.exercises)

    def get_answer_given(self) -> bool:
        return any(exercise.get_answer_given() for exercise in self.exercises)

    def get_remaining_time(self) -> float | None:
        return self.time_left

    def is_timeout_warning(self) -> bool:
        warning = self.time.get("timeoutWarning")
        return (
            _is_number(warning)
            and self.time_left is not None
            and self.time_left <= warning * MS_IN_S
        )

    def start(self) -> None:
        """Attach the exercises and start the countdown when the stage is opened."""
        if self.is_completed and self.is_attached:
            return

        if not self.is_attached:
            self.is_attached = True
            for exercise in self.exercises:
                if not exercise.is_task:
                    exercise.toggle_completed(True)
                    exercise.toggle_success(True)

        self.is_completed = all(exercise.completed for exercise in self.exercises)

        if self.showing_solutions:
            self.show_solutions()
        elif not self.is_completed and self.timer is not None:
            self.timer.start(min(self.time_left or 0, self.max_remaining_time_ms))

        self.set_state(State.OPENED)

    def stop(self) -> None:
        if self.timer is not None:
            self.timer.stop()

    def set_state(self, state: State, force: bool = False) -> None:
        if not isinstance(state, State):
            return

        new_state: State | None = None

        if force:
            new_state = state
        elif state == State.OPENED:
            # Content without tasks completes itself
            new_state = State.OPENED if self.has_task else State.CLEARED
        elif state in BUNDLE_STATES:
            new_state = state

        if new_state is None or new_state == self.state:
            return

        self.state = new_state
        self.on_state_changed(new_state)

    def handle_scored(self) -> None:
        """Recompute completion after one of the exercises was scored."""
        roaming = self.context.settings.roaming
        self.is_completed = all(exercise.completed for exercise in self.exercises)
        all_successful = all(exercise.success for exercise in self.exercises)

        previous = self.state
        if all_successful:
            self.set_state(State.CLEARED)
        elif self.is_completed:
            self.set_state(State.COMPLETED)

        if self.state != previous and self.state in (State.COMPLETED, State.CLEARED):
            state = self.state
            self.context.scheduler.call_later(0, lambda: self.on_completed(state))

        if (
            roaming == Roaming.FREE
            or (roaming == Roaming.COMPLETE and self.is_completed)
            or (roaming == Roaming.SUCCESS and all_successful)
        ):
            self.stop()
            if not self.continue_available:
                self.continue_available = True
                self.on_continue_available()

        self.on_score_changed(self.get_score(), self.get_max_score())

    def continue_(self) -> None:
        """The learner chose to leave the exercise."""
        if not self.continue_available:
            return
        self.on_continued()

    def _handle_tick(self) -> None:
        if self.timer is None:
            return
        self.time_left = self.timer.get_time()
        warning = self.is_timeout_warning()
        self.on_timer_ticked(self.time_left, warning)
        if warning:
            self.handle_timeout_warning()

    def handle_timeout_warning(self) -> None:
        if not self.has_played_timeout_warning and self.is_timeout_warning():
            self.has_played_timeout_warning = True
            self.on_timeout_warning()

    def handle_timeout(self) -> None:
        if self.timer is not None:
            self.time_left = self.timer.get_time()
        self.on_timeout()

    def show_solutions(self) -> None:
        self.showing_solutions = True
        for exercise in self.exercises:
            exercise.show_solutions()

    def get_current_state(self) -> ExerciseBundleSnapshot:
        remaining_time = (
            self._clamp_remaining_time(self.time_left) if self.time_left is not None else None
        )
        return {
            "id": self.id,
            "subContentId": self.sub_content_id,
            "state": self.state.value,
            "remainingTime": remaining_time,
            "isCompleted": self.is_completed,
            "instances": [exercise.get_current_state() for exercise in self.exercises],
        }

    def __repr__(self) -> str:
        return f"ExerciseBundle({self.id!r}, {self.state.value})"
