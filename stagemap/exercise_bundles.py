"""Collection of exercise bundles with reachability-filtered aggregation."""

import logging
from collections.abc import Callable, Iterator

from stagemap.context import MapContext
from stagemap.exercise import ExerciseBundle
from stagemap.models import ElementDefinition, ExerciseBundleSnapshot, State

logger = logging.getLogger(__name__)


def _noop(*_args) -> None:
    pass


class ExerciseBundles:
    """
    Exercise bundles of all stages that carry content.

    Special stages and stages without contents get no bundle. Scores,
    answers and snapshots only take reachable bundles into account.
    Callbacks receive the id of the stage the bundle belongs to.
    """

    def __init__(
        self,
        elements: list[ElementDefinition],
        context: MapContext,
        restored: list[ExerciseBundleSnapshot] | None = None,
        on_state_changed: Callable[[str, State], None] = _noop,
        on_score_changed: Callable[[str, float, float], None] = _noop,
        on_completed: Callable[[str, State], None] = _noop,
        on_timer_ticked: Callable[[str, float, bool], None] = _noop,
        on_timeout_warning: Callable[[str], None] = _noop,
        on_timeout: Callable[[str], None] = _noop,
        on_continue_available: Callable[[str], None] = _noop,
        on_continued: Callable[[str], None] = _noop,
    ):
        self.context = context
        snapshots = {}
        for item in restored or []:
            if not isinstance(item, dict):
                continue
            # Older snapshots wrap each bundle in an ``exerciseBundle`` key
            item = item.get("exerciseBundle", item)
            snapshots[item.get("id")] = item

        self._bundles: dict[str, ExerciseBundle] = {}
        for element in elements:
            if element.get("specialStageType") or not element.get("contentsList"):
                continue

            stage_id = element["id"]
            self._bundles[stage_id] = ExerciseBundle(
                stage_id,
                element["contentsList"],
                context,
                time=element.get("time"),
                restored=snapshots.get(stage_id),
                on_state_changed=lambda state, sid=stage_id: on_state_changed(sid, state),
                on_score_changed=lambda score, max_score, sid=stage_id: on_score_changed(
                    sid, score, max_score
                ),
                on_completed=lambda state, sid=stage_id: on_completed(sid, state),
                on_timer_ticked=lambda time_left, warning, sid=stage_id: on_timer_ticked(
                    sid, time_left, warning
                ),
                on_timeout_warning=lambda sid=stage_id: on_timeout_warning(sid),
                on_timeout=lambda sid=stage_id: on_timeout(sid),
                on_continue_available=lambda sid=stage_id: on_continue_available(sid),
                on_continued=lambda sid=stage_id: on_continued(sid),
            )

    def __iter__(self) -> Iterator[ExerciseBundle]:
        return iter(self._bundles.values())

    def __len__(self) -> int:
        return len(self._bundles)

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._bundles

    def get_exercise_bundle(self, stage_id: str) -> ExerciseBundle | None:
        return self._bundles.get(stage_id)

    def _reachable(self) -> list[ExerciseBundle]:
        return [bundle for bundle in self._bundles.values() if bundle.reachable]

    def update_reachability(self, reachable_stage_ids: set[str]) -> None:
        for stage_id, bundle in self._bundles.items():
            bundle.set_reachable(stage_id in reachable_stage_ids)

    def get_score(self) -> float:
        return sum(bundle.get_score() for bundle in self._reachable())

    def get_max_score(self) -> float:
        return sum(bundle.get_max_score() for bundle in self._reachable())

    def get_answer_given(self) -> bool:
        return any(bundle.get_answer_given() for bundle in self._reachable())

    def show_solutions(self) -> None:
        for bundle in self._reachable():
            bundle.show_solutions()

    def reset_all(self, is_initial: bool = False) -> None:
        for bundle in self._bundles.values():
            bundle.reset(is_initial)

    def reset(self, stage_id: str) -> None:
        bundle = self._bundles.get(stage_id)
        if bundle is not None:
            bundle.reset()

    def start(self, stage_id: str) -> None:
        bundle = self._bundles.get(stage_id)
        if bundle is not None:
            bundle.start()

    def stop(self, stage_id: str) -> None:
        bundle = self._bundles.get(stage_id)
        if bundle is not None:
            bundle.stop()

    def stop_all(self) -> None:
        for bundle in self._bundles.values():
            bundle.stop()

    def get_current_state(self) -> list[ExerciseBundleSnapshot]:
        return [bundle.get_current_state() for bundle in self._reachable()]
