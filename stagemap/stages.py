"""Stages collection: the map graph, reachability and neighbor propagation."""

import logging
from collections import deque
from collections.abc import Callable, Iterable, Iterator

from stagemap.context import MapContext
from stagemap.models import (
    ElementDefinition,
    Fog,
    Roaming,
    StageSnapshot,
    StartStages,
    State,
)
from stagemap.stage import Stage

logger = logging.getLogger(__name__)


def resolve_neighbors(elements: list[ElementDefinition]) -> dict[str, list[str]]:
    """
    Build a symmetric adjacency map from authored elements.

    Neighbors are given either as stage ids or as numeric strings indexing
    into ``elements``. Unknown references and self references are dropped.
    """
    ids = [element["id"] for element in elements]
    known = set(ids)
    adjacency: dict[str, list[str]] = {stage_id: [] for stage_id in ids}

    def link(a: str, b: str) -> None:
        if b not in adjacency[a]:
            adjacency[a].append(b)

    for element in elements:
        stage_id = element["id"]
        for neighbor in element.get("neighbors") or []:
            neighbor_id = _resolve_reference(neighbor, ids, known)
            if neighbor_id is None or neighbor_id == stage_id:
                logger.debug("Dropping neighbor %r of stage %s", neighbor, stage_id)
                continue
            link(stage_id, neighbor_id)
            link(neighbor_id, stage_id)

    return adjacency


def _resolve_reference(reference: object, ids: list[str], known: set[str]) -> str | None:
    if isinstance(reference, str) and reference in known:
        return reference
    if isinstance(reference, bool):
        return None
    if isinstance(reference, int) or (isinstance(reference, str) and reference.isdigit()):
        index = int(reference)
        if 0 <= index < len(ids):
            return ids[index]
    return None


def compute_reachable_set(adjacency: dict[str, list[str]], start_ids: Iterable[str]) -> set[str]:
    """Breadth-first closure of ``start_ids`` over ``adjacency``."""
    visited = {stage_id for stage_id in start_ids if stage_id in adjacency}
    frontier = deque(visited)

    while frontier:
        current = frontier.popleft()
        for neighbor in adjacency.get(current, []):
            if neighbor not in visited:
                visited.add(neighbor)
                frontier.append(neighbor)

    return visited


class Stages:
    """
    All stages of a map.

    Attributes:
        adjacency: Symmetric neighbor map keyed by stage id
        reachable_ids: Ids of the stages currently in play
    """

    def __init__(
        self,
        elements: list[ElementDefinition],
        context: MapContext,
        restored: list[StageSnapshot] | None = None,
        on_stage_clicked: Callable[[str], None] | None = None,
        on_stage_state_changed: Callable[[str, State], None] | None = None,
        on_access_restrictions_hit: Callable[[str], None] | None = None,
    ):
        self.context = context
        self.adjacency = resolve_neighbors(elements)
        self.reachable_ids: set[str] = set()

        snapshots = {
            item.get("id"): item for item in restored or [] if isinstance(item, dict)
        }

        self._stages: list[Stage] = [
            Stage(
                element,
                context,
                neighbors=self.adjacency[element["id"]],
                restored=snapshots.get(element["id"]),
                on_clicked=on_stage_clicked,
                on_state_changed=on_stage_state_changed,
                on_access_restrictions_hit=on_access_restrictions_hit,
            )
            for element in elements
        ]
        self._by_id = {stage.id: stage for stage in self._stages}

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._by_id

    def get_stage(self, stage_id: str) -> Stage | None:
        return self._by_id.get(stage_id)

    def index_of(self, stage_id: str) -> int | None:
        for index, stage in enumerate(self._stages):
            if stage.id == stage_id:
                return index
        return None

    # Reachability

    def compute_reachable_set(self, start_ids: Iterable[str]) -> set[str]:
        return compute_reachable_set(self.adjacency, start_ids)

    def update_reachability(self) -> set[str]:
        """
        Recompute which stages are in play.

        Seeds are every stage that has left the locked states, which always
        includes the unlocked start stages. Stages once reachable stay
        reachable until the next reset. A restored session starts from the
        reachable flags of its snapshot.
        """
        seeds = [
            stage.id
            for stage in self._stages
            if stage.state not in (State.LOCKED, State.UNLOCKING, State.SEALED)
        ]
        self.reachable_ids = self.compute_reachable_set([*self.reachable_ids, *seeds])

        for stage in self._stages:
            stage.set_reachable(stage.id in self.reachable_ids)

        return set(self.reachable_ids)

    def get_start_candidates(self) -> list[Stage]:
        candidates = [stage for stage in self._stages if stage.can_be_start_stage]
        if not candidates:
            candidates = [stage for stage in self._stages if not stage.is_special]
        return candidates

    def set_start_stages(self) -> list[Stage]:
        """Unlock the start stage, or all candidates if so configured."""
        candidates = self.get_start_candidates()
        if not candidates:
            return []

        if self.context.settings.behaviour.map.start_stages == StartStages.RANDOM:
            candidates = [self.context.random.choice(candidates)]

        for stage in candidates:
            stage.unlock()

        logger.debug("Start stages: %s", [stage.id for stage in candidates])
        return candidates

    # Propagation

    def update_state(self, stage_id: str, state: State) -> None:
        stage = self.get_stage(stage_id)
        if stage is None:
            return
        stage.set_state(state)

    def unlock_stage(self, stage_id: str) -> None:
        stage = self.get_stage(stage_id)
        if stage is not None:
            stage.unlock()

    def update_neighbors_state(self, stage_id: str, state: State) -> None:
        """Reveal or unlock the neighbors of a stage that changed state."""
        settings = self.context.settings
        if settings.roaming == Roaming.FREE:
            return

        stage = self.get_stage(stage_id)
        if stage is None:
            return

        neighbors = [
            neighbor
            for neighbor in (self.get_stage(neighbor_id) for neighbor_id in stage.neighbors)
            if neighbor is not None
        ]

        if state == State.OPEN and settings.fog != Fog.NONE:
            for neighbor in neighbors:
                neighbor.show()

        if state == State.CLEARED:
            for neighbor in neighbors:
                neighbor.unlock()

    def update_unlocking_stages(self) -> None:
        """Retry unlocking stages that wait for their restrictions to pass."""
        if self.context.settings.roaming == Roaming.FREE:
            return

        for stage in self._stages:
            if stage.state == State.UNLOCKING and stage.open_on_score_sufficient:
                stage.unlock()

    # Queries

    def get_count(self, states: Iterable[State] | None = None, reachable_only: bool = False) -> int:
        wanted = set(states) if states is not None else None
        return sum(
            1
            for stage in self._stages
            if (wanted is None or stage.state in wanted)
            and (not reachable_only or stage.reachable)
        )

    def get_next_open_stage(self) -> Stage | None:
        return next(
            (stage for stage in self._stages if stage.state in (State.OPEN, State.OPENED)),
            None,
        )

    def get_islands(self) -> list[set[str]]:
        """Connected components of the map graph, in authored order."""
        islands: list[set[str]] = []
        seen: set[str] = set()
        for stage in self._stages:
            if stage.id in seen:
                continue
            island = self.compute_reachable_set([stage.id])
            seen |= island
            islands.append(island)
        return islands

    # Bulk operations

    def enable(self) -> None:
        for stage in self._stages:
            stage.enable()

    def disable(self) -> None:
        for stage in self._stages:
            stage.disable()

    def toggle_playfulness(self, playful: bool) -> None:
        if not isinstance(playful, bool):
            return
        for stage in self._stages:
            stage.toggle_playfulness(playful)

    def open_all(self) -> None:
        for stage in self._stages:
            stage.set_state(State.OPEN)

    def seal_all(self) -> None:
        for stage in self._stages:
            stage.set_state(State.SEALED)

    def restore_states(self, states: dict[str, State]) -> None:
        for stage_id, state in states.items():
            stage = self.get_stage(stage_id)
            if stage is not None:
                stage.set_state(state, force=True)

    def reset(self, is_initial: bool = False) -> None:
        self.reachable_ids = set()
        for stage in self._stages:
            stage.reset(is_initial)

        if is_initial:
            self.reachable_ids = {
                stage.id for stage in self._stages if self._was_reachable(stage)
            }

    @staticmethod
    def _was_reachable(stage: Stage) -> bool:
        # Snapshots without the flag only lose track of sealed stages
        if stage.restored_reachable is not None:
            return stage.restored_reachable
        return stage.initial_state == State.SEALED

    def get_current_state(self) -> list[StageSnapshot]:
        return [stage.get_current_state() for stage in self._stages]
