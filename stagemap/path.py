"""Paths between stages and their collection."""

import logging
from collections.abc import Iterator

from stagemap.context import MapContext
from stagemap.models import Fog, PathSnapshot, Roaming, State

logger = logging.getLogger(__name__)

PATH_STATES = (State.OPEN, State.CLEARED)


class Path:
    """
    Edge between two adjacent stages.

    A path is either ``open`` or ``cleared`` and mirrors the state of its
    endpoints: it becomes cleared when one endpoint is cleared.

    Attributes:
        from_id: Id of the first stage
        to_id: Id of the second stage
        state: Current state
        visible: Whether the path is shown
        reachable: Whether at least one endpoint is reachable
    """

    def __init__(
        self,
        from_id: str,
        to_id: str,
        context: MapContext,
        restored: PathSnapshot | None = None,
    ):
        self.from_id = from_id
        self.to_id = to_id
        self.context = context
        self.hidden_initially = (
            context.settings.fog != Fog.ALL
            or not context.settings.behaviour.map.display_paths
        )
        self.reachable = False

        restored_state = State.parse(restored.get("state")) if restored else None
        self.initial_state = restored_state if restored_state in PATH_STATES else State.OPEN
        self.restored_visible: bool | None = restored.get("visible") if restored else None

        self.state = self.initial_state
        self.visible = not self.hidden_initially

    @property
    def stage_ids(self) -> tuple[str, str]:
        return self.from_id, self.to_id

    def connects(self, stage_id: str) -> bool:
        return stage_id in (self.from_id, self.to_id)

    def set_state(self, state: State, force: bool = False) -> None:
        """Set the path state. Anything but open or cleared is ignored unless forced."""
        if not isinstance(state, State):
            return
        if not force and state not in PATH_STATES:
            return
        if state == self.state:
            return
        self.state = state
        self._publish()

    def set_reachable(self, reachable: bool) -> None:
        if not isinstance(reachable, bool):
            return
        self.reachable = reachable

    def show(self) -> None:
        if not self.context.settings.behaviour.map.display_paths:
            return
        if not self.visible:
            self.visible = True
            self._publish()

    def hide(self) -> None:
        if self.visible:
            self.visible = False
            self._publish()

    def reset(self, is_initial: bool = False) -> None:
        self.set_state(self.initial_state if is_initial else State.OPEN)

        if is_initial and self.restored_visible is not None:
            hidden = not self.restored_visible
        else:
            hidden = self.hidden_initially

        if hidden:
            self.hide()
        else:
            self.show()

    def _publish(self) -> None:
        self.context.collaborators.view.on_path_changed(
            self.from_id, self.to_id, self.state, self.visible
        )

    def get_current_state(self) -> PathSnapshot:
        return {
            "stageIds": {"from": self.from_id, "to": self.to_id},
            "state": self.state.value,
            "visible": self.visible,
        }

    def __repr__(self) -> str:
        return f"Path({self.from_id}<->{self.to_id}, {self.state.value})"


class Paths:
    """
    All paths of a map, one per unordered pair of adjacent stages.
    """

    def __init__(
        self,
        adjacency: dict[str, list[str]],
        context: MapContext,
        restored: list[PathSnapshot] | None = None,
    ):
        self.context = context
        self._paths: list[Path] = []

        snapshots: dict[frozenset[str], PathSnapshot] = {}
        for item in restored or []:
            ends = item.get("stageIds") if isinstance(item, dict) else None
            if not isinstance(ends, dict):
                continue
            from_id, to_id = ends.get("from"), ends.get("to")
            if from_id is None or to_id is None:
                logger.warning("Ignoring saved path without both endpoints: %r", ends)
                continue
            snapshots[frozenset((from_id, to_id))] = item

        created: set[frozenset[str]] = set()
        for stage_id, neighbors in adjacency.items():
            for neighbor in neighbors:
                key = frozenset((stage_id, neighbor))
                if key in created or len(key) < 2:
                    continue
                created.add(key)
                self._paths.append(Path(stage_id, neighbor, context, snapshots.get(key)))

    def __iter__(self) -> Iterator[Path]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def get_path(self, from_id: str, to_id: str) -> Path | None:
        key = {from_id, to_id}
        return next((path for path in self._paths if set(path.stage_ids) == key), None)

    def get_affected(self, stage_id: str) -> list[Path]:
        return [path for path in self._paths if path.connects(stage_id)]

    def update_state(self, stage_id: str, state: State) -> None:
        """Mirror a stage state change onto the paths touching that stage."""
        settings = self.context.settings
        if settings.roaming == Roaming.FREE:
            return

        affected = self.get_affected(stage_id)

        if (
            state == State.OPEN
            and settings.behaviour.map.display_paths
            and settings.fog != Fog.NONE
        ):
            for path in affected:
                path.show()

        if state == State.CLEARED:
            for path in affected:
                path.set_state(State.CLEARED)
                path.show()

    def update_reachability(self, reachable_stage_ids: set[str]) -> None:
        for path in self._paths:
            path.set_reachable(
                path.from_id in reachable_stage_ids or path.to_id in reachable_stage_ids
            )

    def clear_all(self) -> None:
        """Set every path cleared and shown, as used for free roaming."""
        for path in self._paths:
            path.set_state(State.CLEARED)
            path.show()

    def reset(self, is_initial: bool = False) -> None:
        for path in self._paths:
            path.reset(is_initial)

    def get_current_state(self) -> list[PathSnapshot]:
        return [path.get_current_state() for path in self._paths]
