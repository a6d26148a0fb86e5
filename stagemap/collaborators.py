"""Interfaces of the parts of a game map the engine does not own.

Rendering, dialogs, audio and the status bar live outside the engine. The
engine talks to them through the narrow protocols below and never formats
user-facing text: it passes plain data and message keys.

``NullView``, ``NullDialogs``, ``NullAudio`` and ``NullStatus`` ignore
everything. ``EventRecorder`` implements all four protocols and records each
call, which the command line and the test suite use to observe a session.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from stagemap.models import DialogKind, State


class MapView(Protocol):
    """Rendering layer of the map."""

    def on_stage_changed(self, stage_id: str, state: State, visible: bool) -> None:
        """A stage changed its state or visibility."""
        ...

    def on_path_changed(self, from_id: str, to_id: str, state: State, visible: bool) -> None:
        """A path changed its state or visibility."""
        ...

    def on_stage_effect(self, stage_id: str, effect: str) -> None:
        """Play a visual effect such as ``bounce`` or ``shake`` on a stage."""
        ...

    def on_exercise_opened(self, stage_id: str) -> None:
        ...

    def on_exercise_closed(self, stage_id: str) -> None:
        ...

    def on_continue_available(self, stage_id: str) -> None:
        """The learner may now leave the exercise of this stage."""
        ...

    def on_exercise_completed(self, stage_id: str, state: State) -> None:
        ...

    def on_timer_ticked(self, stage_id: str | None, time_left_ms: float, warning: bool) -> None:
        """A timer ticked. ``stage_id`` is None for the global timer."""
        ...

    def on_access_restrictions_hit(self, stage_id: str, messages: dict[str, Any] | None) -> None:
        """A click was refused because access restrictions are not met."""
        ...

    def on_link_opened(self, url: str, target: str) -> None:
        ...

    def on_finished(self) -> None:
        """The session ended, by finishing or by game over."""
        ...


class DialogPresenter(Protocol):
    """Confirmation dialogs."""

    def show(
        self,
        kind: DialogKind,
        data: dict[str, Any],
        on_confirmed: Callable[[], None] | None = None,
        on_canceled: Callable[[], None] | None = None,
    ) -> None:
        ...

    def hide(self) -> None:
        ...


class AudioPlayer(Protocol):
    """Sound effects and music."""

    def play(self, sound_id: str) -> None:
        ...

    def stop_all(self) -> None:
        ...


class StatusDisplay(Protocol):
    """Status containers of the toolbar."""

    def set_status(self, key: str, value: Any, max_value: Any = None) -> None:
        ...


class NullView:
    def on_stage_changed(self, stage_id, state, visible) -> None:
        pass

    def on_path_changed(self, from_id, to_id, state, visible) -> None:
        pass

    def on_stage_effect(self, stage_id, effect) -> None:
        pass

    def on_exercise_opened(self, stage_id) -> None:
        pass

    def on_exercise_closed(self, stage_id) -> None:
        pass

    def on_continue_available(self, stage_id) -> None:
        pass

    def on_exercise_completed(self, stage_id, state) -> None:
        pass

    def on_timer_ticked(self, stage_id, time_left_ms, warning) -> None:
        pass

    def on_access_restrictions_hit(self, stage_id, messages) -> None:
        pass

    def on_link_opened(self, url, target) -> None:
        pass

    def on_finished(self) -> None:
        pass


class NullDialogs:
    def show(self, kind, data, on_confirmed=None, on_canceled=None) -> None:
        pass

    def hide(self) -> None:
        pass


class NullAudio:
    def play(self, sound_id) -> None:
        pass

    def stop_all(self) -> None:
        pass


class NullStatus:
    def set_status(self, key, value, max_value=None) -> None:
        pass


@dataclass
class Collaborators:
    """The external parts a map session talks to."""

    view: MapView = field(default_factory=NullView)
    dialogs: DialogPresenter = field(default_factory=NullDialogs)
    audio: AudioPlayer = field(default_factory=NullAudio)
    status: StatusDisplay = field(default_factory=NullStatus)


@dataclass
class Event:
    """One recorded collaborator call."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class PendingDialog:
    kind: DialogKind
    data: dict[str, Any]
    on_confirmed: Callable[[], None] | None = None
    on_canceled: Callable[[], None] | None = None


class EventRecorder:
    """
    Collaborator that records every call it receives.

    Implements MapView, DialogPresenter, AudioPlayer and StatusDisplay.
    Dialogs stay pending until ``confirm_dialog`` or ``cancel_dialog`` is
    called, like a learner who has to click a button.
    """

    def __init__(self):
        self.events: list[Event] = []
        self.dialog: PendingDialog | None = None
        self.status: dict[str, tuple[Any, Any]] = {}

    def collaborators(self) -> Collaborators:
        return Collaborators(view=self, dialogs=self, audio=self, status=self)

    def _record(self, name: str, **payload: Any) -> None:
        self.events.append(Event(name, payload))

    def names(self) -> list[str]:
        return [event.name for event in self.events]

    def of(self, name: str) -> list[dict[str, Any]]:
        """Payloads of all recorded events with the given name."""
        return [event.payload for event in self.events if event.name == name]

    def clear(self) -> None:
        self.events.clear()

    # MapView

    def on_stage_changed(self, stage_id: str, state: State, visible: bool) -> None:
        self._record("stage_changed", stage_id=stage_id, state=state, visible=visible)

    def on_path_changed(self, from_id: str, to_id: str, state: State, visible: bool) -> None:
        self._record("path_changed", from_id=from_id, to_id=to_id, state=state, visible=visible)

    def on_stage_effect(self, stage_id: str, effect: str) -> None:
        self._record("stage_effect", stage_id=stage_id, effect=effect)

    def on_exercise_opened(self, stage_id: str) -> None:
        self._record("exercise_opened", stage_id=stage_id)

    def on_exercise_closed(self, stage_id: str) -> None:
        self._record("exercise_closed", stage_id=stage_id)

    def on_continue_available(self, stage_id: str) -> None:
        self._record("continue_available", stage_id=stage_id)

    def on_exercise_completed(self, stage_id: str, state: State) -> None:
        self._record("exercise_completed", stage_id=stage_id, state=state)

    def on_timer_ticked(self, stage_id: str | None, time_left_ms: float, warning: bool) -> None:
        self._record("timer_ticked", stage_id=stage_id, time_left_ms=time_left_ms, warning=warning)

    def on_access_restrictions_hit(self, stage_id: str, messages: dict[str, Any] | None) -> None:
        self._record("access_restrictions_hit", stage_id=stage_id, messages=messages)

    def on_link_opened(self, url: str, target: str) -> None:
        self._record("link_opened", url=url, target=target)

    def on_finished(self) -> None:
        self._record("finished")

    # DialogPresenter

    def show(
        self,
        kind: DialogKind,
        data: dict[str, Any],
        on_confirmed: Callable[[], None] | None = None,
        on_canceled: Callable[[], None] | None = None,
    ) -> None:
        self.dialog = PendingDialog(kind, data, on_confirmed, on_canceled)
        self._record("dialog", kind=kind, **data)

    def hide(self) -> None:
        self.dialog = None

    def confirm_dialog(self) -> DialogKind | None:
        """Confirm the pending dialog. Returns its kind, or None if there was none."""
        dialog, self.dialog = self.dialog, None
        if dialog is None:
            return None
        if dialog.on_confirmed:
            dialog.on_confirmed()
        return dialog.kind

    def cancel_dialog(self) -> DialogKind | None:
        dialog, self.dialog = self.dialog, None
        if dialog is None:
            return None
        if dialog.on_canceled:
            dialog.on_canceled()
        return dialog.kind

    # AudioPlayer

    def play(self, sound_id: str) -> None:
        self._record("sound", sound_id=sound_id)

    def stop_all(self) -> None:
        self._record("sound_stopped")

    # StatusDisplay

    def set_status(self, key: str, value: Any, max_value: Any = None) -> None:
        self.status[key] = (value, max_value)
        self._record("status", key=key, value=value, max_value=max_value)
