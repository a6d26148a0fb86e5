"""Pytest configuration and fixtures for stagemap tests.

Sessions run on a ``ManualScheduler`` with an ``EventRecorder`` standing in
for the UI, dialogs, audio and status display, so nothing sleeps and every
visible effect can be asserted. Map builders live in ``tests.fixtures.maps``.
"""

import random
from collections.abc import Callable
from typing import Any

import pytest

from stagemap.collaborators import EventRecorder
from stagemap.context import MapContext
from stagemap.engine import MapEngine
from stagemap.loader import FileReader
from stagemap.scheduler import ManualScheduler
from stagemap.settings import MapSettings
from tests.fixtures.maps import Session, settings_dict


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def make_context(recorder, scheduler) -> Callable[..., MapContext]:
    """Build a context from authored settings, wired to the recorder."""

    def _make(settings: dict[str, Any] | None = None, seed: int = 0, **kwargs: Any) -> MapContext:
        return MapContext(
            settings=MapSettings.from_dict(settings if settings is not None else settings_dict()),
            scheduler=scheduler,
            collaborators=recorder.collaborators(),
            random=random.Random(seed),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_session(recorder, scheduler, make_context) -> Callable[..., Session]:
    """Build an engine for a map definition and let its startup effects fire."""

    def _make(
        definition: dict[str, Any],
        previous_state: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> Session:
        context = make_context(definition.get("settings"), **kwargs)
        engine = MapEngine(definition, context=context, previous_state=previous_state)
        scheduler.advance(0)
        return Session(engine=engine, recorder=recorder, scheduler=scheduler)

    return _make


@pytest.fixture
def write_map(tmp_path) -> Callable[..., Any]:
    """Write a map definition to a YAML or JSON file and return its path."""

    def _write(definition: dict[str, Any], name: str = "map.yaml"):
        path = tmp_path / name
        FileReader.write_file(path, definition)
        return path

    return _write
