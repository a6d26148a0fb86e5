"""Integration tests driving whole map sessions through learner actions.

Each test plays a small map from start to end on the manual scheduler and
checks what the learner would see: stage and path states, dialogs, lives,
timers and the persisted snapshot.
"""

import pytest

from stagemap.engine import MapEngine
from stagemap.models import DialogKind, State
from tests.fixtures.maps import linear_map, settings_dict, special, stage, total_score_restriction

pytestmark = pytest.mark.integration


class TestUnlockChain:
    """Clearing stages one by one opens the way through the map."""

    def test_playing_through_a_linear_map(self, make_session):
        session = make_session(linear_map())

        for stage_id in "abc":
            assert session.state_of(stage_id) == "open"
            session.play(stage_id)
            assert session.state_of(stage_id) == "cleared"

        assert session.engine.get_score() == 3
        assert {path.state for path in session.engine.paths} == {State.CLEARED}
        assert session.recorder.status["stages"] == (3, 3)
        assert session.recorder.dialog.kind == DialogKind.FULL_SCORE

    def test_complete_roaming_accepts_partial_scores(self, make_session):
        session = make_session(linear_map(roaming="complete"))
        session.play("a", score=0)
        assert session.state_of("a") == "cleared"
        assert session.state_of("b") == "open"

    def test_success_roaming_requires_full_scores(self, make_session):
        session = make_session(linear_map())
        session.play("a", score=0)
        assert session.state_of("a") == "open"
        assert session.state_of("b") == "locked"

    def test_partial_fog_reveals_one_step_ahead(self, make_session):
        session = make_session(linear_map(fog="1"))
        visible = {s.id for s in session.engine.stages if s.visible}
        assert visible == {"a", "b"}

        session.play("a")
        visible = {s.id for s in session.engine.stages if s.visible}
        assert visible == {"a", "b", "c"}

    def test_stage_effects_play_after_the_exercise_closes(self, make_session):
        session = make_session(linear_map())
        session.engine.click_stage("a")
        session.engine.score_exercise("a", 1, 1)
        sounds = [e["sound_id"] for e in session.recorder.of("sound")]
        assert "clearStage" not in sounds

        session.engine.close_exercise()
        session.scheduler.advance(0)
        sounds = [e["sound_id"] for e in session.recorder.of("sound")]
        assert sounds.index("clearStage") < sounds.index("unlockStage")


class TestLivesAndGameOver:
    def test_last_life_ends_the_game(self, make_session):
        session = make_session(linear_map(lives=1))
        session.play("a", score=0)

        assert session.engine.lives_left == 0
        assert session.engine.game_done is True
        assert {session.state_of(s) for s in "abc"} == {"sealed"}
        assert session.recorder.dialog.kind == DialogKind.GAME_OVER
        assert session.recorder.dialog.data["reason"] == "lives"

        session.recorder.confirm_dialog()
        assert "finished" in session.recorder.names()
        snapshot = session.engine.get_current_state()
        assert snapshot["livesLeft"] == 0
        assert snapshot["gameDone"] is True

    def test_scores_are_ignored_after_game_over(self, make_session):
        session = make_session(linear_map(lives=1))
        session.play("a", score=0)
        session.engine.score_exercise("a", 1, 1)
        assert session.engine.get_score() == 0

    def test_show_solutions_restores_the_map(self, make_session):
        session = make_session(linear_map(lives=1))
        session.play("a", score=0)
        session.engine.show_solutions()

        assert session.state_of("a") == "open"
        assert session.state_of("b") == "locked"
        assert session.recorder.dialog is None
        assert session.engine.exercise_bundles.get_exercise_bundle("a").showing_solutions

        session.engine.click_stage("a")
        assert session.engine.open_exercise_id == "a"

    def test_restart_starts_over(self, make_session):
        session = make_session(linear_map(lives=2))
        session.play("a")
        session.play("b", score=0)
        session.play("b", score=0)
        assert session.engine.game_done is True

        session.engine.restart()

        assert session.engine.lives_left == 2
        assert session.engine.game_done is False
        assert [session.state_of(s) for s in "abc"] == ["open", "locked", "locked"]
        assert session.engine.get_score() == 0
        assert {path.state for path in session.engine.paths} == {State.OPEN}

    def test_extra_life_stage(self, make_session):
        definition = {
            "elements": [
                stage("a", ["life"], canBeStartStage=True),
                special("life", "extra-life"),
            ],
            "settings": settings_dict(lives=2),
        }
        session = make_session(definition)
        session.play("a")
        assert session.state_of("life") == "open"

        session.engine.click_stage("life")

        assert session.engine.lives_left == 3
        assert session.state_of("life") == "cleared"
        assert session.recorder.status["lives"] == (3, None)

        session.engine.click_stage("life")
        assert session.engine.lives_left == 3


class TestAccessRestrictions:
    def test_restricted_stage_refuses_the_click(self, make_session):
        definition = {
            "elements": [
                stage("a", canBeStartStage=True),
                stage("b", accessRestrictions=total_score_restriction("greaterThan", 5)),
            ],
            "settings": settings_dict(roaming="free"),
        }
        session = make_session(definition)
        assert session.state_of("b") == "open"

        session.engine.click_stage("b")

        assert session.engine.open_exercise_id is None
        assert session.recorder.of("exercise_opened") == []
        assert session.recorder.dialog.kind == DialogKind.ACCESS_RESTRICTED
        messages = session.recorder.dialog.data["messages"]
        assert messages["sets"][0]["restrictions"][0]["key"] == "restrictionTotalScoreGreaterThan"
        assert session.recorder.dialog.data["failed"] == ["restrictionTotalScoreGreaterThan"]

    def test_stage_waits_for_enough_score(self, make_session):
        restrictions = {
            **total_score_restriction("greaterThanOrEqualTo", 2),
            "openOnScoreSufficient": True,
        }
        definition = {
            "elements": [
                stage("a", ["b", "x"], canBeStartStage=True, contents=1),
                stage("x", contents=1),
                stage("b", accessRestrictions=restrictions),
            ],
            "settings": settings_dict(),
        }
        session = make_session(definition)

        session.play("a")
        assert session.state_of("b") == "unlocking"
        assert session.state_of("x") == "open"

        session.play("x")
        assert session.state_of("b") == "open"


class TestFreeRoaming:
    def test_everything_is_open_from_the_start(self, make_session):
        session = make_session(linear_map(roaming="free"))
        assert {session.state_of(s) for s in "abc"} == {"open"}
        assert {path.state for path in session.engine.paths} == {State.CLEARED}

    def test_any_attempt_clears_the_stage(self, make_session):
        session = make_session(linear_map(roaming="free"))
        session.play("b", score=0)
        assert session.state_of("b") == "cleared"


class TestTimers:
    def test_exercise_timeout_costs_a_life(self, make_session):
        definition = {
            "elements": [stage("a", canBeStartStage=True, time={"timeLimit": 10})],
            "settings": settings_dict(lives=2),
        }
        session = make_session(definition)
        session.engine.click_stage("a")
        session.scheduler.advance(9_500)
        assert session.engine.lives_left == 2

        session.scheduler.advance(500)

        assert session.engine.lives_left == 1
        assert session.engine.open_exercise_id is None
        assert session.recorder.dialog.kind == DialogKind.TIMEOUT
        assert session.recorder.dialog.data == {"stageId": "a", "lostLife": True}
        bundle = session.engine.exercise_bundles.get_exercise_bundle("a")
        assert bundle.state == State.UNSTARTED
        assert bundle.get_remaining_time() == 10_000

    def test_exercise_timer_ticks_reach_the_view(self, make_session):
        definition = {
            "elements": [
                stage("a", canBeStartStage=True, time={"timeLimit": 2, "timeoutWarning": 1})
            ],
            "settings": settings_dict(),
        }
        session = make_session(definition)
        session.engine.click_stage("a")
        session.scheduler.advance(1_000)

        ticks = session.recorder.of("timer_ticked")
        assert ticks[0] == {"stage_id": "a", "time_left_ms": 2_000, "warning": False}
        assert ticks[-1] == {"stage_id": "a", "time_left_ms": 1_000, "warning": True}
        assert {"sound_id": "timeoutWarning"} in session.recorder.of("sound")

    def test_global_timer_ends_the_game(self, make_session):
        session = make_session(linear_map(timeLimitGlobal=5))
        assert session.recorder.status["timer"] == ("0:05", None)

        session.scheduler.advance(5_000)

        assert session.engine.game_done is True
        assert session.recorder.dialog.kind == DialogKind.GAME_OVER
        assert session.recorder.dialog.data["reason"] == "timeout"

    def test_global_time_left_is_persisted(self, make_session):
        session = make_session(linear_map(timeLimitGlobal=5))
        session.scheduler.advance(2_000)
        assert session.engine.get_current_state()["timeLeft"] == 3_000


class TestFinish:
    def test_finish_stage_ends_the_session(self, make_context, scheduler, recorder):
        definition = {
            "elements": [stage("a", ["f"], canBeStartStage=True), special("f", "finish")],
            "settings": settings_dict(),
        }
        finished = []
        engine = MapEngine(
            definition,
            context=make_context(definition["settings"]),
            on_finished=lambda: finished.append(True),
        )
        engine.click_stage("a")
        engine.score_exercise("a", 1, 1)
        engine.close_exercise()
        scheduler.advance(0)
        recorder.confirm_dialog()

        engine.click_stage("f")
        assert recorder.dialog.kind == DialogKind.FINISH
        assert recorder.dialog.data == {"score": 1, "maxScore": 1}

        recorder.confirm_dialog()
        assert engine.game_done is True
        assert finished == [True]

    def test_canceling_the_finish_dialog_keeps_playing(self, make_session):
        definition = {
            "elements": [special("f", "finish", canBeStartStage=True)],
            "settings": settings_dict(),
        }
        session = make_session(definition)
        session.engine.click_stage("f")
        session.recorder.cancel_dialog()
        assert session.engine.game_done is False


class TestSnapshotRoundTrip:
    def test_restored_session_has_the_same_state(self, make_session):
        first = make_session(linear_map(lives=3))
        first.play("a")
        first.play("b", score=0)
        snapshot = first.engine.get_current_state()

        second = make_session(linear_map(lives=3), previous_state=snapshot)

        assert second.engine.get_current_state() == snapshot
        assert second.engine.lives_left == 2

    def test_restored_session_can_continue(self, make_session):
        first = make_session(linear_map())
        first.play("a")
        second = make_session(linear_map(), previous_state=first.engine.get_current_state())

        second.play("b")
        assert second.state_of("b") == "cleared"
        assert second.state_of("c") == "open"

    def test_game_over_session_keeps_its_scores_when_restored(self, make_session):
        first = make_session(linear_map(lives=1))
        first.play("a", score=0)
        assert first.engine.game_done is True
        snapshot = first.engine.get_current_state()

        second = make_session(linear_map(lives=1), previous_state=snapshot)

        assert second.engine.get_max_score() == first.engine.get_max_score() == 3
        assert {second.state_of(s) for s in "abc"} == {"sealed"}
        assert second.engine.stages.reachable_ids == {"a", "b", "c"}
        assert len(second.engine.get_current_state()["exerciseBundles"]) == 3
        assert second.engine.get_current_state()["stages"] == snapshot["stages"]
