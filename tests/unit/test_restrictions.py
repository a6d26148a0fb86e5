"""Unit tests for access restrictions: single restrictions, sets and composition."""

from datetime import UTC, datetime

import pytest

from stagemap.models import Combinator, RestrictionOperator, RestrictionType, State
from stagemap.restriction import (
    RestrictionFactory,
    RestrictionSources,
    StageProgressRestriction,
    TimeRestriction,
    TotalScoreRestriction,
)
from stagemap.restrictions import Restrictions, RestrictionSet, check_all_or_any


@pytest.fixture
def live():
    """Mutable live values behind a RestrictionSources."""
    values = {
        "total": 0,
        "stage_scores": {},
        "progress": {},
        "now": datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
    }
    sources = RestrictionSources(
        total_score=lambda: values["total"],
        stage_score=lambda stage_id: values["stage_scores"].get(stage_id),
        stage_progress=lambda stage_id: values["progress"].get(stage_id),
        time=lambda: values["now"],
    )
    return values, sources


def total_score(operator: str, value) -> dict:
    return {
        "restrictionType": "totalScore",
        "totalScoreGroup": {"totalScoreOperator": operator, "totalScoreValue": value},
    }


class TestRestrictionFactory:
    def test_creates_grouped_total_score_restriction(self, live):
        values, sources = live
        restriction = RestrictionFactory.create(total_score("greaterThanOrEqualTo", 5), sources)

        assert isinstance(restriction, TotalScoreRestriction)
        assert restriction.operator == RestrictionOperator.GREATER_THAN_OR_EQUAL_TO
        assert restriction.check() is False

        values["total"] = 5
        assert restriction.check() is True

    def test_creates_flat_stage_score_restriction(self, live):
        values, sources = live
        restriction = RestrictionFactory.create(
            {"restrictionType": "stageScore", "operator": "greaterThan", "value": 1, "stageId": "a"},
            sources,
        )

        values["stage_scores"]["a"] = 1
        assert restriction.check() is False
        values["stage_scores"]["a"] = 2
        assert restriction.check() is True
        assert restriction.to_dict()["stageId"] == "a"

    def test_stage_progress_compares_by_progress_order(self, live):
        values, sources = live
        restriction = RestrictionFactory.create(
            {
                "restrictionType": "stageProgress",
                "stageProgressGroup": {
                    "stageProgressOperator": "greaterThanOrEqualTo",
                    "stageProgressValue": "completed",
                    "stageProgressId": "a",
                },
            },
            sources,
        )

        assert isinstance(restriction, StageProgressRestriction)
        values["progress"]["a"] = State.OPEN
        assert restriction.check() is False
        values["progress"]["a"] = State.COMPLETED
        assert restriction.check() is True
        values["progress"]["a"] = State.CLEARED
        assert restriction.check() is True

    def test_stage_progress_accepts_legacy_state_codes(self, live):
        _, sources = live
        restriction = RestrictionFactory.create(
            {"restrictionType": "stageProgress", "operator": "equalTo", "value": 6, "stageId": "a"},
            sources,
        )
        assert restriction.value == State.CLEARED

    def test_time_restriction_compares_at_minute_resolution(self, live):
        values, sources = live
        restriction = RestrictionFactory.create(
            {"restrictionType": "time", "operator": "is", "value": "2024-05-01T12:00:00+00:00"},
            sources,
        )

        assert isinstance(restriction, TimeRestriction)
        values["now"] = datetime(2024, 5, 1, 12, 0, 42, tzinfo=UTC)
        assert restriction.check() is True
        values["now"] = datetime(2024, 5, 1, 12, 1, tzinfo=UTC)
        assert restriction.check() is False

    def test_time_restriction_reads_epoch_milliseconds(self, live):
        values, sources = live
        epoch_ms = datetime(2024, 5, 1, 13, 0, tzinfo=UTC).timestamp() * 1000
        restriction = RestrictionFactory.create(
            {"restrictionType": "time", "operator": "before", "value": epoch_ms}, sources
        )
        assert restriction.check() is True

    @pytest.mark.parametrize(
        "definition",
        [
            {"restrictionType": "unknown", "operator": "lessThan", "value": 1},
            {"restrictionType": "totalScore", "operator": "sortOf", "value": 1},
            {"restrictionType": "totalScore", "operator": "before", "value": 1},
            {"restrictionType": "totalScore", "operator": "lessThan", "value": "five"},
            {"restrictionType": "stageScore", "operator": "lessThan", "value": 1},
            {"restrictionType": "stageProgress", "operator": "equalTo", "value": "done", "stageId": "a"},
            {"restrictionType": "time", "operator": "after", "value": "not a date"},
            "not a mapping",
        ],
    )
    def test_invalid_definitions_are_dropped(self, live, definition):
        _, sources = live
        assert RestrictionFactory.create(definition, sources) is None

    def test_unknown_live_value_passes(self):
        restriction = RestrictionFactory.create(
            total_score("greaterThan", 100), RestrictionSources()
        )
        assert restriction.check() is True

    def test_message_key_and_value_representation(self, live):
        _, sources = live
        restriction = RestrictionFactory.create(total_score("lessThan", 3), sources)
        result = restriction.evaluate()

        assert result.message_key == "restrictionTotalScoreLessThan"
        assert result.value_representation == "3"
        assert result.restriction_type == RestrictionType.TOTAL_SCORE


class TestRestrictionComposition:
    def test_check_all_or_any(self):
        assert check_all_or_any([], Combinator.ALL) is True
        assert check_all_or_any([True, False], None) is True
        assert check_all_or_any([True, False], Combinator.ALL) is False
        assert check_all_or_any([True, False], Combinator.ANY) is True

    def test_any_set_passes_when_one_restriction_passes(self, live):
        values, sources = live
        restriction_set = RestrictionSet.create(
            {
                "allOrAnyRestriction": "any",
                "restrictionList": [total_score("greaterThan", 10), total_score("lessThan", 2)],
            },
            sources,
        )
        values["total"] = 1
        assert restriction_set.passes() is True
        values["total"] = 5
        assert restriction_set.passes() is False

    def test_outer_combinator_defaults_to_all(self, live):
        values, sources = live
        restrictions = Restrictions.create(
            {
                "restrictionSetList": [
                    {"allOrAnyRestriction": "all", "restrictionList": [total_score("greaterThan", 1)]},
                    {"allOrAnyRestriction": "all", "restrictionList": [total_score("lessThan", 4)]},
                ]
            },
            sources,
        )

        assert restrictions.combinator == Combinator.ALL
        values["total"] = 5
        assert restrictions.all_passed() is False
        values["total"] = 3
        assert restrictions.all_passed() is True

    def test_sets_without_valid_restrictions_are_dropped(self, live):
        _, sources = live
        restrictions = Restrictions.create(
            {"restrictionSetList": [{"restrictionList": [{"restrictionType": "bogus"}]}]},
            sources,
        )
        assert restrictions.is_empty
        assert restrictions.all_passed() is True
        assert restrictions.get_messages() is None

    def test_missing_configuration_is_unrestricted(self, live):
        _, sources = live
        restrictions = Restrictions.create(None, sources)
        assert restrictions.is_empty
        assert restrictions.all_passed() is True
        assert restrictions.open_on_score_sufficient is False

    def test_evaluate_splits_passed_and_failed(self, live):
        values, sources = live
        restrictions = Restrictions.create(
            {
                "allOrAnyRestrictionSet": "any",
                "restrictionSetList": [
                    {"allOrAnyRestriction": "all", "restrictionList": [total_score("greaterThan", 1)]},
                    {"allOrAnyRestriction": "all", "restrictionList": [total_score("lessThan", 4)]},
                ],
            },
            sources,
        )
        values["total"] = 0

        result = restrictions.evaluate()

        assert result.success is True
        assert len(result.passed) == 1
        assert len(result.failed) == 1

    def test_messages_tree(self, live):
        _, sources = live
        restrictions = Restrictions.create(
            {
                "allOrAnyRestrictionSet": "any",
                "restrictionSetList": [
                    {
                        "allOrAnyRestriction": "all",
                        "restrictionList": [
                            total_score("greaterThan", 1),
                            total_score("lessThan", 4),
                        ],
                    }
                ],
            },
            sources,
        )

        messages = restrictions.get_messages()

        assert messages["intro"] == "restrictionsAnyOfLong"
        (restriction_set,) = messages["sets"]
        assert restriction_set["intro"] == "restrictionsAllOf"
        assert [item["key"] for item in restriction_set["restrictions"]] == [
            "restrictionTotalScoreGreaterThan",
            "restrictionTotalScoreLessThan",
        ]

    def test_to_dict_keeps_the_open_on_score_sufficient_flag(self, live):
        _, sources = live
        restrictions = Restrictions.create(
            {
                "openOnScoreSufficient": True,
                "restrictionSetList": [{"restrictionList": [total_score("greaterThan", 1)]}],
            },
            sources,
        )
        data = restrictions.to_dict()
        assert data["openOnScoreSufficient"] is True
        assert data["allOrAnyRestrictionSet"] == "all"
        assert data["restrictionSetList"][0]["restrictionList"][0]["operator"] == "greaterThan"

    def test_set_without_combinator_is_unrestricted(self, live):
        values, sources = live
        restrictions = Restrictions.create(
            {"restrictionSetList": [{"restrictionList": [total_score("greaterThan", 10)]}]},
            sources,
        )
        values["total"] = 0
        assert not restrictions.is_empty
        assert restrictions.all_passed() is True
