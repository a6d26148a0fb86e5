"""Unit tests for validation of authored map files."""

import pytest

from stagemap.exceptions import LoadError
from stagemap.schema import MapFileModel, map_json_schema, validate_map_definition
from tests.fixtures.maps import linear_map, stage, total_score_restriction


class TestValidateMapDefinition:
    def test_valid_map(self):
        model = validate_map_definition(linear_map())
        assert isinstance(model, MapFileModel)
        assert [element.id for element in model.elements] == ["a", "b", "c"]
        assert model.elements[0].canBeStartStage is True

    def test_unknown_keys_are_kept(self):
        definition = {"elements": [stage("a", backgroundImage={"path": "x.png"})]}
        model = validate_map_definition(definition)
        assert model.elements[0].model_extra["backgroundImage"] == {"path": "x.png"}

    def test_restrictions_are_accepted(self):
        definition = {
            "elements": [stage("a", accessRestrictions=total_score_restriction("lessThan", 3))]
        }
        model = validate_map_definition(definition)
        restriction_set = model.elements[0].accessRestrictions.restrictionSetList[0]
        assert restriction_set.restrictionList[0].restrictionType == "totalScore"

    def test_numeric_neighbor_indexes_in_range(self):
        validate_map_definition({"elements": [stage("a", [1]), stage("b")]})

    def test_neighbor_index_out_of_range(self):
        with pytest.raises(LoadError, match="neighbor index 5"):
            validate_map_definition({"elements": [stage("a", [5])]})

    def test_errors_are_listed_with_their_location(self):
        definition = {"elements": [{"id": ""}, stage("b", contentsList=[{"maxScore": -1}])]}

        with pytest.raises(LoadError) as exc_info:
            validate_map_definition(definition, "broken.yaml")

        error = exc_info.value
        assert error.file_path == "broken.yaml"
        locations = [line.split(":")[0] for line in error.context["errors"]]
        assert "elements.0.id" in locations
        assert "elements.1.contentsList.0.maxScore" in locations

    def test_settings_must_be_a_mapping(self):
        with pytest.raises(LoadError, match="settings"):
            validate_map_definition({"elements": [], "settings": ["fog"]})


class TestJsonSchema:
    def test_schema_describes_elements(self):
        schema = map_json_schema()
        assert schema["title"] == "MapFileModel"
        assert "elements" in schema["required"]
        assert "ElementModel" in schema["$defs"]
