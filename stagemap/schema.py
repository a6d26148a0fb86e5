"""Pydantic models of the authored map file.

The models check the structure a map file must have before an engine is
built from it and produce the JSON Schema of the format for authoring tools.
They are deliberately open (``extra="allow"``): details the engine ignores or
degrades on are not rejected here.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from stagemap.exceptions import LoadError


class RestrictionModel(BaseModel):
    """A single access restriction."""

    model_config = ConfigDict(extra="allow")

    restrictionType: str = Field(description="totalScore, stageScore, stageProgress or time")


class RestrictionSetModel(BaseModel):
    """Restrictions combined with ``all`` or ``any``."""

    model_config = ConfigDict(extra="allow")

    allOrAnyRestriction: str | None = None
    restrictionList: list[RestrictionModel] = Field(default_factory=list)


class AccessRestrictionsModel(BaseModel):
    """All access restrictions of a stage."""

    model_config = ConfigDict(extra="allow")

    allOrAnyRestrictionSet: str | None = None
    restrictionSetList: list[RestrictionSetModel] = Field(default_factory=list)
    openOnScoreSufficient: bool = False


class ContentModel(BaseModel):
    """One content instance attached to a stage."""

    model_config = ConfigDict(extra="allow")

    subContentId: str | None = None
    contentType: str | None = None
    isTask: bool = True
    maxScore: float | None = Field(default=None, ge=0)


class TimeModel(BaseModel):
    """Time limit of a stage, in seconds."""

    model_config = ConfigDict(extra="allow")

    timeLimit: float | None = Field(default=None, ge=0)
    timeoutWarning: float | None = Field(default=None, ge=0)


class ElementModel(BaseModel):
    """A stage or special stage of the map."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    type: str | None = None
    label: str | None = None
    neighbors: list[str | int] = Field(
        default_factory=list, description="Ids of adjacent elements or indexes into the element list"
    )
    canBeStartStage: bool = False
    accessRestrictions: AccessRestrictionsModel | None = None
    contentsList: list[ContentModel] = Field(default_factory=list)
    time: TimeModel | None = None
    specialStageType: str | None = None
    specialStageExtraTime: float | None = Field(default=None, ge=0)
    specialStageLinkURL: str | None = None
    specialStageLinkTarget: str | None = None


class MapFileModel(BaseModel):
    """
    An authored map.

    Settings are validated by ``MapSettings.from_dict``; here they only need
    to be a mapping.
    """

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    elements: list[ElementModel]
    settings: dict[str, Any] | None = None

    @field_validator("elements")
    @classmethod
    def validate_unique_ids(cls, elements: list[ElementModel]) -> list[ElementModel]:
        seen: set[str] = set()
        for element in elements:
            if element.id in seen:
                raise ValueError(f"Duplicate element id: {element.id}")
            seen.add(element.id)
        return elements

    @model_validator(mode="after")
    def validate_neighbor_references(self) -> "MapFileModel":
        # Integer references are positions in the element list
        count = len(self.elements)
        for element in self.elements:
            for reference in element.neighbors:
                if isinstance(reference, int) and not 0 <= reference < count:
                    raise ValueError(
                        f"Element '{element.id}' references neighbor index {reference} "
                        f"outside the element list"
                    )
        return self


def extract_validation_errors(error: ValidationError) -> list[str]:
    """Format pydantic errors as ``location: message`` lines."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return messages


def validate_map_definition(definition: dict[str, Any], source: str | None = None) -> MapFileModel:
    """
    Validate a map definition against ``MapFileModel``.

    Raises:
        LoadError: With one line per validation error
    """
    try:
        return MapFileModel.model_validate(definition)
    except ValidationError as e:
        errors = extract_validation_errors(e)
        raise LoadError(
            "Invalid map definition:\n  " + "\n  ".join(errors),
            source,
            context={"errors": errors},
        ) from e


def map_json_schema() -> dict[str, Any]:
    """JSON Schema of the map file format."""
    return MapFileModel.model_json_schema()
