"""Restriction types and evaluation logic for stagemap."""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from stagemap.constants import MESSAGE_KEY_PREFIX, MS_IN_S
from stagemap.models import (
    STATE_PROGRESS,
    RestrictionDefinition,
    RestrictionOperator,
    RestrictionType,
    State,
)

logger = logging.getLogger(__name__)


def _none() -> None:
    return None


def _none_for(_stage_id: str) -> None:
    return None


@dataclass
class RestrictionSources:
    """
    Live values restrictions are compared against.

    Each getter may return None when the value is not known, in which case
    the restriction passes.

    Attributes:
        total_score: Current score of the whole map
        stage_score: Score of the exercise bundle of a stage
        stage_progress: State of a stage
        time: Current wall-clock time
    """

    total_score: Callable[[], float | None] = _none
    stage_score: Callable[[str], float | None] = _none_for
    stage_progress: Callable[[str], State | None] = _none_for
    time: Callable[[], datetime | None] = field(default=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class RestrictionResult:
    """
    Result of checking one restriction.

    Attributes:
        success: Whether the restriction passed
        restriction_type: Type of restriction that was checked
        operator: Operator used for the comparison
        actual_value: Live value found (None when unknown)
        expected_value: Authored value compared against
        message_key: Key of the message explaining the restriction
        value_representation: Authored value as shown to learners
        label: Label of the restriction target
    """

    success: bool
    restriction_type: RestrictionType
    operator: RestrictionOperator
    actual_value: Any = None
    expected_value: Any = None
    message_key: str = ""
    value_representation: str = ""
    label: str = ""


class Restriction(ABC):
    """
    Abstract base class for all restriction types.

    A restriction compares a live value, read fresh on every check, with an
    authored value using one operator. A restriction is only valid when its
    operator is one of ``get_valid_operators()``; the factory drops invalid
    ones so they never block access.
    """

    restriction_type: RestrictionType

    def __init__(
        self,
        operator: RestrictionOperator,
        value: Any,
        get_current_value: Callable[[], Any],
        label: str | None = None,
        value_representation: str | None = None,
    ):
        self.operator = operator
        self.value = value
        self.get_current_value = get_current_value
        self.label = label if label is not None else "---"
        self._value_representation = value_representation

    @abstractmethod
    def get_valid_operators(self) -> tuple[RestrictionOperator, ...]:
        """Operators this restriction type can compare with."""
        pass

    @abstractmethod
    def compare(self, current: Any) -> bool:
        """Compare a known live value with the authored value."""
        pass

    def is_valid(self) -> bool:
        return self.operator in self.get_valid_operators()

    def check(self) -> bool:
        """Check the restriction against the live value. Unknown values pass."""
        return self.evaluate().success

    def evaluate(self) -> RestrictionResult:
        current = self.get_current_value()
        success = True if current is None else self.compare(current)
        return RestrictionResult(
            success=success,
            restriction_type=self.restriction_type,
            operator=self.operator,
            actual_value=current,
            expected_value=self.value,
            message_key=self.message_key,
            value_representation=self.get_value_representation(),
            label=self.label,
        )

    def get_value_representation(self) -> str:
        if self._value_representation:
            return self._value_representation
        return str(self.value)

    @property
    def message_key(self) -> str:
        type_name = self.restriction_type.value
        operator = self.operator.value
        return (
            f"{MESSAGE_KEY_PREFIX}{type_name[:1].upper()}{type_name[1:]}"
            f"{operator[:1].upper()}{operator[1:]}"
        )

    def to_dict(self) -> RestrictionDefinition:
        """Convert restriction to its flat dictionary form."""
        result: RestrictionDefinition = {
            "restrictionType": self.restriction_type.value,
            "operator": self.operator.value,
            "value": self.value if not isinstance(self.value, (datetime, State)) else str(self.value),
        }
        if self.label != "---":
            result["label"] = self.label
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.operator.value} {self.value!r})"


NUMERIC_OPERATORS: tuple[RestrictionOperator, ...] = (
    RestrictionOperator.LESS_THAN,
    RestrictionOperator.LESS_THAN_OR_EQUAL_TO,
    RestrictionOperator.EQUAL_TO,
    RestrictionOperator.NOT_EQUAL_TO,
    RestrictionOperator.GREATER_THAN_OR_EQUAL_TO,
    RestrictionOperator.GREATER_THAN,
)

TIME_OPERATORS: tuple[RestrictionOperator, ...] = (
    RestrictionOperator.BEFORE,
    RestrictionOperator.IS,
    RestrictionOperator.IS_NOT,
    RestrictionOperator.AFTER,
)


def compare_numbers(operator: RestrictionOperator, current: float, expected: float) -> bool:
    match operator:
        case RestrictionOperator.LESS_THAN:
            return current < expected
        case RestrictionOperator.LESS_THAN_OR_EQUAL_TO:
            return current <= expected
        case RestrictionOperator.EQUAL_TO:
            return current == expected
        case RestrictionOperator.NOT_EQUAL_TO:
            return current != expected
        case RestrictionOperator.GREATER_THAN_OR_EQUAL_TO:
            return current >= expected
        case RestrictionOperator.GREATER_THAN:
            return current > expected
    # Unknown operator, treat as unrestricted
    return True


class TotalScoreRestriction(Restriction):
    """Compares the score of the whole map."""

    restriction_type = RestrictionType.TOTAL_SCORE

    def get_valid_operators(self) -> tuple[RestrictionOperator, ...]:
        return NUMERIC_OPERATORS

    def compare(self, current: float) -> bool:
        return compare_numbers(self.operator, current, self.value)


class StageScoreRestriction(Restriction):
    """Compares the score of one stage's exercise bundle."""

    restriction_type = RestrictionType.STAGE_SCORE

    def __init__(self, stage_id: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.stage_id = stage_id

    def get_valid_operators(self) -> tuple[RestrictionOperator, ...]:
        return NUMERIC_OPERATORS

    def compare(self, current: float) -> bool:
        return compare_numbers(self.operator, current, self.value)

    def to_dict(self) -> RestrictionDefinition:
        result = super().to_dict()
        result["stageId"] = self.stage_id
        return result


class StageProgressRestriction(Restriction):
    """
    Compares the state of one stage.

    States are ordered by progress: locked/sealed < open < completed < cleared.
    """

    restriction_type = RestrictionType.STAGE_PROGRESS

    def __init__(self, stage_id: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.stage_id = stage_id

    def get_valid_operators(self) -> tuple[RestrictionOperator, ...]:
        return NUMERIC_OPERATORS

    def compare(self, current: State) -> bool:
        return compare_numbers(
            self.operator, STATE_PROGRESS[current], STATE_PROGRESS[self.value]
        )

    def to_dict(self) -> RestrictionDefinition:
        result = super().to_dict()
        result["stageId"] = self.stage_id
        return result


class TimeRestriction(Restriction):
    """
    Compares the current wall-clock time.

    Times are compared at minute resolution, matching how authors enter them.
    Naive datetimes are read as UTC.
    """

    restriction_type = RestrictionType.TIME

    def get_valid_operators(self) -> tuple[RestrictionOperator, ...]:
        return TIME_OPERATORS

    def compare(self, current: datetime) -> bool:
        current = _to_minute(current)
        expected = _to_minute(self.value)
        match self.operator:
            case RestrictionOperator.BEFORE:
                return current < expected
            case RestrictionOperator.IS:
                return current == expected
            case RestrictionOperator.IS_NOT:
                return current != expected
            case RestrictionOperator.AFTER:
                return current > expected
        return True

    def get_value_representation(self) -> str:
        if self._value_representation:
            return self._value_representation
        return self.value.strftime("%Y-%m-%d, %H:%M")


def _to_minute(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).replace(second=0, microsecond=0)


def _parse_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return value


def _parse_datetime(value: Any) -> datetime | None:
    """Read an authored time: datetime, ISO 8601 string or epoch milliseconds."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / MS_IN_S, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


class RestrictionFactory:
    """
    Factory for creating Restriction instances from authored definitions.

    Supports the grouped authoring syntax (``totalScoreGroup`` with
    ``totalScoreOperator``/``totalScoreValue``/``totalScoreLabel``) as well as
    a flat syntax (``operator``/``value``/``label``/``stageId``).

    Unlike most factories this one never raises: anything it cannot build
    into a valid restriction yields None, so a broken definition never
    blocks access to a stage.
    """

    @classmethod
    def create(
        cls, definition: RestrictionDefinition, sources: RestrictionSources
    ) -> Restriction | None:
        """
        Create a restriction from configuration.

        Args:
            definition: Restriction configuration dictionary
            sources: Getters for the live values

        Returns:
            Restriction instance, or None if the definition is invalid
        """
        if not isinstance(definition, dict):
            logger.debug("Dropping restriction that is not a mapping: %r", definition)
            return None

        try:
            restriction_type = RestrictionType(definition.get("restrictionType"))
        except ValueError:
            logger.debug("Dropping restriction of unknown type: %r", definition)
            return None

        params = cls._read_params(restriction_type, definition)
        try:
            operator = RestrictionOperator(params.get("operator"))
        except ValueError:
            logger.debug("Dropping restriction with unknown operator: %r", definition)
            return None

        restriction = cls._build(restriction_type, operator, params, sources)
        if restriction is None or not restriction.is_valid():
            logger.debug("Dropping invalid restriction: %r", definition)
            return None
        return restriction

    @classmethod
    def _read_params(
        cls, restriction_type: RestrictionType, definition: RestrictionDefinition
    ) -> dict[str, Any]:
        prefix = restriction_type.value
        group = definition.get(f"{prefix}Group")  # type: ignore[misc]
        if isinstance(group, dict):
            return {
                "operator": group.get(f"{prefix}Operator"),
                "value": group.get(f"{prefix}Value"),
                "label": group.get(f"{prefix}Label"),
                "stage_id": group.get(f"{prefix}Id"),
                "value_representation": group.get(f"{prefix}ValueRepresentation"),
            }
        return {
            "operator": definition.get("operator"),
            "value": definition.get("value"),
            "label": definition.get("label"),
            "stage_id": definition.get("stageId"),
            "value_representation": None,
        }

    @classmethod
    def _build(
        cls,
        restriction_type: RestrictionType,
        operator: RestrictionOperator,
        params: dict[str, Any],
        sources: RestrictionSources,
    ) -> Restriction | None:
        label = params.get("label")
        representation = params.get("value_representation")

        if restriction_type == RestrictionType.TOTAL_SCORE:
            value = _parse_number(params.get("value"))
            if value is None:
                return None
            return TotalScoreRestriction(
                operator, value, lambda: sources.total_score(), label, representation
            )

        if restriction_type == RestrictionType.TIME:
            value = _parse_datetime(params.get("value"))
            if value is None:
                return None
            return TimeRestriction(
                operator, value, lambda: sources.time(), label, representation
            )

        stage_id = params.get("stage_id")
        if not isinstance(stage_id, str) or not stage_id:
            return None

        if restriction_type == RestrictionType.STAGE_SCORE:
            value = _parse_number(params.get("value"))
            if value is None:
                return None
            return StageScoreRestriction(
                stage_id,
                operator,
                value,
                lambda: sources.stage_score(stage_id),
                label,
                representation,
            )

        # Progress values are states, authored as names or legacy codes
        state = State.parse(params.get("value"))
        if state is None:
            return None
        return StageProgressRestriction(
            stage_id,
            operator,
            state,
            lambda: sources.stage_progress(stage_id),
            label,
            representation,
        )
