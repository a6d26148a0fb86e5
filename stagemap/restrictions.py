"""Restriction composition and evaluation logic for stagemap.

This module composes restrictions into sets combined with ``all``/``any``
logic, and sets into the access restrictions of one stage.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from stagemap.constants import MESSAGE_KEY_ALL_OF, MESSAGE_KEY_ANY_OF
from stagemap.models import (
    AccessRestrictionsDefinition,
    Combinator,
    RestrictionSetDefinition,
)
from stagemap.restriction import (
    Restriction,
    RestrictionFactory,
    RestrictionResult,
    RestrictionSources,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RestrictionsResult:
    """Result of evaluating access restrictions.

    Contains the overall outcome plus the individual restriction results
    that passed and failed.
    """

    success: bool
    failed: list[RestrictionResult] = field(default_factory=list)
    passed: list[RestrictionResult] = field(default_factory=list)

    @property
    def message_keys(self) -> list[str]:
        """Message keys of all failed restrictions."""
        return [result.message_key for result in self.failed if result.message_key]


def parse_combinator(value: Any, default: Combinator | None = None) -> Combinator | None:
    if value is None:
        return default
    try:
        return Combinator(value)
    except ValueError:
        logger.debug("Unknown combinator %r", value)
        return None


def check_all_or_any(values: list[bool], combinator: Combinator | None) -> bool:
    """Combine checks. An empty list or a missing combinator is unrestricted."""
    if not values or combinator is None:
        return True
    return combinator.combine(values)


class RestrictionSet:
    """
    Restrictions combined with ``all`` or ``any`` logic.
    """

    combinator: Combinator | None
    _restrictions: list[Restriction]

    def __init__(self, restrictions: list[Restriction], combinator: Combinator | None):
        self._restrictions = restrictions
        self.combinator = combinator

    @classmethod
    def create(
        cls, config: RestrictionSetDefinition, sources: RestrictionSources
    ) -> "RestrictionSet":
        restrictions = [
            restriction
            for restriction in (
                RestrictionFactory.create(definition, sources)
                for definition in config.get("restrictionList") or []
            )
            if restriction is not None
        ]
        return cls(restrictions, parse_combinator(config.get("allOrAnyRestriction")))

    def passes(self) -> bool:
        return check_all_or_any(
            [restriction.check() for restriction in self._restrictions], self.combinator
        )

    def evaluate(self) -> list[RestrictionResult]:
        return [restriction.evaluate() for restriction in self._restrictions]

    @property
    def restrictions(self) -> list[Restriction]:
        """Get all restrictions in this set."""
        return self._restrictions.copy()

    def __len__(self) -> int:
        return len(self._restrictions)

    def get_messages(self) -> dict[str, Any]:
        """Message keys of this set. Single restrictions carry no intro."""
        return {
            "intro": (
                None
                if len(self._restrictions) < 2
                else MESSAGE_KEY_ALL_OF if self.combinator == Combinator.ALL else MESSAGE_KEY_ANY_OF
            ),
            "restrictions": [
                {
                    "key": restriction.message_key,
                    "value": restriction.get_value_representation(),
                    "label": restriction.label,
                }
                for restriction in self._restrictions
            ],
        }

    def to_dict(self) -> RestrictionSetDefinition:
        result: RestrictionSetDefinition = {
            "restrictionList": [restriction.to_dict() for restriction in self._restrictions],
        }
        if self.combinator is not None:
            result["allOrAnyRestriction"] = self.combinator.value
        return result


class Restrictions:
    """
    Access restrictions of one stage.

    Sets without any valid restriction are dropped at construction. Without
    any set left, the restrictions always pass.
    """

    combinator: Combinator | None
    open_on_score_sufficient: bool
    _sets: list[RestrictionSet]

    def __init__(
        self,
        sets: list[RestrictionSet],
        combinator: Combinator | None = Combinator.ALL,
        open_on_score_sufficient: bool = False,
    ):
        self._sets = [restriction_set for restriction_set in sets if len(restriction_set)]
        self.combinator = combinator
        self.open_on_score_sufficient = open_on_score_sufficient

    @classmethod
    def create(
        cls,
        config: AccessRestrictionsDefinition | None,
        sources: RestrictionSources,
    ) -> "Restrictions":
        config = config or {}
        sets = [
            RestrictionSet.create(set_config, sources)
            for set_config in config.get("restrictionSetList") or []
            if isinstance(set_config, dict)
        ]
        return cls(
            sets,
            parse_combinator(config.get("allOrAnyRestrictionSet"), Combinator.ALL),
            bool(config.get("openOnScoreSufficient", False)),
        )

    @property
    def is_empty(self) -> bool:
        return not self._sets

    @property
    def sets(self) -> list[RestrictionSet]:
        return self._sets.copy()

    def all_passed(self) -> bool:
        """Check every set and combine the results."""
        if not self._sets:
            return True
        return check_all_or_any(
            [restriction_set.passes() for restriction_set in self._sets], self.combinator
        )

    def evaluate(self) -> RestrictionsResult:
        """Evaluate all restrictions, keeping the individual results."""
        passed = []
        failed = []
        for restriction_set in self._sets:
            for result in restriction_set.evaluate():
                if result.success:
                    passed.append(result)
                else:
                    failed.append(result)
        return RestrictionsResult(success=self.all_passed(), failed=failed, passed=passed)

    def get_messages(self) -> dict[str, Any] | None:
        """Tree of message keys explaining the restrictions, or None if unrestricted."""
        if not self._sets:
            return None
        return {
            "intro": (
                f"{MESSAGE_KEY_ALL_OF}Long"
                if self.combinator == Combinator.ALL
                else f"{MESSAGE_KEY_ANY_OF}Long"
            ),
            "sets": [restriction_set.get_messages() for restriction_set in self._sets],
        }

    def to_dict(self) -> AccessRestrictionsDefinition:
        result: AccessRestrictionsDefinition = {
            "restrictionSetList": [restriction_set.to_dict() for restriction_set in self._sets],
        }
        if self.combinator is not None:
            result["allOrAnyRestrictionSet"] = self.combinator.value
        if self.open_on_score_sufficient:
            result["openOnScoreSufficient"] = True
        return result
