# stagemap/settings.py
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

from stagemap.constants import (
    DEFAULT_ANIM_DURATION_MS,
    DEFAULT_DISPLAY_PATHS,
    DEFAULT_ENABLE_RETRY,
    DEFAULT_ENABLE_SOLUTIONS_BUTTON,
    DEFAULT_FINISH_SCORE,
    DEFAULT_FOG,
    DEFAULT_LIVES,
    DEFAULT_ROAMING,
    DEFAULT_START_STAGES,
    DEFAULT_USE_ANIMATION,
    INFINITY_VALUES,
    get_finish_score,
    get_fog,
    get_lives,
    get_roaming,
    get_use_animation,
)
from stagemap.exceptions import ConfigurationError
from stagemap.models import Fog, Roaming, StartStages

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=StrEnum)


@dataclass(frozen=True)
class MapBehaviour:
    """How the map gates and reveals stages"""

    roaming: Roaming = Roaming(DEFAULT_ROAMING)
    fog: Fog = Fog(DEFAULT_FOG)
    display_paths: bool = DEFAULT_DISPLAY_PATHS
    start_stages: StartStages = StartStages(DEFAULT_START_STAGES)


@dataclass(frozen=True)
class BehaviourSettings:
    """Game rules: lives, finishing and global time"""

    map: MapBehaviour = field(default_factory=MapBehaviour)
    lives: float = DEFAULT_LIVES
    finish_score: float = DEFAULT_FINISH_SCORE
    time_limit_global: int | None = None
    timeout_warning_global: int | None = None
    enable_retry: bool = DEFAULT_ENABLE_RETRY
    enable_solutions_button: bool = DEFAULT_ENABLE_SOLUTIONS_BUTTON

    def __post_init__(self):
        if self.lives < 0:
            raise ConfigurationError("lives must be non-negative", "behaviour", "lives")
        if self.finish_score < 0:
            raise ConfigurationError(
                "finishScore must be non-negative", "behaviour", "finishScore"
            )


@dataclass(frozen=True)
class MiscVisual:
    use_animation: bool = DEFAULT_USE_ANIMATION
    anim_duration_ms: int = DEFAULT_ANIM_DURATION_MS


@dataclass(frozen=True)
class VisualSettings:
    misc: MiscVisual = field(default_factory=MiscVisual)


@dataclass(frozen=True)
class MapSettings:
    """Read-only global configuration of a map session"""

    behaviour: BehaviourSettings = field(default_factory=BehaviourSettings)
    visual: VisualSettings = field(default_factory=VisualSettings)

    # Shortcuts for the values read on hot paths

    @property
    def roaming(self) -> Roaming:
        return self.behaviour.map.roaming

    @property
    def fog(self) -> Fog:
        return self.behaviour.map.fog

    @property
    def use_animation(self) -> bool:
        return self.visual.misc.use_animation

    @classmethod
    def from_env(cls) -> 'MapSettings':
        """Create settings from environment variables using constants module"""
        return cls(
            behaviour=BehaviourSettings(
                map=MapBehaviour(
                    roaming=_parse_enum(Roaming, get_roaming(), Roaming(DEFAULT_ROAMING), "roaming"),
                    fog=_parse_enum(Fog, get_fog(), Fog(DEFAULT_FOG), "fog"),
                ),
                lives=get_lives(),
                finish_score=get_finish_score(),
            ),
            visual=VisualSettings(misc=MiscVisual(use_animation=get_use_animation())),
        )

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, Any] | None) -> 'MapSettings':
        """Create settings from the authored dictionary.

        Both camelCase (authoring format) and snake_case keys are accepted.
        Unknown enum values fall back to defaults with a warning; sections
        that are not mappings and out of range numbers raise
        ConfigurationError.
        """
        config_dict = _section(config_dict, "settings")
        behaviour_dict = _section(config_dict.get("behaviour"), "behaviour")
        map_dict = _section(behaviour_dict.get("map"), "behaviour.map")
        visual_dict = _section(config_dict.get("visual"), "visual")
        misc_dict = _section(visual_dict.get("misc"), "visual.misc")

        map_behaviour = MapBehaviour(
            roaming=_parse_enum(
                Roaming, map_dict.get("roaming"), Roaming(DEFAULT_ROAMING), "roaming"
            ),
            fog=_parse_enum(Fog, map_dict.get("fog"), Fog(DEFAULT_FOG), "fog"),
            display_paths=bool(
                _pick(map_dict, "displayPaths", "display_paths", DEFAULT_DISPLAY_PATHS)
            ),
            start_stages=_parse_enum(
                StartStages,
                _pick(map_dict, "startStages", "start_stages"),
                StartStages(DEFAULT_START_STAGES),
                "startStages",
            ),
        )

        behaviour = BehaviourSettings(
            map=map_behaviour,
            lives=_parse_number(behaviour_dict.get("lives"), DEFAULT_LIVES, "lives"),
            finish_score=_parse_number(
                _pick(behaviour_dict, "finishScore", "finish_score"),
                DEFAULT_FINISH_SCORE,
                "finishScore",
            ),
            time_limit_global=_parse_seconds(
                _pick(behaviour_dict, "timeLimitGlobal", "time_limit_global"),
                "timeLimitGlobal",
            ),
            timeout_warning_global=_parse_seconds(
                _pick(behaviour_dict, "timeoutWarningGlobal", "timeout_warning_global"),
                "timeoutWarningGlobal",
            ),
            enable_retry=bool(
                _pick(behaviour_dict, "enableRetry", "enable_retry", DEFAULT_ENABLE_RETRY)
            ),
            enable_solutions_button=bool(
                _pick(
                    behaviour_dict,
                    "enableSolutionsButton",
                    "enable_solutions_button",
                    DEFAULT_ENABLE_SOLUTIONS_BUTTON,
                )
            ),
        )

        anim_duration = _pick(misc_dict, "animDuration", "anim_duration_ms", DEFAULT_ANIM_DURATION_MS)
        if not isinstance(anim_duration, int) or isinstance(anim_duration, bool) or anim_duration < 0:
            raise ConfigurationError(
                f"Invalid animation duration: {anim_duration!r}", "visual.misc", "animDuration"
            )

        visual = VisualSettings(
            misc=MiscVisual(
                use_animation=bool(
                    _pick(misc_dict, "useAnimation", "use_animation", DEFAULT_USE_ANIMATION)
                ),
                anim_duration_ms=anim_duration,
            )
        )

        return cls(behaviour=behaviour, visual=visual)

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to the authored camelCase dictionary"""
        behaviour: dict[str, Any] = {
            "map": {
                "roaming": self.behaviour.map.roaming.value,
                "fog": self.behaviour.map.fog.value,
                "displayPaths": self.behaviour.map.display_paths,
                "startStages": self.behaviour.map.start_stages.value,
            },
            "lives": None if math.isinf(self.behaviour.lives) else int(self.behaviour.lives),
            "finishScore": (
                None if math.isinf(self.behaviour.finish_score) else self.behaviour.finish_score
            ),
            "enableRetry": self.behaviour.enable_retry,
            "enableSolutionsButton": self.behaviour.enable_solutions_button,
        }
        if self.behaviour.time_limit_global is not None:
            behaviour["timeLimitGlobal"] = self.behaviour.time_limit_global
        if self.behaviour.timeout_warning_global is not None:
            behaviour["timeoutWarningGlobal"] = self.behaviour.timeout_warning_global
        return {
            "behaviour": behaviour,
            "visual": {
                "misc": {
                    "useAnimation": self.visual.misc.use_animation,
                    "animDuration": self.visual.misc.anim_duration_ms,
                }
            },
        }

    def __str__(self) -> str:
        return (f"MapSettings(roaming={self.roaming.value}, fog={self.fog.value}, "
                f"lives={self.behaviour.lives})")


def _section(value: Any, name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f"Section '{name}' must be a mapping, got {type(value).__name__}", name
        )
    return value


def _pick(section: Mapping[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in section:
        return section[camel]
    return section.get(snake, default)


def _parse_enum(enum_cls: type[E], value: Any, default: E, key: str) -> E:
    if value is None:
        return default
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning("Unknown %s %r, falling back to %r", key, value, default.value)
        return default


def _parse_number(value: Any, default: float, key: str) -> float:
    """Read a count that may be unbounded. None and 'inf' mean unbounded."""
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid value for {key}: {value!r}", "behaviour", key)
    if isinstance(value, str):
        if value.strip().lower() in INFINITY_VALUES:
            return math.inf
        try:
            value = int(value)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid value for {key}: {value!r}", "behaviour", key
            ) from e
    if not isinstance(value, (int, float)):
        raise ConfigurationError(f"Invalid value for {key}: {value!r}", "behaviour", key)
    if value < 0:
        raise ConfigurationError(f"{key} must be non-negative", "behaviour", key)
    return float(value)


def _parse_seconds(value: Any, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigurationError(f"Invalid value for {key}: {value!r}", "behaviour", key)
    return int(value)


# Environment variable reference:
# STAGEMAP_ROAMING - Roaming policy: free|complete|success (default: success)
# STAGEMAP_FOG - Fog policy: all|0|1 (default: all)
# STAGEMAP_LIVES - Number of lives or inf (default: inf)
# STAGEMAP_FINISH_SCORE - Score needed to finish or inf (default: inf)
# STAGEMAP_USE_ANIMATION - Play effects in sequence: true|false (default: true)
