"""Constants and default values for stagemap.

This module centralizes timing constants, defaults for the map settings and
the environment variables read by ``MapSettings.from_env``.
"""

import math
import os
from typing import Final

# =============================================================================
# Environment Variable Names
# =============================================================================

ENV_VAR_PREFIX: Final[str] = "STAGEMAP_"

# Map behaviour
ENV_ROAMING: Final[str] = f"{ENV_VAR_PREFIX}ROAMING"
ENV_FOG: Final[str] = f"{ENV_VAR_PREFIX}FOG"
ENV_LIVES: Final[str] = f"{ENV_VAR_PREFIX}LIVES"
ENV_FINISH_SCORE: Final[str] = f"{ENV_VAR_PREFIX}FINISH_SCORE"

# Visual
ENV_USE_ANIMATION: Final[str] = f"{ENV_VAR_PREFIX}USE_ANIMATION"


# =============================================================================
# Default Configuration Values
# =============================================================================

DEFAULT_ROAMING: Final[str] = "success"
DEFAULT_FOG: Final[str] = "all"
DEFAULT_START_STAGES: Final[str] = "random"
DEFAULT_DISPLAY_PATHS: Final[bool] = True
DEFAULT_LIVES: Final[float] = math.inf
DEFAULT_FINISH_SCORE: Final[float] = math.inf
DEFAULT_ENABLE_RETRY: Final[bool] = True
DEFAULT_ENABLE_SOLUTIONS_BUTTON: Final[bool] = True
DEFAULT_USE_ANIMATION: Final[bool] = True


# =============================================================================
# Timing Constants (milliseconds)
# =============================================================================

MS_IN_S: Final[int] = 1000

# Duration of the opening/closing animations of the exercise overlay
DEFAULT_ANIM_DURATION_MS: Final[int] = 1000

# Spacing after a stage-cleared effect before the next queued effect fires
ANIMATION_CLEARED_BLOCK_MS: Final[int] = 1000

# Tick interval of exercise and global timers
TIMER_INTERVAL_MS: Final[int] = 500
DEFAULT_TIMER_INTERVAL_MS: Final[int] = 1000
MIN_TIMER_INTERVAL_MS: Final[int] = 50

# Sentinel for "no time limit" in exercise bundles
NO_TIME_LIMIT: Final[int] = -1


# =============================================================================
# Message Keys
# =============================================================================

MESSAGE_KEY_ALL_OF: Final[str] = "restrictionsAllOf"
MESSAGE_KEY_ANY_OF: Final[str] = "restrictionsAnyOf"
MESSAGE_KEY_PREFIX: Final[str] = "restriction"


# =============================================================================
# Boolean String Parsing
# =============================================================================

TRUTHY_VALUES: Final[tuple[str, ...]] = ("true", "1", "yes", "on")
FALSY_VALUES: Final[tuple[str, ...]] = ("false", "0", "no", "off")
INFINITY_VALUES: Final[tuple[str, ...]] = ("inf", "infinity", "")


# =============================================================================
# Helper Functions
# =============================================================================


def get_env_bool(env_var: str, default: bool) -> bool:
    """
    Get boolean value from environment variable.

    Args:
        env_var: Environment variable name
        default: Default value if not set

    Returns:
        Boolean value from environment or default
    """
    value = os.getenv(env_var, str(default)).lower()
    return value in TRUTHY_VALUES


def get_env_number(env_var: str, default: float) -> float:
    """
    Get a numeric value that may be unbounded from environment variable.

    ``inf``/``infinity`` map to ``math.inf``. Unparsable values give the
    default.
    """
    raw = os.getenv(env_var)
    if raw is None:
        return default
    raw = raw.strip().lower()
    if raw in INFINITY_VALUES:
        return math.inf
    try:
        return float(int(raw))
    except ValueError:
        return default


def get_env_str(env_var: str, default: str) -> str:
    """
    Get string value from environment variable.

    Args:
        env_var: Environment variable name
        default: Default value if not set

    Returns:
        String value from environment or default
    """
    return os.getenv(env_var, default)


# =============================================================================
# Configuration Value Getters (reads from environment)
# =============================================================================


def get_roaming() -> str:
    """Get roaming policy from environment or default."""
    return get_env_str(ENV_ROAMING, DEFAULT_ROAMING).lower()


def get_fog() -> str:
    """Get fog policy from environment or default."""
    return get_env_str(ENV_FOG, DEFAULT_FOG).lower()


def get_lives() -> float:
    """Get number of lives from environment or default."""
    return get_env_number(ENV_LIVES, DEFAULT_LIVES)


def get_finish_score() -> float:
    """Get finish score from environment or default."""
    return get_env_number(ENV_FINISH_SCORE, DEFAULT_FINISH_SCORE)


def get_use_animation() -> bool:
    """Get animation flag from environment or default."""
    return get_env_bool(ENV_USE_ANIMATION, DEFAULT_USE_ANIMATION)


# =============================================================================
# Documentation
# =============================================================================

ENVIRONMENT_VARIABLE_DOCS = """
Environment Variables Reference:

Map Behaviour:
  STAGEMAP_ROAMING        - Roaming policy: free|complete|success
                            Default: success
  STAGEMAP_FOG            - Fog policy: all|0|1
                            Default: all
  STAGEMAP_LIVES          - Number of lives, or inf
                            Default: inf
  STAGEMAP_FINISH_SCORE   - Score needed to finish the map, or inf
                            Default: inf

Visual:
  STAGEMAP_USE_ANIMATION  - Play effects in sequence: true|false
                            Default: true

Examples:
  export STAGEMAP_ROAMING="complete"
  export STAGEMAP_LIVES="3"
"""
