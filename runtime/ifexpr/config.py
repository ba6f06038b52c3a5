"""
IFExpr Config - runtime limits read from the environment

Variables:
    IFEXPR_MAX_DEPTH            nested dispatch limit (default 128)
    IFEXPR_DIVISION_PRECISION   significant digits kept by division (default 34)
    IFEXPR_LOG_LEVEL            package log level (default WARNING)
"""

from dataclasses import dataclass
from typing import Mapping, Optional
import os

from .logging_setup import get_logger


log = get_logger("ifexpr.config")

DEFAULT_MAX_DEPTH = 128
DEFAULT_DIVISION_PRECISION = 34
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class IFExprConfig:
    """Limits shared by a root environment and all of its children"""
    max_depth: int = DEFAULT_MAX_DEPTH
    division_precision: int = DEFAULT_DIVISION_PRECISION
    log_level: str = DEFAULT_LOG_LEVEL


def _read_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        log.warning("%s=%r is not an integer; using %d", key, raw, default)
        return default
    if value < 1:
        log.warning("%s=%d must be positive; using %d", key, value, default)
        return default
    return value


def load_config(env: Optional[Mapping[str, str]] = None) -> IFExprConfig:
    """Build a config from IFEXPR_* variables (os.environ by default)"""
    env = os.environ if env is None else env
    return IFExprConfig(
        max_depth=_read_int(env, "IFEXPR_MAX_DEPTH", DEFAULT_MAX_DEPTH),
        division_precision=_read_int(env, "IFEXPR_DIVISION_PRECISION", DEFAULT_DIVISION_PRECISION),
        log_level=(env.get("IFEXPR_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper(),
    )
