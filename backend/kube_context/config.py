"""Context engine configuration.

Persistence belongs to the host application; this module only validates
values and reads optional defaults from the environment.
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, PositiveInt
from pydantic.alias_generators import to_camel

DEFAULT_TOKEN_BUDGET = 2000

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


class ContextEngineConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)

    token_budget: PositiveInt = DEFAULT_TOKEN_BUDGET
    summaries_enabled: bool = True
    anomaly_detection_enabled: bool = True

    @classmethod
    def from_env(cls) -> "ContextEngineConfig":
        budget = os.getenv("CONTEXT_TOKEN_BUDGET", "").strip()
        return cls(
            token_budget=int(budget) if budget else DEFAULT_TOKEN_BUDGET,
            summaries_enabled=_env_bool("CONTEXT_SUMMARIES_ENABLED", True),
            anomaly_detection_enabled=_env_bool("CONTEXT_ANOMALY_DETECTION_ENABLED", True),
        )


class ConfigUpdate(BaseModel):
    """Partial update; unset fields are left unchanged."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    token_budget: Optional[PositiveInt] = None
    summaries_enabled: Optional[bool] = None
    anomaly_detection_enabled: Optional[bool] = None
