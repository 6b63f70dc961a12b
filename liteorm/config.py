from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Settings for opening a Session.

    Every field can also be set from a ``LITEORM_`` environment variable,
    e.g. ``LITEORM_PATH`` or ``LITEORM_PARTIAL_JOIN_POLICY``. Keyword
    arguments win over the environment.
    """

    model_config = SettingsConfigDict(env_prefix="LITEORM_", extra="forbid")

    path: str = ":memory:"
    version: int = Field(default=1, ge=1)
    echo: bool = False
    foreign_keys: bool = False
    timeout: float = Field(default=5.0, gt=0)
    strict_loading: bool = False
    partial_join_policy: Literal["skip", "fail"] = "skip"
    validate_schema: bool = True

    @classmethod
    def from_env(cls, **overrides):
        return cls(**overrides)
