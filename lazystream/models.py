"""Argument and configuration models for lazystream."""

import os
import logging
from typing import Any, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, ConfigDict

from .errors import InvalidArgumentError

M = TypeVar("M", bound=BaseModel)

OVERSHOOT_ENV = "LAZYSTREAM_TOPK_OVERSHOOT"
LOG_LEVEL_ENV = "LAZYSTREAM_LOG_LEVEL"


class ChunkSettings(BaseModel):
    """Chunking parameters."""
    model_config = ConfigDict(frozen=True)

    size: int = Field(
        ...,
        gt=0,
        strict=True,
        description="Number of elements per chunk"
    )


class WindowSettings(BaseModel):
    """Element count for skip/limit."""
    model_config = ConfigDict(frozen=True)

    count: int = Field(
        ...,
        ge=0,
        strict=True,
        description="Number of elements to skip or keep"
    )


class TopKSettings(BaseModel):
    """Bounded top-K selection parameters."""
    model_config = ConfigDict(frozen=True)

    limit: int = Field(
        ...,
        ge=1,
        strict=True,
        description="Number of best elements to retain"
    )
    overshoot: int = Field(
        default=2,
        ge=1,
        strict=True,
        description="Heap may grow to overshoot * limit before compacting"
    )


class LibrarySettings(BaseModel):
    """Process-wide defaults, usually read from the environment."""
    topk_overshoot: int = Field(
        default=2,
        ge=1,
        description="Default overshoot factor for TopKSelector"
    )
    log_level: str = Field(
        default="WARNING",
        description="Level passed to logging.basicConfig by configure_logging"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Accept only level names known to the logging module."""
        level = str(v).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls) -> "LibrarySettings":
        """Build settings from LAZYSTREAM_* environment variables."""
        values = {}
        overshoot = os.environ.get(OVERSHOOT_ENV)
        if overshoot:
            values["topk_overshoot"] = overshoot
        log_level = os.environ.get(LOG_LEVEL_ENV)
        if log_level:
            values["log_level"] = log_level
        return validate(cls, **values)


def validate(model_cls: Type[M], **values: Any) -> M:
    """Instantiate ``model_cls``, reporting bad values as InvalidArgumentError."""
    try:
        return model_cls(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidArgumentError(f"Invalid {model_cls.__name__}: {problems}") from e
