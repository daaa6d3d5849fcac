# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for shipyard.

Each config section gets its own frozen pydantic model. Frozen means once you
create it, you cannot mutate it: a build reads its configuration once at the
start and nothing changes it halfway through.

The models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked

There is no `lint` section. The lint rule table is compiled in (see
shipyard.lint.rules) and is not configurable.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shipyard.build.context import (
    DEFAULT_BUILDER_IMAGE,
    IMAGE_REFERENCE_PATTERN,
    IMAGE_REPOSITORY_PATTERN,
    IMAGE_TAG_PATTERN,
)

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class GlobalConfig(BaseModel):
    """Cross-cutting settings: project identity and logging."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        description="Schema version for compatibility tracking, e.g. '1.0.0'"
    )
    project_name: str = Field(
        default="lemmy", description="Human-readable project identifier"
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_VALID_LOG_LEVELS)}")
        return upper


class BuildConfig(BaseModel):
    """
    Release build settings.

    Only the builder image changes what gets built. The repository and tag
    only name the result.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    builder_image: str = Field(
        default=DEFAULT_BUILDER_IMAGE,
        description="Toolchain image the compile stage runs in",
    )
    image_repository: str = Field(
        default="lemmy",
        description="Repository name for the finished runtime image",
    )
    image_tag: Optional[str] = Field(
        default=None,
        description="Tag for the finished image; defaults to the resolved version",
    )

    @field_validator("builder_image")
    @classmethod
    def _check_image_reference(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned or not IMAGE_REFERENCE_PATTERN.match(cleaned):
            raise ValueError(f"'{value}' is not a valid image reference")
        return cleaned

    @field_validator("image_repository")
    @classmethod
    def _check_image_repository(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned or not IMAGE_REPOSITORY_PATTERN.match(cleaned):
            raise ValueError(
                f"'{value}' is not a valid image repository (no :tag or @digest)"
            )
        return cleaned

    @field_validator("image_tag")
    @classmethod
    def _check_image_tag(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not IMAGE_TAG_PATTERN.match(value):
            raise ValueError(f"'{value}' is not a valid image tag")
        return value


class ShipyardConfig(BaseModel):
    """
    Top-level config container.

    A file needs `global:`; `build:` is optional and falls back to defaults
    when left out.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global")
    build: BuildConfig = Field(default_factory=BuildConfig)
