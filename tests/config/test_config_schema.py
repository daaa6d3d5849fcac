# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Schema-level validation tests.

These focus on the pydantic models themselves: defaults, constraint
enforcement, and structural correctness.
"""

import pytest
from pydantic import ValidationError

from shipyard.build.context import DEFAULT_BUILDER_IMAGE
from shipyard.config.schema import BuildConfig, GlobalConfig, ShipyardConfig


class TestGlobalConfigSchema:
    def test_default_log_level_is_info(self) -> None:
        config = GlobalConfig(config_version="1.0.0")
        assert config.log_level == "INFO"

    def test_log_level_is_normalized(self) -> None:
        config = GlobalConfig(config_version="1.0.0", log_level="debug")
        assert config.log_level == "DEBUG"

    def test_default_project_name(self) -> None:
        config = GlobalConfig(config_version="1.0.0")
        assert config.project_name == "lemmy"

    def test_config_version_is_required(self) -> None:
        with pytest.raises(ValidationError):
            GlobalConfig()  # type: ignore[call-arg]


class TestBuildConfigSchema:
    def test_defaults_are_populated(self) -> None:
        build = BuildConfig()
        assert build.builder_image == DEFAULT_BUILDER_IMAGE
        assert build.image_repository == "lemmy"
        assert build.image_tag is None

    def test_image_reference_is_trimmed(self) -> None:
        build = BuildConfig(builder_image="  rust:1.72-alpine ")
        assert build.builder_image == "rust:1.72-alpine"

    @pytest.mark.parametrize("reference", ["", "   ", "Rust:Latest", "rust 1.70"])
    def test_bad_builder_image_is_rejected(self, reference: str) -> None:
        with pytest.raises(ValidationError):
            BuildConfig(builder_image=reference)

    @pytest.mark.parametrize("repository", ["lemmy:latest", "lemmy@sha256:" + "a" * 64])
    def test_repository_with_tag_or_digest_is_rejected(self, repository: str) -> None:
        with pytest.raises(ValidationError, match="image repository"):
            BuildConfig(image_repository=repository)

    @pytest.mark.parametrize("tag", ["not a valid tag!", "-edge", "x" * 129])
    def test_bad_image_tag_is_rejected(self, tag: str) -> None:
        with pytest.raises(ValidationError, match="image tag"):
            BuildConfig(image_tag=tag)

    def test_valid_image_tag_is_accepted(self) -> None:
        assert BuildConfig(image_tag="0.17.2").image_tag == "0.17.2"

    def test_unknown_field_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BuildConfig(platform="linux/arm64")  # type: ignore[call-arg]


class TestShipyardConfigSchema:
    def test_requires_global_section(self) -> None:
        with pytest.raises(ValidationError):
            ShipyardConfig()  # type: ignore[call-arg]

    def test_build_section_is_optional(self) -> None:
        config = ShipyardConfig.model_validate({"global": {"config_version": "1.0.0"}})
        assert config.build == BuildConfig()

    def test_rejects_top_level_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            ShipyardConfig.model_validate({
                "global": {"config_version": "1.0.0"},
                "unknown_section": {"something": True},
            })
