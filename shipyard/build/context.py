# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build context: the inputs of one release build.

A BuildContext is the source tree root plus the builder image the compile
stage runs in. The builder image is the only knob the operator gets; it
exists so CPU-architecture-specific toolchain images can be swapped in.
Everything else about the build is fixed by the recipe.

Both values are validated here, before any tool runs. A typo in the image
reference should fail in milliseconds, not after a ten minute dependency
install.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from shipyard.exceptions import ConfigurationError

DEFAULT_BUILDER_IMAGE = "rust:1.70-alpine"

# Image reference grammar, following the distribution reference format:
# [registry[:port]/]path-component[/path-component...][:tag][@digest]
_DOMAIN_LABEL = r"[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?"
_DOMAIN = rf"{_DOMAIN_LABEL}(?:\.{_DOMAIN_LABEL})*(?::[0-9]+)?"
_PATH_COMPONENT = r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*"
_TAG = r"[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}"
_DIGEST = r"sha256:[0-9a-f]{64}"

IMAGE_REFERENCE_PATTERN = re.compile(
    rf"^(?:{_DOMAIN}/)?{_PATH_COMPONENT}(?:/{_PATH_COMPONENT})*(?::{_TAG})?(?:@{_DIGEST})?$"
)

# The repository part alone, for names that get a tag appended later.
IMAGE_REPOSITORY_PATTERN = re.compile(
    rf"^(?:{_DOMAIN}/)?{_PATH_COMPONENT}(?:/{_PATH_COMPONENT})*$"
)
IMAGE_TAG_PATTERN = re.compile(rf"^{_TAG}$")


def validate_image_reference(reference: str, label: str = "builder image") -> str:
    """
    Check that `reference` is a well-formed container image reference.

    Returns the reference with surrounding whitespace removed.

    Raises:
        ConfigurationError: If the reference is empty or malformed.
    """
    cleaned = reference.strip()
    if not cleaned:
        raise ConfigurationError(f"The {label} reference is empty")
    if not IMAGE_REFERENCE_PATTERN.match(cleaned):
        raise ConfigurationError(f"Invalid {label} reference: '{reference}'")
    return cleaned


def validate_image_repository(repository: str, label: str = "image repository") -> str:
    """
    Like validate_image_reference, but for a bare repository name. A tag or
    digest is rejected because the build appends its own tag.
    """
    cleaned = repository.strip()
    if not cleaned:
        raise ConfigurationError(f"The {label} is empty")
    if not IMAGE_REPOSITORY_PATTERN.match(cleaned):
        raise ConfigurationError(
            f"Invalid {label}: '{repository}' (expected a name without :tag or @digest)"
        )
    return cleaned


def validate_image_tag(tag: str, label: str = "image tag") -> str:
    """Check a tag: up to 128 of [A-Za-z0-9_.-], not starting with '.' or '-'."""
    if not IMAGE_TAG_PATTERN.match(tag):
        raise ConfigurationError(f"Invalid {label}: '{tag}'")
    return tag


@dataclass(frozen=True)
class BuildContext:
    """Source tree and builder image for a single build invocation."""

    root: Path
    builder_image: str = DEFAULT_BUILDER_IMAGE


def create_build_context(root: Path, builder_image: Optional[str] = None) -> BuildContext:
    """
    Validate the inputs and produce a BuildContext.

    `builder_image=None` means "not specified" and selects the pinned default.
    An explicitly empty string is a configuration mistake, not a request for
    the default.

    Raises:
        ConfigurationError: Bad image reference, or root is not a directory.
    """
    image = DEFAULT_BUILDER_IMAGE if builder_image is None else validate_image_reference(builder_image)

    resolved_root = root.resolve()
    if not resolved_root.is_dir():
        raise ConfigurationError(f"Build context is not a directory: {root}")

    return BuildContext(root=resolved_root, builder_image=image)
