# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The fixed description of what goes into each build stage.

Nothing in here is operator-configurable. The recipe is what makes two builds
of the same commit with the same builder image produce the same image, so it
lives in code next to the pipeline rather than in a config file.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ImageRecipe:
    """Packages, paths and identities used by the compile and runtime stages."""

    # Compile stage
    build_packages: tuple[str, ...] = ("git", "openssl-dev", "libpq-dev", "musl-dev")
    workdir: str = "/app"
    binary_name: str = "lemmy_server"
    version_file: str = "crates/utils/src/version.rs"

    # Runtime stage
    runtime_image: str = "alpine:3"
    runtime_packages: tuple[str, ...] = ("ca-certificates", "libpq", "postgresql-client")
    user: str = "lemmy"
    group: str = "lemmy"
    uid: int = 1000
    gid: int = 1000
    install_path: str = "/app/lemmy"
    port: int = 8536

    @property
    def artifact_path(self) -> str:
        """Where the compile stage leaves the binary for the runtime stage to pick up."""
        return f"{self.workdir}/{self.binary_name}"

    @property
    def exposed_port(self) -> str:
        return f"{self.port}/tcp"

    @property
    def command(self) -> tuple[str, ...]:
        return (self.install_path,)


DEFAULT_RECIPE = ImageRecipe()
