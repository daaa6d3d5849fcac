# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release builder: source tree in, minimal non-root runtime image out.

The build runs in two isolated stages.

Stage A (compile) builds the compile recipe one target at a time:
  1. deps: builder image + build-time OS packages
  2. source: the full source tree copied in
  3. stamped: `git describe --tag` runs on the host, and the resulting
     VersionTag is written into the version constant file
  4. compiled: `cargo build --release` and the binary copied to a fixed path
  5. the compiled target is tagged as an intermediate artifact image and
     handed on as a CompiledArtifact

Stage B (runtime) builds a separate recipe that only knows the artifact
image reference:
  6. runtime-base, runtime: minimal base, runtime libraries, uid/gid 1000
  7. release: binary copied with its final owner, USER/EXPOSE/CMD, tagged
  8. the tagged image is inspected and checked against the recipe, and the
     installed binary is checked for uid:gid ownership

Every tool result is checked as soon as it comes back. The first failure
raises, the state machine stays where it was, and nothing downstream runs.
The requested image tag is only ever applied by step 7, and it is removed
again if verification fails, so an operator either gets a complete image or
none. The intermediate artifact image is removed whatever happens.
"""

import json
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from shipyard.build.context import BuildContext, validate_image_repository, validate_image_tag
from shipyard.build.dockerfile import (
    BUILDER_IMAGE_ARG,
    COMPILED_STAGE,
    DEPS_STAGE,
    RELEASE_STAGE,
    RUNTIME_BASE_STAGE,
    RUNTIME_STAGE,
    SOURCE_STAGE,
    STAMPED_STAGE,
    VERSION_TAG_ARG,
    render_compile_recipe,
    render_runtime_recipe,
)
from shipyard.build.recipe import DEFAULT_RECIPE, ImageRecipe
from shipyard.build.states import BuildProgress, BuildState
from shipyard.build.version import VersionTag, resolve_version_tag
from shipyard.exceptions import (
    CompilationError,
    DependencyInstallError,
    ImageAssemblyError,
    ImageVerificationError,
    PipelineError,
)
from shipyard.logging.logger import get_logger
from shipyard.utils.process import Runner, ToolResult, run_tool

logger = get_logger(__name__)

DEFAULT_IMAGE_REPOSITORY = "lemmy"
ARTIFACT_REPOSITORY = "shipyard-artifact"


@dataclass(frozen=True)
class CompiledArtifact:
    """
    The hand-off from the compile stage to the runtime stage.

    `image` is the intermediate image holding the binary at `path`. The
    runtime stage reads nothing else from stage A.
    """

    image: str
    path: str
    version: VersionTag


@dataclass(frozen=True)
class RuntimeImage:
    """A finished, verified release image."""

    reference: str
    version: VersionTag
    user: str
    exposed_ports: tuple[str, ...]
    command: tuple[str, ...]


@dataclass(frozen=True)
class BuildPlan:
    """What a build would do, without doing it. Used for --dry-run."""

    build_id: str
    version: VersionTag
    builder_image: str
    image_reference: str
    compile_recipe: str
    runtime_recipe: str


class ReleaseBuilder:
    """
    Runs one release build for one BuildContext.

    Instances are single-use: the state machine starts at START and only moves
    forward. Build a new ReleaseBuilder for every invocation.

    The repository and an explicit tag are checked on construction and raise
    ConfigurationError when they can't form an image name.
    """

    def __init__(
        self,
        context: BuildContext,
        recipe: ImageRecipe = DEFAULT_RECIPE,
        runner: Runner = run_tool,
        image_repository: str = DEFAULT_IMAGE_REPOSITORY,
        image_tag: Optional[str] = None,
        build_id: Optional[str] = None,
    ) -> None:
        self._context = context
        self._recipe = recipe
        self._runner = runner
        self._image_repository = validate_image_repository(image_repository)
        self._image_tag = validate_image_tag(image_tag) if image_tag is not None else None
        self.build_id = build_id or uuid.uuid4().hex[:12]
        self.progress = BuildProgress(self.build_id)

    @property
    def context(self) -> BuildContext:
        return self._context

    @property
    def artifact_reference(self) -> str:
        return f"{ARTIFACT_REPOSITORY}:{self.build_id}"

    def image_reference(self, version: VersionTag) -> str:
        """
        Final image reference. The tag defaults to the version with '/' and
        '+' made tag-safe.

        Raises:
            ConfigurationError: The version cannot be used as a tag (too long,
                or starts with '.' or '-') and no explicit tag was given.
        """
        if self._image_tag is not None:
            return f"{self._image_repository}:{self._image_tag}"
        tag = version.value.replace("/", "-").replace("+", "-")
        validate_image_tag(tag, label=f"image tag derived from version {version.value}")
        return f"{self._image_repository}:{tag}"

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def build(self) -> RuntimeImage:
        """Run both stages and return the verified runtime image."""
        logger.info(
            "Release build started",
            extra={
                "build_id": self.build_id,
                "root": str(self._context.root),
                "builder_image": self._context.builder_image,
            },
        )

        artifact = self.compile()
        try:
            image = self.assemble(artifact)
        finally:
            self._discard_artifact(artifact)

        logger.info(
            "Release build finished",
            extra={
                "build_id": self.build_id,
                "image": image.reference,
                "version": image.version.value,
            },
        )
        return image

    def plan(self) -> BuildPlan:
        """Resolve the version and render both recipes without touching docker."""
        version = resolve_version_tag(self._context.root, runner=self._runner)
        return BuildPlan(
            build_id=self.build_id,
            version=version,
            builder_image=self._context.builder_image,
            image_reference=self.image_reference(version),
            compile_recipe=render_compile_recipe(self._recipe, self._context.builder_image),
            runtime_recipe=render_runtime_recipe(self._recipe, self.artifact_reference),
        )

    # ------------------------------------------------------------------
    # Stage A
    # ------------------------------------------------------------------

    def compile(self) -> CompiledArtifact:
        """Stage A. Returns the artifact hand-off for stage B."""
        dockerfile = render_compile_recipe(self._recipe, self._context.builder_image)
        base_args = [f"{BUILDER_IMAGE_ARG}={self._context.builder_image}"]

        result = self._docker_build(DEPS_STAGE, dockerfile, base_args, with_context=True)
        if not result.ok:
            raise DependencyInstallError(
                f"Installing build packages failed in {self._context.builder_image}",
                diagnostics=result.diagnostics(),
            )
        self.progress.advance(BuildState.DEPENDENCIES_INSTALLED)

        result = self._docker_build(SOURCE_STAGE, dockerfile, base_args, with_context=True)
        if not result.ok:
            raise ImageAssemblyError(
                f"Copying source tree {self._context.root} failed",
                diagnostics=result.diagnostics(),
            )
        self.progress.advance(BuildState.SOURCE_COPIED)

        # Must happen before anything is compiled; raises on a tagless tree.
        version = resolve_version_tag(self._context.root, runner=self._runner)
        # The final tag has to be usable before anything is compiled.
        self.image_reference(version)
        stamped_args = [*base_args, f"{VERSION_TAG_ARG}={version.value}"]

        result = self._docker_build(STAMPED_STAGE, dockerfile, stamped_args, with_context=True)
        if not result.ok:
            raise ImageAssemblyError(
                f"Writing version constant to {self._recipe.version_file} failed",
                diagnostics=result.diagnostics(),
            )
        self.progress.advance(BuildState.VERSION_STAMPED)

        result = self._docker_build(
            COMPILED_STAGE,
            dockerfile,
            stamped_args,
            with_context=True,
            tag=self.artifact_reference,
        )
        if not result.ok:
            raise CompilationError(
                f"Release build of the workspace failed (version {version.value})",
                diagnostics=result.diagnostics(),
            )
        self.progress.advance(BuildState.COMPILED)

        artifact = CompiledArtifact(
            image=self.artifact_reference,
            path=self._recipe.artifact_path,
            version=version,
        )
        self.progress.advance(BuildState.ARTIFACT_EXTRACTED)
        logger.info(
            "Artifact extracted",
            extra={"build_id": self.build_id, "image": artifact.image, "path": artifact.path},
        )
        return artifact

    # ------------------------------------------------------------------
    # Stage B
    # ------------------------------------------------------------------

    def assemble(self, artifact: CompiledArtifact) -> RuntimeImage:
        """Stage B. Consumes only the artifact reference from stage A."""
        dockerfile = render_runtime_recipe(self._recipe, artifact.image)
        reference = self.image_reference(artifact.version)

        result = self._docker_build(RUNTIME_BASE_STAGE, dockerfile, [], with_context=False)
        if not result.ok:
            raise DependencyInstallError(
                f"Installing runtime packages failed in {self._recipe.runtime_image}",
                diagnostics=result.diagnostics(),
            )

        result = self._docker_build(RUNTIME_STAGE, dockerfile, [], with_context=False)
        if not result.ok:
            raise ImageAssemblyError(
                f"Creating runtime user {self._recipe.user} ({self._recipe.uid}) failed",
                diagnostics=result.diagnostics(),
            )
        self.progress.advance(BuildState.RUNTIME_ASSEMBLED)

        result = self._docker_build(
            RELEASE_STAGE, dockerfile, [], with_context=False, tag=reference,
        )
        if not result.ok:
            raise ImageAssemblyError(
                f"Copying {artifact.path} from {artifact.image} failed",
                diagnostics=result.diagnostics(),
            )
        self.progress.advance(BuildState.OWNERSHIP_FIXED)

        try:
            image = self._verify(reference, artifact.version)
        except PipelineError:
            self._remove_image(reference)
            raise

        self.progress.advance(BuildState.READY)
        return image

    def _verify(self, reference: str, version: VersionTag) -> RuntimeImage:
        """
        Inspect the tagged image and make sure it matches the recipe: a
        non-root user, the exposed port, the command, and an installed binary
        owned by uid:gid.
        """
        result = self._runner(
            ["docker", "image", "inspect", "--format", "{{json .Config}}", reference],
            cwd=self._context.root,
        )
        if not result.ok:
            raise ImageAssemblyError(
                f"Cannot inspect built image {reference}",
                diagnostics=result.diagnostics(),
            )

        try:
            config = json.loads(result.stdout)
        except json.JSONDecodeError as err:
            raise ImageAssemblyError(
                f"Unreadable image config for {reference}: {err}",
                diagnostics=result.stdout,
            ) from err

        user = config.get("User") or ""
        exposed_ports = tuple(sorted((config.get("ExposedPorts") or {}).keys()))
        command = tuple(config.get("Cmd") or ())

        problems = []
        if user in ("", "root", "0", "0:0"):
            problems.append(f"runs as privileged user '{user or 'root'}'")
        elif user not in (self._recipe.user, str(self._recipe.uid)):
            problems.append(f"user is '{user}', expected '{self._recipe.user}'")
        if self._recipe.exposed_port not in exposed_ports:
            problems.append(f"port {self._recipe.exposed_port} not exposed")
        if command != self._recipe.command:
            problems.append(f"command is {list(command)}, expected {list(self._recipe.command)}")

        owner = self._installed_owner(reference)
        expected_owner = f"{self._recipe.uid}:{self._recipe.gid}"
        if owner != expected_owner:
            problems.append(
                f"{self._recipe.install_path} is owned by {owner or 'unknown'}, expected {expected_owner}"
            )

        if problems:
            raise ImageVerificationError(
                f"Image {reference} failed verification: {'; '.join(problems)}"
            )

        logger.info(
            "Image verified",
            extra={"image": reference, "user": user, "owner": owner, "ports": list(exposed_ports)},
        )
        return RuntimeImage(
            reference=reference,
            version=version,
            user=user,
            exposed_ports=exposed_ports,
            command=command,
        )

    # ------------------------------------------------------------------
    # docker plumbing
    # ------------------------------------------------------------------

    def _docker_build(
        self,
        target: str,
        dockerfile: str,
        build_args: Sequence[str],
        *,
        with_context: bool,
        tag: Optional[str] = None,
    ) -> ToolResult:
        """
        Build one target of a recipe read from stdin.

        With `with_context` the source tree is the build context. Without it
        docker gets no context at all, which is how the runtime recipe is kept
        away from the source tree.
        """
        argv = ["docker", "build", "--target", target]
        for arg in build_args:
            argv.extend(["--build-arg", arg])
        if tag is not None:
            argv.extend(["--tag", tag])
        if with_context:
            argv.extend(["--file", "-", str(self._context.root)])
        else:
            argv.append("-")

        logger.info(
            "Building target",
            extra={"build_id": self.build_id, "target": target, "tag": tag},
        )
        return self._runner(argv, cwd=self._context.root, input_text=dockerfile)

    def _discard_artifact(self, artifact: CompiledArtifact) -> None:
        """Drop the intermediate image so no build-time layers outlive the build."""
        self._remove_image(artifact.image)

    def _installed_owner(self, reference: str) -> str:
        """Numeric uid:gid of the installed binary, read from a throwaway container."""
        result = self._runner(
            [
                "docker", "run", "--rm", "--entrypoint", "stat", reference,
                "-c", "%u:%g", self._recipe.install_path,
            ],
            cwd=self._context.root,
        )
        if not result.ok:
            raise ImageAssemblyError(
                f"Cannot check ownership of {self._recipe.install_path} in {reference}",
                diagnostics=result.diagnostics(),
            )
        return result.stdout.strip()

    def _remove_image(self, reference: str) -> None:
        result = self._runner(["docker", "image", "rm", reference], cwd=self._context.root)
        if not result.ok:
            logger.warning(
                "Could not remove image",
                extra={"image": reference, "diagnostics": result.diagnostics()},
            )
