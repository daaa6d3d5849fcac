# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Failure taxonomy for both delivery workflows.

Every failure surfaces to the operator as one of these. Nothing is retried
and nothing is downgraded to a warning: a release without a traceable
version, or a workspace with unfixable lint, is a failed run.

Each error carries the failing tool's own diagnostic output (`diagnostics`)
so the CLI can hand it back verbatim.
"""


class PipelineError(Exception):
    """Base for every error raised by the build and lint workflows."""

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


class ToolNotFoundError(PipelineError):
    """An external executable (git, docker, cargo) is not on PATH."""


class ConfigurationError(PipelineError):
    """Missing or invalid builder image reference or build context."""


class DependencyInstallError(PipelineError):
    """OS package installation failed in the build or the runtime stage."""


class VersionResolutionError(PipelineError):
    """
    Source control could not describe the tree (no tags, shallow checkout,
    not a repository) or returned something unusable as a version constant.
    """


class CompilationError(PipelineError):
    """The release build of the workspace failed. No artifact is promoted."""


class ImageAssemblyError(PipelineError):
    """
    A non-package step of image assembly failed: copying the source tree,
    creating the runtime user, copying the artifact, or verifying the image.
    """


class ImageVerificationError(ImageAssemblyError):
    """The built image does not run as the recipe says: wrong user, port or command."""


class WorkspaceNotFoundError(PipelineError):
    """No cargo workspace could be located for the lint workflow."""


class LintAnalyzerError(PipelineError):
    """The analyzer itself failed (toolchain error, code that doesn't build)."""


class UnfixableLintViolation(PipelineError):
    """
    The analyzer left violations it could not fix automatically.

    `violations` holds the parsed diagnostics so callers can report each one.
    """

    def __init__(self, message: str, violations: tuple = (), diagnostics: str = "") -> None:
        super().__init__(message, diagnostics)
        self.violations = violations


class FormatterError(PipelineError):
    """The formatter failed; the tree is not declared clean."""
