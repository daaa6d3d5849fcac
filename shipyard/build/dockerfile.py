# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build recipe rendering.

The release image is built from two separate Dockerfiles:

  compile recipe: deps → source → stamped → compiled
  runtime recipe: runtime-base → runtime → release

Each named stage is built as its own `docker build --target` invocation, so
every step of the pipeline has a distinct success or failure. Layer caching
makes the repeated invocations cheap: each one reuses everything the previous
target already built.

The runtime recipe never sees the compile stage's filesystem. It pulls the
binary out of the tagged artifact image with a single COPY --from, and that
artifact image is the only thing the two recipes share.

`render_dockerfile` stitches both into one standalone file for people who
want to run `docker build` by hand. In that form the version falls back to
running `git describe` inside the container, which needs `.git` in the
build context.
"""

from shipyard.build.recipe import ImageRecipe

# Stage names, in build order.
DEPS_STAGE = "deps"
SOURCE_STAGE = "source"
STAMPED_STAGE = "stamped"
COMPILED_STAGE = "compiled"
RUNTIME_BASE_STAGE = "runtime-base"
RUNTIME_STAGE = "runtime"
RELEASE_STAGE = "release"

COMPILE_STAGES: tuple[str, ...] = (DEPS_STAGE, SOURCE_STAGE, STAMPED_STAGE, COMPILED_STAGE)
RUNTIME_STAGES: tuple[str, ...] = (RUNTIME_BASE_STAGE, RUNTIME_STAGE, RELEASE_STAGE)

BUILDER_IMAGE_ARG = "BUILDER_IMAGE"
VERSION_TAG_ARG = "VERSION_TAG"

_ARTIFACT_ALIAS = "artifact"


def render_compile_recipe(recipe: ImageRecipe, builder_image: str) -> str:
    """Dockerfile for the compile stage, parameterized on the builder image."""
    packages = " ".join(recipe.build_packages)
    return (
        f"ARG {BUILDER_IMAGE_ARG}={builder_image}\n"
        f"FROM ${{{BUILDER_IMAGE_ARG}}} AS {DEPS_STAGE}\n"
        f"RUN apk add --no-cache {packages}\n"
        f"\n"
        f"FROM {DEPS_STAGE} AS {SOURCE_STAGE}\n"
        f"WORKDIR {recipe.workdir}\n"
        f"COPY . .\n"
        f"\n"
        f"FROM {SOURCE_STAGE} AS {STAMPED_STAGE}\n"
        f"ARG {VERSION_TAG_ARG}\n"
        f'RUN version="${{{VERSION_TAG_ARG}:-$(git describe --tag)}}" \\\n'
        f'    && test -n "$version" \\\n'
        f"    && printf 'pub const VERSION: &str = \"%s\";\\n' \"$version\" > \"{recipe.version_file}\"\n"
        f"\n"
        f"FROM {STAMPED_STAGE} AS {COMPILED_STAGE}\n"
        f"RUN cargo build --release --workspace \\\n"
        f"    && cp ./target/release/{recipe.binary_name} {recipe.artifact_path}\n"
    )


def render_runtime_recipe(recipe: ImageRecipe, artifact_source: str) -> str:
    """
    Dockerfile for the runtime stage.

    `artifact_source` is either the tag of the artifact image (pipeline
    builds) or the compiled stage's name (standalone Dockerfile).
    """
    packages = " ".join(recipe.runtime_packages)
    return (
        f"FROM {artifact_source} AS {_ARTIFACT_ALIAS}\n"
        f"\n"
        f"FROM {recipe.runtime_image} AS {RUNTIME_BASE_STAGE}\n"
        f"RUN apk add --no-cache {packages}\n"
        f"\n"
        f"FROM {RUNTIME_BASE_STAGE} AS {RUNTIME_STAGE}\n"
        f"RUN addgroup -S -g {recipe.gid} {recipe.group} \\\n"
        f'    && adduser -S -H -D -G {recipe.group} -u {recipe.uid} -g "" {recipe.user}\n'
        f"\n"
        f"FROM {RUNTIME_STAGE} AS {RELEASE_STAGE}\n"
        f"COPY --from={_ARTIFACT_ALIAS} --chown={recipe.user}:{recipe.group} "
        f"{recipe.artifact_path} {recipe.install_path}\n"
        f"USER {recipe.user}\n"
        f"EXPOSE {recipe.exposed_port}\n"
        f'CMD ["{recipe.install_path}"]\n'
    )


def render_dockerfile(recipe: ImageRecipe, builder_image: str) -> str:
    """Both recipes as a single multi-stage Dockerfile."""
    return (
        render_compile_recipe(recipe, builder_image)
        + "\n"
        + render_runtime_recipe(recipe, COMPILED_STAGE)
    )
