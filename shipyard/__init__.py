# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
shipyard: release image builder and lint remediation for a cargo workspace.

Two independent workflows, both driven from the `shipyard` CLI:

  build: compile in a toolchain image, stamp the git version, and ship the
         binary alone in a minimal, non-root runtime image
  lint: clippy --fix with a fixed rule table, then rustfmt

They share logging and error handling and nothing else.
"""

__version__ = "0.1.0"
