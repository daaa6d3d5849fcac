# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release build pipeline: build context, version stamping, recipe rendering,
the build state machine and the two-stage ReleaseBuilder.
"""
