# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Lint remediation: the compiled-in rule table, workspace discovery, analyzer
output parsing and the fix-then-format LintRemediator.
"""
