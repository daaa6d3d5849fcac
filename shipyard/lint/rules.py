# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The lint rule table.

This is a literal, ordered list compiled into the tool. It is not read from
a config file and there is no flag to change it: lint results are only
comparable across runs and machines if every run applies exactly the same
rules, and the analyzer's own defaults drift between toolchain releases.

Order matters. The analyzer applies level flags left to right, so a later
entry overrides an earlier group (`-A clippy::uninlined_format_args` after
`-D clippy::style` carves that one lint back out of the style group).
"""

from dataclasses import dataclass
from enum import Enum


class RuleLevel(str, Enum):
    DENY = "deny"
    ALLOW = "allow"

    @property
    def flag(self) -> str:
        return "-D" if self is RuleLevel.DENY else "-A"


@dataclass(frozen=True)
class Rule:
    """One analyzer lint or lint group and what to do about it."""

    name: str
    level: RuleLevel
    description: str

    def as_flags(self) -> tuple[str, str]:
        return (self.level.flag, self.name)


@dataclass(frozen=True)
class RuleSet:
    """An ordered collection of rules with no duplicate names."""

    rules: tuple[Rule, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for rule in self.rules:
            if rule.name in seen:
                raise ValueError(f"Rule listed twice: {rule.name}")
            seen.add(rule.name)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    @property
    def denied(self) -> tuple[Rule, ...]:
        return tuple(rule for rule in self.rules if rule.level is RuleLevel.DENY)

    @property
    def allowed(self) -> tuple[Rule, ...]:
        return tuple(rule for rule in self.rules if rule.level is RuleLevel.ALLOW)

    def analyzer_flags(self) -> list[str]:
        """Flags for the analyzer, e.g. ['-D', 'warnings', ..., '-A', 'clippy::uninlined_format_args']."""
        flags: list[str] = []
        for rule in self.rules:
            flags.extend(rule.as_flags())
        return flags


DEFAULT_RULE_SET = RuleSet(
    rules=(
        Rule("warnings", RuleLevel.DENY, "Every compiler warning"),
        Rule("deprecated", RuleLevel.DENY, "Use of deprecated APIs"),
        Rule("clippy::perf", RuleLevel.DENY, "Performance anti-patterns"),
        Rule("clippy::complexity", RuleLevel.DENY, "Needlessly complex code"),
        Rule("clippy::style", RuleLevel.DENY, "Style violations"),
        Rule("clippy::correctness", RuleLevel.DENY, "Outright wrong code"),
        Rule("clippy::suspicious", RuleLevel.DENY, "Code that is most likely wrong"),
        Rule("clippy::dbg_macro", RuleLevel.DENY, "Leftover dbg! debug prints"),
        Rule("clippy::inefficient_to_string", RuleLevel.DENY, "to_string on &&str and friends"),
        Rule("clippy::items-after-statements", RuleLevel.DENY, "Declarations after statements"),
        Rule("clippy::implicit_clone", RuleLevel.DENY, "to_owned/to_vec used as clone"),
        Rule("clippy::wildcard_imports", RuleLevel.DENY, "use foo::* imports"),
        Rule("clippy::cast_lossless", RuleLevel.DENY, "as casts that could be From"),
        Rule("clippy::manual_string_new", RuleLevel.DENY, "\"\".to_string() instead of String::new()"),
        Rule(
            "clippy::redundant_closure_for_method_calls",
            RuleLevel.DENY,
            "Closures that only call a method",
        ),
        Rule("clippy::unused_self", RuleLevel.DENY, "Methods that never use self"),
        Rule("clippy::uninlined_format_args", RuleLevel.ALLOW, "format!(\"{}\", x) is fine"),
    )
)
