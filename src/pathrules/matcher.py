"""
Path rule matcher.

The matcher is the decision point of pathrules. Every simulated database
operation is checked here before the caller lets it through.

Design Principles:
    - Deny-by-default: nothing is allowed unless a rule explicitly allows it
    - Predictable: same inputs always produce the same Decision
    - Immutable: the rule list is fixed at construction, so concurrent
      evaluations share no mutable state

How it works:
    1. Caller passes (operation, path, auth)
    2. The path is split and validated
    3. Rules are scanned in registration order, skipping rules that don't
       govern the operation
    4. The first rule whose pattern matches and whose guard passes allows
       the operation; otherwise the request is denied

Under Precedence.FIRST_MATCH step 4 stops at the first matching pattern
instead, and that rule's guard alone decides.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pathrules.loader import load_rules, load_rules_from_string
from pathrules.patterns import split_path
from pathrules.rules import Rule
from pathrules.schema import AuthContext, Decision, Operation, Precedence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleTrace:
    """
    How one rule reacted to a request, as reported by `explain`.

    Attributes:
        index: Registration index of the rule
        rule: The rule itself
        governs: Whether the rule applies to the requested operation
        matched: Whether the rule's pattern matched the path
        guard_passed: Guard result, None if the guard was not evaluated
        bindings: Capture values when the pattern matched
    """

    index: int
    rule: Rule
    governs: bool
    matched: bool = False
    guard_passed: bool | None = None
    bindings: dict[str, str] = field(default_factory=dict)


class PathRuleMatcher:
    """
    Evaluates operations on hierarchical paths against an ordered rule list.

    Usage:
        matcher = PathRuleMatcher([
            Rule("users/{userId}", ["read", "write"], uid_equals("userId")),
            Rule("{document=**}", ["read", "write"], is_authenticated()),
        ])
        decision = matcher.evaluate("write", "users/alice", AuthContext.for_user("alice"))
        if decision.allowed:
            # let the operation through
        else:
            # reject it

    Attributes:
        precedence: How overlapping rules are resolved
    """

    def __init__(
        self,
        rules: Iterable[Rule],
        precedence: Precedence | str = Precedence.CONTINUE,
    ) -> None:
        """
        Initialize the matcher.

        Args:
            rules: Rules in evaluation order. A rule's index in this
                sequence is its id in decisions.
            precedence: How overlapping rules are resolved
        """
        self._rules: tuple[Rule, ...] = tuple(rules)
        self.precedence = Precedence(precedence)
        logger.debug(
            "Compiled %d rules (precedence=%s)",
            len(self._rules),
            self.precedence.value,
        )

    @classmethod
    def from_file(cls, path: Path | str) -> "PathRuleMatcher":
        """Build a matcher from a YAML rules document."""
        ruleset = load_rules(path)
        return cls(ruleset.rules, precedence=ruleset.precedence)

    @classmethod
    def from_string(cls, content: str) -> "PathRuleMatcher":
        """Build a matcher from YAML rules text."""
        ruleset = load_rules_from_string(content)
        return cls(ruleset.rules, precedence=ruleset.precedence)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def evaluate(
        self,
        operation: Operation | str,
        path: str | Sequence[str],
        auth: AuthContext,
    ) -> Decision:
        """
        Decide whether `operation` on `path` is allowed for `auth`.

        Args:
            operation: "read" or "write"
            path: "users/alice" or ["users", "alice"]
            auth: Identity of the caller

        Returns:
            Decision with the deciding rule index, or matched_rule=None when
            no rule allowed the request

        Raises:
            InvalidPathError: If the path is empty or has an empty segment
            ValueError: If the operation is unknown
        """
        op = Operation(operation)
        segments = split_path(path)
        shown = "/" + "/".join(segments)

        decision = self._decide(op, segments, shown, auth)
        logger.debug(
            "%s %s uid=%s -> %s (rule=%s)",
            op.value,
            shown,
            auth.uid,
            "allow" if decision.allowed else "deny",
            decision.matched_rule,
        )
        return decision

    def _decide(
        self,
        op: Operation,
        segments: tuple[str, ...],
        shown: str,
        auth: AuthContext,
    ) -> Decision:
        for index, rule in enumerate(self._rules):
            if not rule.governs(op):
                continue

            bindings = rule.pattern.match(segments)
            if bindings is None:
                continue

            if rule.guard.evaluate(auth, bindings):
                return Decision.allow(
                    f"Allowed by {rule.pattern}: {rule.guard.describe()}",
                    rule=index,
                    rule_name=rule.name,
                    bindings=bindings,
                )

            if self.precedence is Precedence.FIRST_MATCH:
                return Decision.deny(
                    f"Guard failed for {rule.pattern}: {rule.guard.describe()}",
                    rule=index,
                    rule_name=rule.name,
                    bindings=bindings,
                )

        return Decision.deny(f"No rule allows {op.value} on {shown}")

    def explain(
        self,
        operation: Operation | str,
        path: str | Sequence[str],
        auth: AuthContext,
    ) -> list[RuleTrace]:
        """
        Report how every rule reacts to a request.

        Unlike `evaluate` this does not stop at the deciding rule; guards
        are evaluated for every rule whose pattern matches.
        """
        op = Operation(operation)
        segments = split_path(path)

        traces: list[RuleTrace] = []
        for index, rule in enumerate(self._rules):
            if not rule.governs(op):
                traces.append(RuleTrace(index=index, rule=rule, governs=False))
                continue
            bindings = rule.pattern.match(segments)
            if bindings is None:
                traces.append(RuleTrace(index=index, rule=rule, governs=True))
                continue
            traces.append(
                RuleTrace(
                    index=index,
                    rule=rule,
                    governs=True,
                    matched=True,
                    guard_passed=rule.guard.evaluate(auth, bindings),
                    bindings=bindings,
                )
            )
        return traces
