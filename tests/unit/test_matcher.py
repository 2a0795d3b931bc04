"""
Unit tests for the PathRuleMatcher.

Tests cover:
- Deny-by-default behavior
- Owner-only rules
- Recursive capture coverage
- Precedence (continue past failed guards vs. first match)
- Operation filtering
- Purity and idempotence
- Invalid request paths
"""

import pytest

from pathrules.errors import InvalidPathError
from pathrules.guards import allow_all, deny_all, is_authenticated, uid_equals
from pathrules.matcher import PathRuleMatcher
from pathrules.rules import Rule
from pathrules.schema import AuthContext, Operation, Precedence


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def owner_matcher() -> PathRuleMatcher:
    """Single owner-only rule on users/{userId}."""
    return PathRuleMatcher([
        Rule("users/{userId}", ["read", "write"], uid_equals("userId")),
    ])


@pytest.fixture
def overlapping_rules() -> list[Rule]:
    """Owner rule followed by a catch-all authenticated rule."""
    return [
        Rule("users/{uid}", ["read", "write"], uid_equals("uid")),
        Rule("{document=**}", ["read", "write"], is_authenticated()),
    ]


# =============================================================================
# Basic Matcher Tests
# =============================================================================


class TestMatcherBasics:
    """Basic matcher tests."""

    def test_create_matcher(self, overlapping_rules: list[Rule]) -> None:
        matcher = PathRuleMatcher(overlapping_rules)
        assert len(matcher) == 2
        assert matcher.rules == tuple(overlapping_rules)
        assert list(matcher) == overlapping_rules
        assert matcher.precedence is Precedence.CONTINUE

    def test_empty_matcher_denies(self, alice: AuthContext) -> None:
        """No rules means nothing is allowed."""
        decision = PathRuleMatcher([]).evaluate("read", "users/alice", alice)
        assert decision.allowed is False
        assert decision.matched_rule is None

    def test_precedence_from_string(self) -> None:
        matcher = PathRuleMatcher([], precedence="first_match")
        assert matcher.precedence is Precedence.FIRST_MATCH

    def test_unknown_operation(self, owner_matcher: PathRuleMatcher, alice: AuthContext) -> None:
        with pytest.raises(ValueError):
            owner_matcher.evaluate("delete", "users/alice", alice)


class TestDenyByDefault:
    """Paths that match nothing are denied."""

    def test_no_pattern_matches(self, owner_matcher: PathRuleMatcher, alice: AuthContext) -> None:
        decision = owner_matcher.evaluate("read", "posts/1", alice)
        assert decision.allowed is False
        assert decision.matched_rule is None
        assert "No rule allows read on /posts/1" in decision.reason

    def test_unauthenticated_against_auth_rules(self, anonymous: AuthContext) -> None:
        """Every guard requires auth, so anonymous requests are always denied."""
        matcher = PathRuleMatcher([
            Rule("posts/{postId}", ["read", "write"], is_authenticated()),
            Rule("users/{userId}", ["read", "write"], is_authenticated() & uid_equals("userId")),
            Rule("analytics/{document=**}", ["read", "write"], is_authenticated()),
        ])
        for op in Operation:
            for path in ["posts/1", "users/alice", "analytics", "analytics/a/b", "other/x"]:
                assert matcher.evaluate(op, path, anonymous).allowed is False


class TestOwnerRule:
    """users/{userId} guarded by uid_equals(userId)."""

    @pytest.mark.parametrize("op", ["read", "write"])
    def test_owner_allowed(self, owner_matcher: PathRuleMatcher, alice: AuthContext, op: str) -> None:
        decision = owner_matcher.evaluate(op, ["users", "alice"], alice)
        assert decision.allowed is True
        assert decision.matched_rule == 0
        assert decision.bindings == {"userId": "alice"}

    @pytest.mark.parametrize("op", ["read", "write"])
    def test_other_user_denied(self, owner_matcher: PathRuleMatcher, bob: AuthContext, op: str) -> None:
        decision = owner_matcher.evaluate(op, ["users", "alice"], bob)
        assert decision.allowed is False


class TestRecursiveCapture:
    """analytics/{document=**} covers the collection and everything below."""

    @pytest.mark.parametrize(
        "path",
        [["analytics"], ["analytics", "x"], ["analytics", "x", "y"]],
    )
    def test_matches_identically(self, path: list[str], alice: AuthContext) -> None:
        matcher = PathRuleMatcher([
            Rule("analytics/{document=**}", ["read", "write"], is_authenticated()),
        ])
        decision = matcher.evaluate("read", path, alice)
        assert decision.allowed is True
        assert decision.matched_rule == 0


# =============================================================================
# Precedence
# =============================================================================


class TestContinuePrecedence:
    """Default policy: a failed guard hands over to the next matching rule."""

    def test_owner_write(self, overlapping_rules: list[Rule], alice: AuthContext) -> None:
        decision = PathRuleMatcher(overlapping_rules).evaluate("write", ["users", "alice"], alice)
        assert decision.allowed is True
        assert decision.matched_rule == 0

    def test_falls_through_to_catch_all(self, overlapping_rules: list[Rule], alice: AuthContext) -> None:
        decision = PathRuleMatcher(overlapping_rules).evaluate("write", ["users", "bob"], alice)
        assert decision.allowed is True
        assert decision.matched_rule == 1
        assert decision.bindings == {"document": "users/bob"}

    def test_all_guards_fail(self, overlapping_rules: list[Rule], anonymous: AuthContext) -> None:
        decision = PathRuleMatcher(overlapping_rules).evaluate("write", ["users", "bob"], anonymous)
        assert decision.allowed is False
        assert decision.matched_rule is None


class TestFirstMatchPrecedence:
    """Alternative policy: the first structural match decides."""

    def test_owner_write(self, overlapping_rules: list[Rule], alice: AuthContext) -> None:
        matcher = PathRuleMatcher(overlapping_rules, precedence=Precedence.FIRST_MATCH)
        decision = matcher.evaluate("write", ["users", "alice"], alice)
        assert decision.allowed is True
        assert decision.matched_rule == 0

    def test_failed_guard_decides(self, overlapping_rules: list[Rule], alice: AuthContext) -> None:
        matcher = PathRuleMatcher(overlapping_rules, precedence=Precedence.FIRST_MATCH)
        decision = matcher.evaluate("write", ["users", "bob"], alice)
        assert decision.allowed is False
        assert decision.matched_rule == 0
        assert "Guard failed" in decision.reason

    def test_other_operation_rules_skipped(self, alice: AuthContext) -> None:
        """Rules for other operations never count as a match."""
        matcher = PathRuleMatcher(
            [
                Rule("posts/{id}", "read", deny_all()),
                Rule("posts/{id}", "write", allow_all()),
            ],
            precedence=Precedence.FIRST_MATCH,
        )
        assert matcher.evaluate("write", "posts/1", alice).matched_rule == 1


# =============================================================================
# Operation Filtering
# =============================================================================


class TestOperationFiltering:
    """Rules only govern the operations they list."""

    def test_read_only_rule(self, alice: AuthContext) -> None:
        matcher = PathRuleMatcher([Rule("posts/{id}", "read", is_authenticated())])
        assert matcher.evaluate("read", "posts/1", alice).allowed is True
        assert matcher.evaluate("write", "posts/1", alice).allowed is False

    def test_split_read_write(self, alice: AuthContext, bob: AuthContext) -> None:
        """Anyone signed in may read a profile, only the owner may write it."""
        matcher = PathRuleMatcher([
            Rule("profiles/{uid}", "read", is_authenticated(), name="read-profiles"),
            Rule("profiles/{uid}", "write", uid_equals("uid"), name="own-profile"),
        ])
        assert matcher.evaluate("read", "profiles/alice", bob).allowed is True
        assert matcher.evaluate("write", "profiles/alice", bob).allowed is False
        decision = matcher.evaluate("write", "profiles/alice", alice)
        assert decision.allowed is True
        assert decision.rule_name == "own-profile"


# =============================================================================
# Purity
# =============================================================================


class TestPurity:
    """evaluate is a pure function of its inputs."""

    def test_idempotent(self, overlapping_rules: list[Rule], alice: AuthContext) -> None:
        matcher = PathRuleMatcher(overlapping_rules)
        first = matcher.evaluate("write", "users/bob", alice)
        second = matcher.evaluate("write", "users/bob", alice)
        assert first == second

    def test_string_and_sequence_paths_agree(self, overlapping_rules: list[Rule], alice: AuthContext) -> None:
        matcher = PathRuleMatcher(overlapping_rules)
        assert matcher.evaluate("read", "/users/alice", alice) == matcher.evaluate(
            "read", ["users", "alice"], alice
        )

    def test_rules_unchanged(self, overlapping_rules: list[Rule], alice: AuthContext) -> None:
        matcher = PathRuleMatcher(overlapping_rules)
        before = matcher.rules
        matcher.evaluate("write", "users/bob", alice)
        assert matcher.rules == before

    def test_decision_frozen(self, owner_matcher: PathRuleMatcher, alice: AuthContext) -> None:
        decision = owner_matcher.evaluate("read", "users/alice", alice)
        with pytest.raises(Exception):
            decision.allowed = False  # type: ignore[misc]


# =============================================================================
# Invalid Paths
# =============================================================================


class TestInvalidPaths:
    """Malformed paths raise instead of producing a decision."""

    @pytest.mark.parametrize("path", ["", [], "users//alice", ["users", ""]])
    def test_invalid_path(self, owner_matcher: PathRuleMatcher, alice: AuthContext, path) -> None:
        with pytest.raises(InvalidPathError):
            owner_matcher.evaluate("read", path, alice)

    def test_invalid_path_with_no_rules(self, alice: AuthContext) -> None:
        """Path validation happens even when nothing could match."""
        with pytest.raises(InvalidPathError):
            PathRuleMatcher([]).evaluate("read", "", alice)


# =============================================================================
# Explain
# =============================================================================


class TestExplain:
    """explain reports every rule's reaction."""

    def test_explain(self, alice: AuthContext) -> None:
        matcher = PathRuleMatcher([
            Rule("users/{uid}", "write", uid_equals("uid")),
            Rule("posts/{id}", "write", is_authenticated()),
            Rule("users/{uid}", "read", is_authenticated()),
            Rule("{document=**}", "write", is_authenticated()),
        ])
        traces = matcher.explain("write", "users/bob", alice)
        assert [t.index for t in traces] == [0, 1, 2, 3]

        assert traces[0].matched and traces[0].guard_passed is False
        assert traces[0].bindings == {"uid": "bob"}
        assert traces[1].governs and not traces[1].matched
        assert traces[1].guard_passed is None
        assert traces[2].governs is False
        assert traces[3].guard_passed is True
