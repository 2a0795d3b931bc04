"""
Enforcement for request dispatchers.

The matcher only decides; a dispatcher sitting in front of the database
has to act on the decision. Enforcer bundles a matcher with an injected
AuthProvider so the dispatcher never has to reach for ambient identity
state.

Usage:
    enforcer = Enforcer(matcher, StaticAuthProvider(AuthContext.for_user("alice")))
    enforcer.enforce("write", "users/alice")   # returns the Decision
    enforcer.enforce("write", "users/bob")     # raises PermissionDeniedError
"""

import logging
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from pathrules.errors import PermissionDeniedError
from pathrules.matcher import PathRuleMatcher
from pathrules.schema import AuthContext, Decision, Operation

logger = logging.getLogger(__name__)


@runtime_checkable
class AuthProvider(Protocol):
    """Supplies the identity of the current request."""

    def current_auth(self) -> AuthContext:
        ...


class StaticAuthProvider:
    """AuthProvider that always returns the same context."""

    def __init__(self, auth: AuthContext | None = None) -> None:
        self._auth = auth or AuthContext.anonymous()

    def current_auth(self) -> AuthContext:
        return self._auth


class Enforcer:
    """
    Evaluates operations for the current caller and rejects denied ones.

    Attributes:
        matcher: Rules to evaluate against
        auth_provider: Source of the caller's AuthContext
    """

    def __init__(self, matcher: PathRuleMatcher, auth_provider: AuthProvider) -> None:
        self.matcher = matcher
        self.auth_provider = auth_provider

    def check(self, operation: Operation | str, path: str | Sequence[str]) -> Decision:
        """Evaluate without raising on denial."""
        return self.matcher.evaluate(operation, path, self.auth_provider.current_auth())

    def enforce(self, operation: Operation | str, path: str | Sequence[str]) -> Decision:
        """
        Evaluate and reject denied operations.

        Returns:
            The allowing Decision

        Raises:
            PermissionDeniedError: If the rules deny the operation
            InvalidPathError: If the path is malformed
        """
        auth = self.auth_provider.current_auth()
        decision = self.matcher.evaluate(operation, path, auth)
        if decision.allowed:
            return decision

        op = Operation(operation)
        shown = path if isinstance(path, str) else "/".join(path)
        logger.info(
            "Denied %s %s for uid=%s: %s",
            op.value,
            shown,
            auth.uid,
            decision.reason,
        )
        raise PermissionDeniedError(
            operation=op.value,
            path=shown,
            reason=decision.reason,
            rule=decision.matched_rule,
        )
