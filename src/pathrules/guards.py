"""
Guard predicates.

A guard decides whether a rule that matched the request path actually
permits the operation. Guards are pure: they look only at the request's
AuthContext and the capture bindings of the rule that matched.

Every guard also reports the capture variables it reads, so a rule can
reject a guard referencing a variable its own pattern never binds before
any request is evaluated.

Usage:
    guard = is_authenticated() & uid_equals("userId")
    guard(AuthContext.for_user("alice"), {"userId": "alice"})  # True
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pathrules.schema import AuthContext

Bindings = Mapping[str, str]


class Guard(ABC):
    """Base class for guard predicates."""

    @abstractmethod
    def evaluate(self, auth: AuthContext, bindings: Bindings) -> bool:
        """Return True if the request is permitted."""

    @property
    def variables(self) -> frozenset[str]:
        """Capture variables this guard reads."""
        return frozenset()

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable form, used in listings."""

    def __call__(self, auth: AuthContext, bindings: Bindings) -> bool:
        return self.evaluate(auth, bindings)

    def __and__(self, other: "Guard") -> "Guard":
        return all_of(self, other)

    def __or__(self, other: "Guard") -> "Guard":
        return any_of(self, other)

    def __invert__(self) -> "Guard":
        return negate(self)

    def __str__(self) -> str:
        return self.describe()


# =============================================================================
# Leaf Guards
# =============================================================================


@dataclass(frozen=True)
class Constant(Guard):
    value: bool

    def evaluate(self, auth: AuthContext, bindings: Bindings) -> bool:
        return self.value

    def describe(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class IsAuthenticated(Guard):
    def evaluate(self, auth: AuthContext, bindings: Bindings) -> bool:
        return auth.is_authenticated

    def describe(self) -> str:
        return "authenticated"


@dataclass(frozen=True)
class UidEquals(Guard):
    """True when the caller's uid equals the value bound to `variable`."""

    variable: str

    def evaluate(self, auth: AuthContext, bindings: Bindings) -> bool:
        if not auth.is_authenticated or auth.uid is None:
            return False
        return bindings.get(self.variable) == auth.uid

    @property
    def variables(self) -> frozenset[str]:
        return frozenset({self.variable})

    def describe(self) -> str:
        return f"uid == {self.variable}"


@dataclass(frozen=True)
class ClaimEquals(Guard):
    """True when an authenticated caller's token claim equals `value`."""

    claim: str
    value: Any

    def evaluate(self, auth: AuthContext, bindings: Bindings) -> bool:
        if not auth.is_authenticated or self.claim not in auth.claims:
            return False
        return auth.claims[self.claim] == self.value

    def describe(self) -> str:
        return f"claims.{self.claim} == {self.value!r}"


@dataclass(frozen=True)
class Predicate(Guard):
    """
    Wraps a plain callable `fn(auth, bindings) -> bool`.

    `reads` must list every capture variable the callable looks up, since
    there is no way to discover that from the function itself.
    """

    fn: Callable[[AuthContext, Bindings], bool]
    reads: frozenset[str] = frozenset()
    label: str = ""

    def evaluate(self, auth: AuthContext, bindings: Bindings) -> bool:
        return bool(self.fn(auth, bindings))

    @property
    def variables(self) -> frozenset[str]:
        return self.reads

    def describe(self) -> str:
        return self.label or getattr(self.fn, "__name__", "predicate")


# =============================================================================
# Combinators
# =============================================================================


@dataclass(frozen=True)
class AllOf(Guard):
    guards: tuple[Guard, ...]

    def evaluate(self, auth: AuthContext, bindings: Bindings) -> bool:
        return all(g.evaluate(auth, bindings) for g in self.guards)

    @property
    def variables(self) -> frozenset[str]:
        return frozenset().union(*(g.variables for g in self.guards))

    def describe(self) -> str:
        return " && ".join(_wrap(g) for g in self.guards) or "true"


@dataclass(frozen=True)
class AnyOf(Guard):
    guards: tuple[Guard, ...]

    def evaluate(self, auth: AuthContext, bindings: Bindings) -> bool:
        return any(g.evaluate(auth, bindings) for g in self.guards)

    @property
    def variables(self) -> frozenset[str]:
        return frozenset().union(*(g.variables for g in self.guards))

    def describe(self) -> str:
        return " || ".join(_wrap(g) for g in self.guards) or "false"


@dataclass(frozen=True)
class Not(Guard):
    guard: Guard

    def evaluate(self, auth: AuthContext, bindings: Bindings) -> bool:
        return not self.guard.evaluate(auth, bindings)

    @property
    def variables(self) -> frozenset[str]:
        return self.guard.variables

    def describe(self) -> str:
        return f"!{_wrap(self.guard)}"


def _wrap(guard: Guard) -> str:
    if isinstance(guard, (AllOf, AnyOf)) and len(guard.guards) > 1:
        return f"({guard.describe()})"
    return guard.describe()


# =============================================================================
# Public constructors
# =============================================================================


def allow_all() -> Guard:
    """Guard that always passes (`if true`)."""
    return Constant(True)


def deny_all() -> Guard:
    """Guard that never passes (`if false`)."""
    return Constant(False)


def is_authenticated() -> Guard:
    """Passes for any request carrying credentials (`request.auth != null`)."""
    return IsAuthenticated()


def uid_equals(variable: str) -> Guard:
    """Passes when the caller's uid equals the capture bound to `variable`."""
    return UidEquals(variable)


def claim_equals(claim: str, value: Any) -> Guard:
    return ClaimEquals(claim, value)


def all_of(*guards: Guard) -> Guard:
    """
    Logical AND. Nested AllOf guards are flattened.

    Raises:
        ValueError: If no guards are given
    """
    if not guards:
        msg = "all_of expects at least one guard"
        raise ValueError(msg)
    flat: list[Guard] = []
    for g in guards:
        if isinstance(g, AllOf):
            flat.extend(g.guards)
        else:
            flat.append(g)
    return AllOf(tuple(flat))


def any_of(*guards: Guard) -> Guard:
    """Logical OR. Nested AnyOf guards are flattened. Needs at least one guard."""
    if not guards:
        msg = "any_of expects at least one guard"
        raise ValueError(msg)
    flat: list[Guard] = []
    for g in guards:
        if isinstance(g, AnyOf):
            flat.extend(g.guards)
        else:
            flat.append(g)
    return AnyOf(tuple(flat))


def negate(guard: Guard) -> Guard:
    return Not(guard)


def predicate(
    fn: Callable[[AuthContext, Bindings], bool],
    variables: tuple[str, ...] | list[str] = (),
    label: str = "",
) -> Guard:
    """Wrap a plain callable as a guard."""
    return Predicate(fn, frozenset(variables), label)
