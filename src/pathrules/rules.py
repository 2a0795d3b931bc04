"""
Rule definitions.

A Rule ties a compiled PathPattern to the operations it governs and the
guard that must pass for those operations to be allowed. Rules are frozen:
once built they cannot be changed, so a matcher holding them needs no
locking.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from pathrules.errors import UnboundVariableError
from pathrules.guards import Guard
from pathrules.patterns import PathPattern, compile_pattern
from pathrules.schema import Operation


@dataclass(frozen=True)
class Rule:
    """
    A single path rule.

    Construction compiles a textual pattern and normalizes `operations`,
    so both of these are accepted:

        Rule("users/{userId}", "write", uid_equals("userId"))
        Rule(PathPattern.parse("/users/{userId}"), [Operation.READ, Operation.WRITE], guard)

    Raises:
        InvalidPatternError: If the pattern is malformed
        UnboundVariableError: If the guard reads a variable the pattern doesn't bind
        ValueError: If `operations` is empty or names an unknown operation

    Attributes:
        pattern: Compiled path pattern
        operations: Operations this rule governs
        guard: Predicate that must pass for the rule to allow
        name: Optional human-readable name
    """

    pattern: PathPattern
    operations: frozenset[Operation]
    guard: Guard
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", compile_pattern(self.pattern))
        object.__setattr__(self, "operations", _normalize_operations(self.operations))

        bound = self.pattern.variables
        for variable in sorted(self.guard.variables):
            if variable not in bound:
                raise UnboundVariableError(
                    variable=variable,
                    pattern=str(self.pattern),
                    bound=sorted(bound),
                )

    def governs(self, operation: Operation) -> bool:
        return operation in self.operations

    def describe(self) -> str:
        ops = ", ".join(op.value for op in sorted(self.operations, key=lambda o: o.value))
        return f"match {self.pattern} allow {ops} if {self.guard.describe()}"


def _normalize_operations(
    operations: Operation | str | Iterable[Operation | str],
) -> frozenset[Operation]:
    if isinstance(operations, (Operation, str)):
        operations = [operations]
    result = frozenset(Operation(op) for op in operations)
    if not result:
        msg = "A rule must govern at least one operation"
        raise ValueError(msg)
    return result
