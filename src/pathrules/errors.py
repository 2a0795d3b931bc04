"""
Exception hierarchy for pathrules.

All pathrules exceptions inherit from PathRulesError, allowing callers to
catch every library-specific exception with a single except clause.

Exception Categories:
    - InvalidPatternError: A rule pattern is malformed (construction time)
    - UnboundVariableError: A guard references a variable its pattern never binds
    - RulesLoadError: A rules document could not be read or validated
    - InvalidPathError: A request path is malformed (evaluation time)
    - PermissionDeniedError: An enforced operation was denied

Configuration errors are fatal to matcher construction and indicate a bug
in the rules. Request errors indicate a malformed request and are never
turned into an allow or deny decision.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Configuration errors: 1xxx
ERROR_INVALID_PATTERN = 1001
ERROR_UNBOUND_VARIABLE = 1002
ERROR_RULES_LOAD = 1003

# Request errors: 2xxx
ERROR_INVALID_PATH = 2001

# Authorization errors: 3xxx
ERROR_PERMISSION_DENIED = 3001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class PathRulesError(Exception):
    """
    Base exception for all pathrules errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class InvalidPatternError(PathRulesError, ValueError):
    """
    Raised when a rule pattern cannot be compiled.

    Covers empty patterns, a recursive capture anywhere but the last
    segment, malformed segment syntax and duplicated capture names.

    Attributes:
        pattern: The offending pattern text
        reason: What is wrong with it
    """

    pattern: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Invalid pattern {self.pattern!r}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_INVALID_PATTERN
        self.context.update({
            "pattern": self.pattern,
            "reason": self.reason,
        })


@dataclass
class UnboundVariableError(PathRulesError):
    """
    Raised when a guard references a capture variable its rule never binds.

    Attributes:
        variable: The unbound variable name
        pattern: Text of the rule's pattern
        bound: Variables the pattern does bind
    """

    variable: str = ""
    pattern: str = ""
    bound: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.message:
            self.message = (
                f"Guard references unbound variable {self.variable!r} "
                f"in rule {self.pattern!r}"
            )
        if self.code == 0:
            self.code = ERROR_UNBOUND_VARIABLE
        if not self.suggestion:
            if self.bound:
                self.suggestion = f"Use one of: {', '.join(self.bound)}"
            else:
                self.suggestion = "Add a {name} capture to the pattern"
        self.context.update({
            "variable": self.variable,
            "pattern": self.pattern,
            "bound": self.bound,
        })


@dataclass
class RulesLoadError(PathRulesError):
    """
    Raised when a rules document cannot be parsed or validated.

    Attributes:
        source: File path or "<string>"
        underlying_error: The YAML or validation error text
    """

    source: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Failed to load rules from {self.source}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_RULES_LOAD
        self.context.update({
            "source": self.source,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Request Errors
# =============================================================================


@dataclass
class InvalidPathError(PathRulesError, ValueError):
    """
    Raised when a request path is empty or has an empty segment.

    Attributes:
        path: The path as supplied by the caller
        reason: What is wrong with it
    """

    path: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Invalid path {self.path!r}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_INVALID_PATH
        self.context.update({
            "path": self.path,
            "reason": self.reason,
        })


# =============================================================================
# Authorization Errors
# =============================================================================


@dataclass
class PermissionDeniedError(PathRulesError):
    """
    Raised by the enforcer when an operation is not allowed.

    Attributes:
        operation: "read" or "write"
        path: The resource path that was requested
        reason: Why the rules denied the operation
        rule: Index of the rule that decided, if any
    """

    operation: str = ""
    path: str = ""
    reason: str = ""
    rule: int | None = None

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Permission denied: {self.operation} {self.path}"
            if self.reason:
                self.message += f" ({self.reason})"
        if self.code == 0:
            self.code = ERROR_PERMISSION_DENIED
        self.context.update({
            "operation": self.operation,
            "path": self.path,
            "reason": self.reason,
            "rule": self.rule,
        })
