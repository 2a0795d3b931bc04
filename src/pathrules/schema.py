"""
Schema definitions for pathrules.

This module defines the Pydantic models used throughout pathrules:
- Operation/Precedence: Enumerations for request kinds and rule ordering
- AuthContext: Identity of the caller, supplied per request
- Decision: The result of evaluating one operation
- RulesDocument/RuleEntry: The declarative rules file format

Design Decisions:
    - Request-time models are immutable (frozen=True)
    - Document models reject unknown keys so typos fail loudly
    - Guards are written as structured data, never as free-text expressions
"""

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    field_validator,
    model_validator,
)


# =============================================================================
# Enums
# =============================================================================


class Operation(str, Enum):
    """Kind of database operation being authorized."""

    READ = "read"
    WRITE = "write"


class Precedence(str, Enum):
    """
    How overlapping rules are resolved.

    CONTINUE: the first rule that matches the path and whose guard passes
    wins; a matching rule with a failing guard hands over to the next one.

    FIRST_MATCH: the first rule that matches the path decides, whatever its
    guard returns.
    """

    CONTINUE = "continue"
    FIRST_MATCH = "first_match"


# =============================================================================
# Request Models
# =============================================================================


class AuthContext(BaseModel):
    """
    Identity information for a single request.

    Attributes:
        is_authenticated: Whether the request carries a verified identity
        uid: User id of the authenticated caller
        claims: Extra token claims (e.g., {"admin": True})
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    is_authenticated: bool = Field(
        default=False,
        description="Whether the request carries a verified identity",
    )
    uid: str | None = Field(
        default=None,
        description="User id of the authenticated caller",
    )
    claims: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra token claims",
    )

    @model_validator(mode="after")
    def check_uid(self) -> "AuthContext":
        """An authenticated context must name its user."""
        if self.is_authenticated and not self.uid:
            msg = "Authenticated context requires a uid"
            raise ValueError(msg)
        return self

    @classmethod
    def anonymous(cls) -> "AuthContext":
        """Context for a request without credentials."""
        return cls()

    @classmethod
    def for_user(cls, uid: str, **claims: Any) -> "AuthContext":
        """Context for an authenticated user."""
        return cls(is_authenticated=True, uid=uid, claims=claims)


class Decision(BaseModel):
    """
    Result of evaluating an operation against the rules.

    Attributes:
        allowed: Whether the operation is permitted
        matched_rule: Registration index of the rule that decided, if any
        rule_name: Name of that rule, if it has one
        reason: Human-readable explanation of the decision
        bindings: Capture values of the deciding rule
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool = Field(..., description="Whether the operation is permitted")
    matched_rule: int | None = Field(
        default=None,
        description="Index of the rule that decided",
    )
    rule_name: str | None = Field(default=None, description="Name of the deciding rule")
    reason: str = Field(default="", description="Explanation of the decision")
    bindings: dict[str, str] = Field(
        default_factory=dict,
        description="Capture values of the deciding rule",
    )

    @classmethod
    def allow(
        cls,
        reason: str,
        rule: int | None = None,
        rule_name: str | None = None,
        bindings: dict[str, str] | None = None,
    ) -> "Decision":
        """Create an ALLOW decision."""
        return cls(
            allowed=True,
            matched_rule=rule,
            rule_name=rule_name,
            reason=reason,
            bindings=bindings or {},
        )

    @classmethod
    def deny(
        cls,
        reason: str,
        rule: int | None = None,
        rule_name: str | None = None,
        bindings: dict[str, str] | None = None,
    ) -> "Decision":
        """Create a DENY decision."""
        return cls(
            allowed=False,
            matched_rule=rule,
            rule_name=rule_name,
            reason=reason,
            bindings=bindings or {},
        )


# =============================================================================
# Rules Document Models
# =============================================================================


class RuleEntry(BaseModel):
    """
    One rule in a rules document.

    Attributes:
        match: Path pattern, e.g. "/users/{userId}"
        allow: Operations the rule governs
        guard: Guard specification (YAML key "if")
        name: Optional human-readable name
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    match: str = Field(..., min_length=1, description="Path pattern")
    allow: list[Operation] = Field(..., min_length=1, description="Governed operations")
    # Strict so that `if: 1` is rejected instead of becoming `if: true`
    guard: StrictStr | StrictBool | dict[str, Any] = Field(
        ...,
        alias="if",
        description="Guard specification",
    )
    name: str | None = Field(default=None, description="Rule name")

    @field_validator("allow", mode="before")
    @classmethod
    def coerce_single_operation(cls, v: Any) -> Any:
        """Accept `allow: read` as shorthand for `allow: [read]`."""
        if isinstance(v, str):
            return [v]
        return v


class RulesDocument(BaseModel):
    """
    A complete rules document.

    Attributes:
        rules_version: Format version, kept for compatibility checks
        precedence: How overlapping rules are resolved
        rules: Ordered rule entries
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    rules_version: str = Field(default="2", description="Rules format version")
    precedence: Precedence = Field(
        default=Precedence.CONTINUE,
        description="How overlapping rules are resolved",
    )
    rules: list[RuleEntry] = Field(default_factory=list, description="Ordered rules")

    @field_validator("rules_version", mode="before")
    @classmethod
    def stringify_version(cls, v: Any) -> Any:
        """YAML reads an unquoted 2 as an int."""
        if isinstance(v, int):
            return str(v)
        return v


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_document(path: Path | str) -> RulesDocument:
    """
    Load a rules document from a YAML file.

    The file is read as bytes so PyYAML detects the encoding itself and
    reports undecodable input as a YAMLError.

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the file is not valid YAML or not valid UTF-8/16
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open("rb") as f:
        data = yaml.safe_load(f)

    return RulesDocument.model_validate(data or {})


def load_document_from_string(content: str) -> RulesDocument:
    """Load a rules document from a YAML string."""
    data = yaml.safe_load(content)
    return RulesDocument.model_validate(data or {})
