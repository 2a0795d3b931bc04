"""
pathrules - Path-scoped authorization rules for hierarchical document stores.

pathrules decides whether a read or write on a document path is allowed,
by matching the path against an ordered list of rules and evaluating the
guard of the matching rule. It provides:
- Compiled path patterns with {var} and {var=**} captures
- Guard combinators over the caller's auth context
- Deny-by-default evaluation with explicit precedence
- A YAML rules format and a small CLI for simulating requests

Example usage:
    >>> from pathrules import AuthContext, PathRuleMatcher, Rule, uid_equals
    >>> matcher = PathRuleMatcher([Rule("users/{userId}", ["read", "write"], uid_equals("userId"))])
    >>> matcher.evaluate("read", "users/alice", AuthContext.for_user("alice")).allowed
    True
"""

__version__ = "0.1.0"
__author__ = "pathrules Contributors"

from pathrules.enforce import AuthProvider, Enforcer, StaticAuthProvider
from pathrules.errors import (
    InvalidPathError,
    InvalidPatternError,
    PathRulesError,
    PermissionDeniedError,
    RulesLoadError,
    UnboundVariableError,
)
from pathrules.guards import (
    Guard,
    all_of,
    allow_all,
    any_of,
    claim_equals,
    deny_all,
    is_authenticated,
    negate,
    predicate,
    uid_equals,
)
from pathrules.loader import RuleSet, load_rules, load_rules_from_string
from pathrules.matcher import PathRuleMatcher, RuleTrace
from pathrules.patterns import Capture, LiteralSegment, PathPattern, RecursiveCapture, split_path
from pathrules.rules import Rule
from pathrules.schema import AuthContext, Decision, Operation, Precedence

__all__ = [
    "__version__",
    "__author__",
    "AuthContext",
    "AuthProvider",
    "Capture",
    "Decision",
    "Enforcer",
    "Guard",
    "InvalidPathError",
    "InvalidPatternError",
    "LiteralSegment",
    "Operation",
    "PathPattern",
    "PathRuleMatcher",
    "PathRulesError",
    "PermissionDeniedError",
    "Precedence",
    "RecursiveCapture",
    "Rule",
    "RuleSet",
    "RuleTrace",
    "RulesLoadError",
    "StaticAuthProvider",
    "UnboundVariableError",
    "all_of",
    "allow_all",
    "any_of",
    "claim_equals",
    "deny_all",
    "is_authenticated",
    "load_rules",
    "load_rules_from_string",
    "negate",
    "predicate",
    "split_path",
    "uid_equals",
]
