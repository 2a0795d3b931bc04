"""
Rules document loader.

Turns a YAML rules document into compiled Rule values:

    rules_version: "2"
    rules:
      - match: /users/{userId}
        allow: [read, write]
        if:
          all:
            - authenticated
            - uid_equals: userId

Guard specifications:
    authenticated                 caller has credentials
    always / true                 always passes
    never / false                 never passes
    {uid_equals: var}             caller uid equals capture `var`
    {claim_equals: {name: value}} token claim equals value
    {all: [spec, ...]}            every spec passes
    {any: [spec, ...]}            at least one spec passes
    {not: spec}                   spec fails

Design Decisions:
    - YAML and schema problems become RulesLoadError with the failing location
    - Pattern and variable errors keep their own types, since they mean the
      same thing whether rules come from a file or from Python
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from pathrules.errors import RulesLoadError
from pathrules.guards import (
    Guard,
    all_of,
    allow_all,
    any_of,
    claim_equals,
    deny_all,
    is_authenticated,
    negate,
    uid_equals,
)
from pathrules.rules import Rule
from pathrules.schema import (
    Precedence,
    RuleEntry,
    RulesDocument,
    load_document,
    load_document_from_string,
)

_NAMED_GUARDS = {
    "authenticated": is_authenticated,
    "always": allow_all,
    "true": allow_all,
    "never": deny_all,
    "false": deny_all,
}


@dataclass(frozen=True)
class RuleSet:
    """
    Compiled contents of a rules document.

    Attributes:
        rules: Rules in document order
        precedence: Precedence declared by the document
        rules_version: Declared format version
    """

    rules: tuple[Rule, ...]
    precedence: Precedence = Precedence.CONTINUE
    rules_version: str = "2"


def load_rules(path: Path | str) -> RuleSet:
    """
    Load and compile a rules document from a YAML file.

    Raises:
        RulesLoadError: If the file can't be read or doesn't match the schema
        InvalidPatternError: If a rule pattern is malformed
        UnboundVariableError: If a guard reads a variable its pattern doesn't bind
    """
    source = str(path)
    try:
        document = load_document(path)
    except OSError as e:
        raise RulesLoadError(
            source=source,
            underlying_error=str(e),
            suggestion="Check that the rules file exists and is readable",
        ) from e
    except (yaml.YAMLError, ValidationError) as e:
        raise RulesLoadError(source=source, underlying_error=_format_error(e)) from e

    return compile_document(document, source=source)


def load_rules_from_string(content: str) -> RuleSet:
    """Load and compile a rules document from YAML text."""
    source = "<string>"
    try:
        document = load_document_from_string(content)
    except (yaml.YAMLError, ValidationError) as e:
        raise RulesLoadError(source=source, underlying_error=_format_error(e)) from e

    return compile_document(document, source=source)


def compile_document(document: RulesDocument, source: str = "<document>") -> RuleSet:
    """Compile an already-validated document into a RuleSet."""
    rules = tuple(
        _compile_entry(entry, index, source)
        for index, entry in enumerate(document.rules)
    )
    return RuleSet(
        rules=rules,
        precedence=document.precedence,
        rules_version=document.rules_version,
    )


def _compile_entry(entry: RuleEntry, index: int, source: str) -> Rule:
    try:
        guard = build_guard(entry.guard)
    except ValueError as e:
        raise RulesLoadError(
            source=source,
            underlying_error=f"rules[{index}] ({entry.match}): {e}",
        ) from e
    return Rule(entry.match, entry.allow, guard, name=entry.name)


def build_guard(spec: Any) -> Guard:
    """
    Build a Guard from its document form.

    Raises:
        ValueError: If the spec is not recognized
    """
    if isinstance(spec, bool):
        return allow_all() if spec else deny_all()

    if isinstance(spec, str):
        factory = _NAMED_GUARDS.get(spec)
        if factory is None:
            msg = f"unknown guard {spec!r}"
            raise ValueError(msg)
        return factory()

    if not isinstance(spec, dict) or len(spec) != 1:
        msg = f"guard must be a name or a single-key mapping, got {spec!r}"
        raise ValueError(msg)

    (kind, arg), = spec.items()

    if kind == "uid_equals":
        if not isinstance(arg, str) or not arg:
            msg = "uid_equals expects a capture variable name"
            raise ValueError(msg)
        return uid_equals(arg)

    if kind == "claim_equals":
        if not isinstance(arg, dict) or len(arg) != 1:
            msg = "claim_equals expects a single {claim: value} mapping"
            raise ValueError(msg)
        (claim, value), = arg.items()
        return claim_equals(str(claim), value)

    if kind in ("all", "any"):
        if not isinstance(arg, list) or not arg:
            msg = f"{kind} expects a non-empty list of guards"
            raise ValueError(msg)
        children = [build_guard(child) for child in arg]
        return all_of(*children) if kind == "all" else any_of(*children)

    if kind == "not":
        return negate(build_guard(arg))

    msg = f"unknown guard {kind!r}"
    raise ValueError(msg)


def _format_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        parts = []
        for item in error.errors():
            location = ".".join(str(p) for p in item["loc"]) or "<root>"
            parts.append(f"{location}: {item['msg']}")
        return "; ".join(parts)
    return str(error)
