"""
Pytest configuration and fixtures for pathrules tests.

This module provides shared fixtures used across unit and integration
tests, including the development and production rule sets of a small
social app written in the rules document format.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from pathrules import AuthContext


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def alice() -> AuthContext:
    return AuthContext.for_user("alice")


@pytest.fixture
def bob() -> AuthContext:
    return AuthContext.for_user("bob")


@pytest.fixture
def anonymous() -> AuthContext:
    return AuthContext.anonymous()


@pytest.fixture
def development_rules_yaml() -> str:
    """Permissive rules: any signed-in user may touch any document."""
    return """
rules_version: "2"
rules:
  - match: /{document=**}
    name: any-authenticated
    allow: [read, write]
    if: authenticated

  - match: /users/{userId}
    name: own-user-document
    allow: [read, write]
    if:
      all:
        - authenticated
        - uid_equals: userId

  - match: /posts/{postId}
    allow: [read, write]
    if: authenticated

  - match: /analytics/{document=**}
    allow: [read, write]
    if: authenticated
"""


@pytest.fixture
def production_rules_yaml() -> str:
    """Per-collection rules; users may only touch their own user document."""
    return """
rules_version: 2
rules:
  - match: /users/{userId}
    allow: [read, write]
    if:
      all:
        - authenticated
        - uid_equals: userId
  - match: /posts/{postId}
    allow: [read, write]
    if: authenticated
  - match: /connections/{connectionId}
    allow: [read, write]
    if: authenticated
  - match: /messages/{messageId}
    allow: [read, write]
    if: authenticated
  - match: /profiles/{profileId}
    allow: [read, write]
    if: authenticated
  - match: /groups/{groupId}
    allow: [read, write]
    if: authenticated
  - match: /notifications/{notificationId}
    allow: [read, write]
    if: authenticated
  - match: /status/{statusId}
    allow: [read, write]
    if: authenticated
  - match: /analytics/{analyticsId}
    allow: [read, write]
    if: authenticated
"""


@pytest.fixture
def production_rules_file(temp_dir: Path, production_rules_yaml: str) -> Path:
    path = temp_dir / "production.yaml"
    path.write_text(production_rules_yaml)
    return path


@pytest.fixture
def development_rules_file(temp_dir: Path, development_rules_yaml: str) -> Path:
    path = temp_dir / "development.yaml"
    path.write_text(development_rules_yaml)
    return path
