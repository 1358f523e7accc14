"""Allow/deny principal lists.

A principal spec is a comma separated list of user or group names. A name
prefixed with ``!`` is disallowed; every other name is allowed. Stray commas
and whitespace are ignored, so a malformed spec simply yields fewer names.
"""
from __future__ import annotations

from typing import Iterable, Optional, Set

NEGATION = '!'


def _tokens(spec: Optional[str]) -> Iterable[str]:
    if not spec:
        return []
    return [token.strip() for token in spec.split(',') if token.strip()]


def parse_all(spec: Optional[str]) -> Set[str]:
    """Every trimmed token, negated ones included."""
    return set(_tokens(spec))


def parse_allowed(spec: Optional[str]) -> Set[str]:
    return {token for token in _tokens(spec) if not token.startswith(NEGATION)}


def parse_disallowed(spec: Optional[str]) -> Set[str]:
    names: Set[str] = set()
    for token in _tokens(spec):
        if token.startswith(NEGATION):
            name = token[len(NEGATION):].strip()
            if name:
                names.add(name)
    return names


def matches_by_name(names: Set[str], principal_name: str) -> bool:
    return principal_name in names


def matches_by_group(names: Set[str], principal_groups: Iterable[str]) -> bool:
    return any(group in names for group in principal_groups)


def matches(names: Set[str], principal_name: str, principal_groups: Iterable[str]) -> bool:
    return matches_by_name(names, principal_name) or matches_by_group(names, principal_groups)
