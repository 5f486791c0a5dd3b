from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cssselect import SelectorError
from lxml import etree

from .models import CandidateLocator, UniquenessResult

if TYPE_CHECKING:
    from .document import NodeRef, Scope


@dataclass(frozen=True, slots=True)
class LocatorValidation:
    unique: bool
    match_count: int
    message: str


def count_locator_matches(scope: Scope, kind: str, expression: str) -> int:
    normalized_kind = str(kind or "").strip().lower()
    text = str(expression or "").strip()
    if not normalized_kind or not text:
        return 0

    try:
        if normalized_kind == "xpath":
            return len(scope.xpath(text))
        if normalized_kind == "css":
            return len(scope.select(text))
    except (etree.XPathError, SelectorError, ValueError, TypeError):
        return 0

    # Shadow trails cannot be evaluated by a single-scope query.
    return 0


def check_uniqueness(scope: Scope, candidate: CandidateLocator) -> UniquenessResult:
    return UniquenessResult(count_locator_matches(scope, candidate.kind, candidate.expression))


def resolves_to(node: NodeRef, kind: str, expression: str) -> bool:
    """True when ``expression`` matches exactly one element in the node's scope and it is ``node``."""
    scope = node.scope
    text = str(expression or "").strip()
    if not text:
        return False
    try:
        if kind == "xpath":
            matches = scope.xpath(text)
        elif kind == "css":
            matches = scope.select(text)
        else:
            return False
    except (etree.XPathError, SelectorError, ValueError, TypeError):
        return False
    return len(matches) == 1 and matches[0] == node


def locator_verdict(match_count: int, hits_node: bool) -> LocatorValidation:
    if match_count == 0:
        return LocatorValidation(False, 0, "Locator matches nothing in scope.")
    if match_count > 1:
        return LocatorValidation(False, match_count, "Locator is not unique in scope.")
    if not hits_node:
        return LocatorValidation(False, 1, "Locator matches a different element.")
    return LocatorValidation(True, 1, "Locator is unique.")


def validate_candidate(node: NodeRef, candidate: CandidateLocator) -> LocatorValidation:
    match_count = count_locator_matches(node.scope, candidate.kind, candidate.expression)
    return locator_verdict(match_count, match_count == 1 and resolves_to(node, candidate.kind, candidate.expression))
