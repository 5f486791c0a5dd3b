"""Shadow-root trails.

Standard XPath and CSS stop at a shadow boundary, so an element inside one or
more open shadow roots is described by a chain of host selectors, each unique
within its own scope, followed by the element's selector inside its root.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator

from cssselect import SelectorError

from .literals import css_attribute, css_identifier
from .models import ShadowHost, ShadowTrail
from .paths import css_path, id_selector
from .selector_rules import is_stable_identifier, meaningful_classes, preferred_test_attributes
from .validation import LocatorValidation, count_locator_matches, locator_verdict, resolves_to

if TYPE_CHECKING:
    from .document import Document, NodeRef, Scope

logger = logging.getLogger("pathfinderx.engine")

SHADOW_COMBINATOR = " >>> "


def _descriptor_candidates(node: NodeRef) -> Iterator[str]:
    tag = css_identifier(node.tag)
    ident = node.element_id
    if ident and is_stable_identifier(ident):
        yield id_selector(ident)
    for attr, value in preferred_test_attributes(node.attributes):
        yield css_attribute(attr, value)
    yield tag
    for token in meaningful_classes(node.classes):
        yield f"{tag}.{css_identifier(token)}"
    name = node.attr("name")
    if name:
        yield css_attribute("name", name, tag)


def host_descriptor(node: NodeRef) -> str | None:
    """First simple selector that matches only ``node`` within its own scope."""
    scope = node.scope
    for selector in _descriptor_candidates(node):
        if count_locator_matches(scope, "css", selector) == 1:
            return selector
    return None


def resolve_shadow_trail(node: NodeRef) -> ShadowTrail | None:
    scope = node.scope
    if not scope.is_shadow:
        return None

    hosts: list[ShadowHost] = []
    while scope.host is not None:
        host = scope.host
        descriptor = host_descriptor(host)
        if descriptor is None:
            logger.debug("Shadow host %r has no unique descriptor; no shadow trail.", host)
            return None
        hosts.append(ShadowHost(tag=host.tag, selector=descriptor))
        scope = host.scope
    hosts.reverse()

    target_selector = host_descriptor(node)
    if target_selector is None:
        target_selector = css_path(node)
        if not resolves_to(node, "css", target_selector):
            logger.debug("No unique selector for %r inside its shadow root; no shadow trail.", node)
            return None
    return ShadowTrail(hosts=tuple(hosts), target_selector=target_selector)


def _enter_hosts(document: Document, trail: ShadowTrail) -> Scope | None:
    scope = document.scope
    for host in trail.hosts:
        try:
            matches = scope.select(host.selector)
        except (SelectorError, ValueError):
            return None
        if not matches:
            return None
        shadow = matches[0].shadow_root
        if shadow is None:
            return None
        scope = shadow
    return scope


def count_shadow_trail_matches(document: Document, trail: ShadowTrail) -> int:
    """Walk the trail host by host (first match each time) and count the target selector."""
    scope = _enter_hosts(document, trail)
    if scope is None:
        return 0
    return count_locator_matches(scope, "css", trail.target_selector)


def parse_shadow_expression(expression: str) -> ShadowTrail | None:
    parts = [part.strip() for part in expression.split(SHADOW_COMBINATOR.strip())]
    if len(parts) < 2 or not all(parts):
        return None
    hosts = tuple(ShadowHost(tag="", selector=part) for part in parts[:-1])
    return ShadowTrail(hosts=hosts, target_selector=parts[-1])


def pierce_select(document: Document, expression: str) -> NodeRef | None:
    """First element matched by a CSS selector that may cross shadow roots with ``>>>``.

    Raises ``cssselect.SelectorError`` when the final selector is malformed.
    """
    trail = parse_shadow_expression(expression)
    if trail is None:
        return document.query_selector(expression)
    scope = _enter_hosts(document, trail)
    if scope is None:
        return None
    matches = scope.select(trail.target_selector)
    return matches[0] if matches else None


def validate_shadow_candidate(target: NodeRef, expression: str) -> LocatorValidation:
    """Check a ``>>>`` trail the way the page would: count at the end of the walk, then confirm the hit."""
    trail = parse_shadow_expression(expression)
    match_count = count_shadow_trail_matches(target.document, trail) if trail else 0
    if match_count != 1:
        return locator_verdict(match_count, False)
    try:
        resolved = pierce_select(target.document, expression)
    except (SelectorError, ValueError):
        resolved = None
    return locator_verdict(1, resolved == target)
