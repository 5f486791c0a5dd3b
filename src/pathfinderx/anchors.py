from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .literals import xpath_literal
from .models import AnchorMatch
from .paths import has_unique_stable_id, node_test
from .selector_rules import is_blocked_root_id, preferred_test_attributes
from .validation import resolves_to

if TYPE_CHECKING:
    from .document import NodeRef

logger = logging.getLogger("pathfinderx.engine")

DEFAULT_MAX_HOPS = 6


def find_stable_anchor(node: NodeRef, max_hops: int = DEFAULT_MAX_HOPS) -> AnchorMatch | None:
    """Nearest ancestor that a short attribute expression pins down on its own."""
    hops = 0
    current = node.parent
    while current is not None and hops < max_hops:
        hops += 1
        if current.tag in {"html", "body"} or is_blocked_root_id(current.element_id or ""):
            current = current.parent
            continue
        expression = _anchor_expression(current)
        if expression:
            logger.debug("Anchor for %r found %d hop(s) up: %s", node, hops, expression)
            return AnchorMatch(node=current, expression=expression, hops=hops)
        current = current.parent
    return None


def _anchor_expression(node: NodeRef) -> str | None:
    for expression in _anchor_expressions(node):
        if resolves_to(node, "xpath", expression):
            return expression
    return None


def _anchor_expressions(node: NodeRef) -> list[str]:
    tag = node_test(node.tag)
    expressions: list[str] = []
    if has_unique_stable_id(node):
        expressions.append(f"//*[@id={xpath_literal(node.element_id or '')}]")
    for attr, value in preferred_test_attributes(node.attributes):
        expressions.append(f"//*[@{attr}={xpath_literal(value)}]")
    role = node.attr("role")
    if role:
        expressions.append(f"//*[@role={xpath_literal(role)}]")
        expressions.append(f"//{tag}[@role={xpath_literal(role)}]")
    name = node.attr("name")
    if name:
        expressions.append(f"//{tag}[@name={xpath_literal(name)}]")
    return expressions
