from __future__ import annotations

from typing import TYPE_CHECKING

from .literals import xpath_literal
from .paths import has_unique_stable_id, node_test
from .selector_rules import PREDICATE_ATTRS, meaningful_classes

if TYPE_CHECKING:
    from .document import NodeRef

PREDICATE_TEXT_MIN = 3
PREDICATE_TEXT_MAX = 40


def build_target_predicate(node: NodeRef) -> str | None:
    """Bracket-free XPath predicate describing ``node`` without reference to its ancestors.

    Returns ``None`` only for the document's root element when nothing else
    describes it.
    """
    if has_unique_stable_id(node):
        return f"@id={xpath_literal(node.element_id or '')}"

    for attr in PREDICATE_ATTRS:
        value = node.attr(attr)
        if value:
            return f"@{attr}={xpath_literal(value)}"

    text = node.full_text
    if PREDICATE_TEXT_MIN <= len(text) <= PREDICATE_TEXT_MAX:
        return f"contains(normalize-space(), {xpath_literal(text)})"

    classes = meaningful_classes(node.classes)
    if classes:
        return f"contains(@class, {xpath_literal(classes[0])})"

    if node.is_document_root:
        return None
    return f"count(preceding-sibling::{node_test(node.tag)})={node.sibling_position - 1}"
