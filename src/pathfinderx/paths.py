from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .literals import css_identifier, xpath_literal
from .selector_rules import is_stable_identifier, meaningful_classes
from .validation import count_locator_matches

if TYPE_CHECKING:
    from .document import NodeRef

_NAME_TEST_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


def node_test(tag: str) -> str:
    """XPath name test for ``tag``; odd custom-element names fall back to ``*[name()=...]``."""
    if _NAME_TEST_PATTERN.fullmatch(tag):
        return tag
    return f"*[name()={xpath_literal(tag)}]"


def id_selector(value: str) -> str:
    return f"#{css_identifier(value)}"


def has_unique_stable_id(node: NodeRef) -> bool:
    ident = node.element_id
    if not ident or not is_stable_identifier(ident):
        return False
    return count_locator_matches(node.scope, "css", id_selector(ident)) == 1


def _step(node: NodeRef) -> str:
    name = node_test(node.tag)
    if node.same_tag_sibling_count > 1:
        return f"{name}[{node.sibling_position}]"
    return name


def structural_path(node: NodeRef) -> str:
    """Absolute tag/position path from the top of the node's scope."""
    steps = [_step(node)]
    steps.extend(_step(ancestor) for ancestor in node.ancestors())
    return "/" + "/".join(reversed(steps))


def path_segments(expression: str) -> int:
    return len([segment for segment in expression.split("/") if segment])


def relative_path(anchor: NodeRef, node: NodeRef) -> str:
    """Child steps leading from ``anchor`` down to ``node``; ``node`` must sit inside ``anchor``."""
    steps: list[str] = []
    current: NodeRef | None = node
    while current is not None and current != anchor:
        steps.append(_step(current))
        current = current.parent
    if current is None:
        raise ValueError(f"{node!r} is not inside {anchor!r}")
    return "/" + "/".join(reversed(steps))


def css_path(node: NodeRef) -> str:
    scope = node.scope
    parts: list[str] = []
    current: NodeRef | None = node
    while current is not None:
        if has_unique_stable_id(current):
            parts.append(id_selector(current.element_id or ""))
            break
        if not scope.is_shadow and current.tag in {"html", "body"}:
            parts.append(current.tag)
            break
        part = css_identifier(current.tag)
        part += "".join(f".{css_identifier(token)}" for token in meaningful_classes(current.classes))
        if current.same_tag_sibling_count > 1:
            part += f":nth-of-type({current.sibling_position})"
        parts.append(part)
        current = current.parent
    return " > ".join(reversed(parts))
