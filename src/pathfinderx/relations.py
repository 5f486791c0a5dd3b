from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .locator_generator import synthesize_locators
from .models import RelationOption
from .paths import node_test, relative_path
from .predicates import build_target_predicate
from .settings import EngineSettings

if TYPE_CHECKING:
    from .document import NodeRef

logger = logging.getLogger("pathfinderx.engine")

_REVERSE_AXES = {"ancestor", "ancestor-or-self", "preceding", "preceding-sibling"}


def synthesize_relation(
    anchor: NodeRef,
    target: NodeRef,
    settings: EngineSettings | None = None,
) -> list[RelationOption]:
    """Expressions that reach ``target`` starting from ``anchor``'s own locator."""
    config = settings or EngineSettings()
    target_primary = synthesize_locators(target, settings=config)[0]
    fallback = RelationOption("Target locator", target_primary.expression, "No usable relation to the anchor")

    if anchor == target or anchor.scope is not target.scope:
        logger.debug("Anchor %r and target %r share no scope; using the target locator.", anchor, target)
        return [fallback]

    document = target.document
    anchor_expression = synthesize_locators(anchor, settings=config)[0].expression
    predicate = build_target_predicate(target)
    tag = node_test(target.tag)
    step = f"{tag}[{predicate}]" if predicate else tag
    order = document.document_order(target, anchor)
    target_inside = document.is_descendant(target, anchor)
    anchor_inside = document.is_descendant(anchor, target)

    drafts: list[RelationOption | None] = []
    if target_inside:
        drafts.append(
            _descendant_option(anchor_expression, anchor.element, step, target, "Inside anchor", "Searches within the anchor")
        )
        drafts.append(
            RelationOption(
                "Path from anchor",
                anchor_expression + relative_path(anchor, target),
                "Child steps from the anchor",
            )
        )
    elif anchor_inside:
        drafts.append(_axis_option(anchor_expression, anchor.element, "ancestor", step, target, "Ancestor of anchor"))
    elif _are_siblings(anchor, target):
        axis = "following-sibling" if order == "after" else "preceding-sibling"
        label = "Following sibling" if order == "after" else "Preceding sibling"
        drafts.append(_axis_option(anchor_expression, anchor.element, axis, step, target, label))

    if order == "after" and not target_inside:
        drafts.append(_axis_option(anchor_expression, anchor.element, "following", step, target, "After anchor"))
    elif order == "before" and not anchor_inside:
        drafts.append(_axis_option(anchor_expression, anchor.element, "preceding", step, target, "Before anchor"))

    if predicate:
        container_step = f"ancestor-or-self::*[.//{step}][1]"
        containers = anchor.element.xpath(container_step)
        if containers:
            drafts.append(
                _descendant_option(
                    f"{anchor_expression}/{container_step}",
                    containers[0],
                    step,
                    target,
                    "Nearest shared container",
                    "Closest anchor ancestor that holds a match",
                )
            )

    options: list[RelationOption] = []
    seen: set[str] = set()
    for option in drafts:
        if option is None or option.expression in seen:
            continue
        seen.add(option.expression)
        options.append(option)

    if not options:
        return [fallback]
    return options[: config.max_relations]


def _are_siblings(first: NodeRef, second: NodeRef) -> bool:
    parent = first.element.getparent()
    return parent is not None and parent is second.element.getparent()


def _axis_position(context: Any, axis: str, step: str, target: NodeRef) -> tuple[int, int] | None:
    """1-based position of ``target`` along ``axis`` from ``context`` and the match count."""
    matches = [item for item in context.xpath(f"{axis}::{step}") if isinstance(item.tag, str)]
    for index, item in enumerate(matches):
        if item is target.element:
            position = len(matches) - index if axis in _REVERSE_AXES else index + 1
            return position, len(matches)
    return None


def _axis_option(
    context_expression: str,
    context: Any,
    axis: str,
    step: str,
    target: NodeRef,
    label: str,
) -> RelationOption | None:
    located = _axis_position(context, axis, step, target)
    if located is None:
        return None
    position, total = located
    expression = f"{context_expression}/{axis}::{step}"
    if total > 1:
        expression += f"[{position}]"
    return RelationOption(label, expression)


def _descendant_option(
    context_expression: str,
    context: Any,
    step: str,
    target: NodeRef,
    label: str,
    note: str,
) -> RelationOption | None:
    located = _axis_position(context, "descendant", step, target)
    if located is None:
        return None
    position, total = located
    if total > 1:
        return RelationOption(label, f"{context_expression}/descendant::{step}[{position}]", note)
    return RelationOption(label, f"{context_expression}//{step}", note)
