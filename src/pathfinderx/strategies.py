"""Cascade tiers and the named strategy sets built from them.

A tier yields XPath expressions in preference order; the generator keeps the
first one that matches exactly the target inside its scope.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
import logging
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Sequence

from .anchors import find_stable_anchor
from .literals import xpath_literal
from .paths import has_unique_stable_id, node_test, relative_path, structural_path
from .predicates import build_target_predicate
from .selector_rules import (
    FORM_CONTROL_TAGS,
    LABELABLE_TAGS,
    STABLE_ATTRS,
    TEXT_BEARING_TAGS,
    analyze_identifier,
    meaningful_classes,
    preferred_test_attributes,
    semantic_data_attributes,
)

if TYPE_CHECKING:
    from .document import NodeRef
    from .settings import EngineSettings

logger = logging.getLogger("pathfinderx.engine")

TierBuilder = Callable[["NodeRef", "EngineSettings"], Iterable[str]]

DEFAULT_STRATEGY = "stable"
STRUCTURAL_NOTE = "Position-based; breaks when the layout changes"


@dataclass(frozen=True, slots=True)
class Tier:
    name: str
    label: str
    build: TierBuilder
    note: str | None = None


def stable_attribute_pairs(node: NodeRef) -> list[tuple[str, str]]:
    """Present allow-listed attributes then semantic ``data-*`` attributes, in scan order."""
    pairs: list[tuple[str, str]] = []
    for attr in STABLE_ATTRS:
        value = node.attr(attr)
        if value:
            pairs.append((attr, value))
    pairs.extend(semantic_data_attributes(node.attributes))
    return pairs


def label_texts(node: NodeRef) -> list[str]:
    texts: list[str] = []
    for sibling in node.previous_siblings():
        if sibling.tag == "label":
            texts.append(sibling.full_text)
            break
    ident = node.element_id
    if ident:
        linked = node.scope.xpath(f"//label[@for={xpath_literal(ident)}]")
        if linked:
            texts.append(linked[0].full_text)

    unique: list[str] = []
    for text in texts:
        if text and text not in unique:
            unique.append(text)
    return unique


def _identifier(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    ident = node.element_id
    if not ident:
        return
    verdict = analyze_identifier(ident)
    if not verdict.stable:
        logger.debug("Rejected id %r: %s", ident, ", ".join(verdict.reasons))
        return
    if has_unique_stable_id(node):
        yield f"//*[@id={xpath_literal(ident)}]"


def _form_identity(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    if node.tag not in FORM_CONTROL_TAGS:
        return
    name = node.attr("name")
    if not name:
        return
    tag = node_test(node.tag)
    input_type = node.attr("type")
    if input_type:
        yield f"//{tag}[@name={xpath_literal(name)} and @type={xpath_literal(input_type)}]"
    yield f"//{tag}[@name={xpath_literal(name)}]"


def _semantic_role(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    role = node.attr("role")
    if not role:
        return
    yield f"//*[@role={xpath_literal(role)}]"
    yield f"//{node_test(node.tag)}[@role={xpath_literal(role)}]"


def _test_attributes(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    for attr, value in preferred_test_attributes(node.attributes):
        yield f"//*[@{attr}={xpath_literal(value)}]"


def _semantic_data(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    tag = node_test(node.tag)
    for attr, value in semantic_data_attributes(node.attributes):
        yield f"//*[@{attr}={xpath_literal(value)}]"
        yield f"//{tag}[@{attr}={xpath_literal(value)}]"


def _triangulation(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    tag = node_test(node.tag)
    pairs = stable_attribute_pairs(node)[: settings.triangulation_attribute_limit]
    predicates = [f"@{attr}={xpath_literal(value)}" for attr, value in pairs]
    for size in (2, 3):
        for combo in combinations(predicates, size):
            yield f"//{tag}[{' and '.join(combo)}]"


def _class_attribute(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    tag = node_test(node.tag)
    classes = meaningful_classes(node.classes)
    pairs = stable_attribute_pairs(node)[:3]
    for token in classes:
        class_test = f"contains(concat(' ', normalize-space(@class), ' '), {xpath_literal(f' {token} ')})"
        for attr, value in pairs:
            yield f"//{tag}[{class_test} and @{attr}={xpath_literal(value)}]"
    for token in classes:
        yield f"//{tag}[contains(@class, {xpath_literal(token)})]"


def _scoped_structural(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    anchor = find_stable_anchor(node, settings.anchor_max_hops)
    if anchor is None:
        return
    tag = node_test(node.tag)
    yield anchor.expression + relative_path(anchor.node, node)
    predicate = build_target_predicate(node)
    if predicate:
        yield f"{anchor.expression}//{tag}[{predicate}]"
    yield f"{anchor.expression}//{tag}"


def _text_content(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    if node.tag not in TEXT_BEARING_TAGS:
        return
    text = node.full_text
    if not settings.text_min_length <= len(text) <= settings.text_max_length:
        return
    tag = node_test(node.tag)
    yield f"//{tag}[normalize-space()={xpath_literal(text)}]"
    yield f"//{tag}[contains(normalize-space(), {xpath_literal(text)})]"


def _label_relative(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    if node.tag not in LABELABLE_TAGS:
        return
    for text in label_texts(node):
        yield (
            f"//label[normalize-space()={xpath_literal(text)}]"
            "/following::*[self::input or self::textarea or self::select][1]"
        )


def _structural(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    yield structural_path(node)


def _basic_identifier(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    ident = node.element_id
    if ident:
        yield f"//*[@id={xpath_literal(ident)}]"


def _basic_test_attributes(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    for attr in ("data-testid", "data-test", "data-cy", "data-qa"):
        value = node.attr(attr)
        if value:
            yield f"//*[@{attr}={xpath_literal(value)}]"


def _basic_exact_class(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    raw = node.attr("class")
    if raw and len(node.classes) == 1:
        yield f"//{node_test(node.tag)}[@class={xpath_literal(raw)}]"


def _basic_class_contains(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    tag = node_test(node.tag)
    for token in meaningful_classes(node.classes)[:3]:
        yield f"//{tag}[contains(@class, {xpath_literal(token)})]"


def _basic_single_attribute(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    tag = node_test(node.tag)
    for attr in ("name", "type", "aria-label", "title", "alt", "placeholder", "role"):
        value = node.attr(attr)
        if value:
            yield f"//{tag}[@{attr}={xpath_literal(value)}]"


def _basic_exact_text(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    if node.tag not in {"a", "button", "span", "label"}:
        return
    text = node.own_text
    if 3 <= len(text) < 30:
        yield f"//{node_test(node.tag)}[normalize-space(text())={xpath_literal(text)}]"


def _basic_type_class(node: NodeRef, settings: EngineSettings) -> Iterator[str]:
    input_type = node.attr("type")
    classes = meaningful_classes(node.classes)
    if input_type and classes:
        yield (
            f"//{node_test(node.tag)}[@type={xpath_literal(input_type)}"
            f" and contains(@class, {xpath_literal(classes[0])})]"
        )


STRUCTURAL_TIER = Tier("structural", "Structural", _structural, STRUCTURAL_NOTE)

STABLE_TIERS: tuple[Tier, ...] = (
    Tier("identifier", "ID", _identifier),
    Tier("form-identity", "Form identity", _form_identity),
    Tier("semantic-role", "Role", _semantic_role),
    Tier("test-attribute", "Test attribute", _test_attributes),
    Tier("data-attribute", "Data attribute", _semantic_data),
    Tier("triangulation", "Attribute combination", _triangulation),
    Tier("class-attribute", "Class + attribute", _class_attribute, "Class names may change with styling"),
    Tier("scoped-structural", "Anchored path", _scoped_structural, "Relative to the nearest stable ancestor"),
    Tier("text", "Text", _text_content, "Breaks when the visible text changes"),
    Tier("label", "Label", _label_relative, "Located through its label"),
    STRUCTURAL_TIER,
)

BASIC_TIERS: tuple[Tier, ...] = (
    Tier("identifier", "ID", _basic_identifier),
    Tier("test-attribute", "Test attribute", _basic_test_attributes),
    Tier("exact-class", "Class", _basic_exact_class),
    Tier("class-contains", "Class", _basic_class_contains),
    Tier("single-attribute", "Attribute", _basic_single_attribute),
    Tier("text", "Text", _basic_exact_text),
    Tier("type-class", "Type + class", _basic_type_class),
    STRUCTURAL_TIER,
)

STRATEGY_SETS: dict[str, tuple[Tier, ...]] = {
    "stable": STABLE_TIERS,
    "basic": BASIC_TIERS,
}


def resolve_strategy(strategy: str | Sequence[Tier] | None) -> tuple[Tier, ...]:
    if strategy is None:
        return STRATEGY_SETS[DEFAULT_STRATEGY]
    if isinstance(strategy, str):
        key = strategy.strip().lower()
        tiers = STRATEGY_SETS.get(key)
        if tiers is None:
            logger.warning("Unknown strategy %r; using %r.", strategy, DEFAULT_STRATEGY)
            return STRATEGY_SETS[DEFAULT_STRATEGY]
        return tiers
    return tuple(strategy)
