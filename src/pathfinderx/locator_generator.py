from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

from .anchors import find_stable_anchor
from .literals import xpath_literal
from .models import CandidateLocator
from .paths import css_path, node_test, path_segments, relative_path, structural_path
from .selector_rules import POSITION_TAGS, preferred_test_attributes, semantic_data_attributes
from .settings import EngineSettings
from .shadow import resolve_shadow_trail
from .strategies import STRUCTURAL_NOTE, Tier, resolve_strategy
from .validation import resolves_to

if TYPE_CHECKING:
    from .document import NodeRef

logger = logging.getLogger("pathfinderx.engine")

GLOBAL_POSITION_LIMIT = 5


def synthesize_locators(
    target: NodeRef,
    strategy: str | Sequence[Tier] | None = None,
    settings: EngineSettings | None = None,
) -> list[CandidateLocator]:
    """Ranked, deduplicated locators that each match exactly ``target``.

    ``strategy`` names a strategy set (``"stable"`` or ``"basic"``) or passes
    tiers directly; when omitted the configured strategy is used. The first
    entry is always present.
    """
    config = settings or EngineSettings()
    tiers = resolve_strategy(strategy if strategy is not None else config.strategy)

    primary = _primary_candidate(target, tiers, config)
    candidates: list[CandidateLocator] = [primary]
    candidates.extend(_secondary_candidates(target, primary, config))

    structural = structural_path(target)
    if structural != primary.expression and path_segments(structural) < config.structural_segment_limit:
        candidates.append(CandidateLocator("xpath", structural, "Structural", STRUCTURAL_NOTE))

    css = css_path(target)
    if css and len(css) < config.css_length_limit:
        candidates.append(CandidateLocator("css", css, "CSS selector"))

    trail = resolve_shadow_trail(target)
    if trail is not None:
        candidates.append(
            CandidateLocator(
                "shadow",
                trail.expression,
                "Shadow DOM",
                f"Crosses {trail.depth} shadow root(s)",
            )
        )

    return _merge(target, candidates, primary, config)


def compare_strategies(
    target: NodeRef,
    names: Iterable[str],
    settings: EngineSettings | None = None,
) -> dict[str, list[CandidateLocator]]:
    return {name: synthesize_locators(target, strategy=name, settings=settings) for name in names}


def _primary_candidate(target: NodeRef, tiers: Sequence[Tier], settings: EngineSettings) -> CandidateLocator:
    for tier in tiers:
        for expression in tier.build(target, settings):
            if resolves_to(target, "xpath", expression):
                logger.debug("Tier %s matched %r with %s", tier.name, target, expression)
                return CandidateLocator("xpath", expression, tier.label, tier.note)
    return CandidateLocator("xpath", structural_path(target), "Structural", STRUCTURAL_NOTE)


def _secondary_candidates(
    target: NodeRef,
    primary: CandidateLocator,
    settings: EngineSettings,
) -> list[CandidateLocator]:
    tag = node_test(target.tag)
    drafts: list[CandidateLocator] = []

    aria_label = target.attr("aria-label")
    if aria_label and len(aria_label) < 50:
        drafts.append(CandidateLocator("xpath", f"//{tag}[@aria-label={xpath_literal(aria_label)}]", "ARIA label"))

    attributes = target.attributes
    for attr, value in preferred_test_attributes(attributes) + semantic_data_attributes(attributes):
        expression = f"//*[@{attr}={xpath_literal(value)}]"
        if expression != primary.expression:
            drafts.append(CandidateLocator("xpath", expression, "Data attribute"))
            break

    anchor = find_stable_anchor(target, settings.anchor_max_hops)
    if anchor is not None:
        drafts.append(
            CandidateLocator(
                "xpath",
                anchor.expression + relative_path(anchor.node, target),
                "Anchored path",
                "Relative to the nearest stable ancestor",
            )
        )

    text = target.full_text
    if settings.text_min_length <= len(text) <= settings.text_max_length:
        drafts.append(
            CandidateLocator("xpath", f"//{tag}[contains(normalize-space(), {xpath_literal(text)})]", "Text contains")
        )

    if target.tag in POSITION_TAGS:
        same_tag = target.scope.xpath(f"//{tag}")
        position = next((index for index, item in enumerate(same_tag, start=1) if item == target), 0)
        if 0 < position <= GLOBAL_POSITION_LIMIT:
            drafts.append(
                CandidateLocator("xpath", f"(//{tag})[{position}]", "Position", f"{position} of {len(same_tag)} on the page")
            )

    return drafts[: settings.max_alternates]


def _merge(
    target: NodeRef,
    candidates: list[CandidateLocator],
    primary: CandidateLocator,
    settings: EngineSettings,
) -> list[CandidateLocator]:
    seen: set[str] = set()
    deduped: list[CandidateLocator] = []
    for candidate in candidates:
        if candidate.expression in seen:
            continue
        seen.add(candidate.expression)
        deduped.append(candidate)

    valid = [
        candidate
        for candidate in deduped
        if candidate.kind == "shadow" or resolves_to(target, candidate.kind, candidate.expression)
    ]
    plain = [candidate for candidate in valid if candidate.kind != "shadow"]
    shadow = [candidate for candidate in valid if candidate.kind == "shadow"]
    if not plain:
        logger.debug("No candidate resolved to %r; keeping the primary locator.", target)
        plain = [primary]

    limit = max(1, settings.max_candidates)
    if shadow:
        return plain[: max(1, limit - 1)] + shadow[:1]
    return plain[:limit]
