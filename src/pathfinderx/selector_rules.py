from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Sequence

ROOT_ID_BLOCKLIST = {"__next", "root", "app", "__nuxt", "gatsby-focus-wrapper"}
ROOT_ID_BLOCKLIST_LOWER = {item.lower() for item in ROOT_ID_BLOCKLIST}

TEST_ATTR_PRIORITY = (
    "data-testid",
    "data-test",
    "data-test-id",
    "data-qa",
    "data-cy",
    "data-e2e",
    "data-automation-id",
)

# Attributes considered for multi-attribute triangulation, in scan order.
STABLE_ATTRS = (
    "name",
    "type",
    "role",
    "aria-label",
    "title",
    "alt",
    "placeholder",
    "for",
    "href",
    "value",
    "autocomplete",
)

PREDICATE_ATTRS = TEST_ATTR_PRIORITY + ("name", "type", "aria-label", "title", "alt", "placeholder")

FORM_CONTROL_TAGS = {"input", "select", "textarea", "button"}
LABELABLE_TAGS = {"input", "select", "textarea"}
TEXT_BEARING_TAGS = {
    "a",
    "button",
    "label",
    "span",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "li",
    "option",
    "summary",
    "legend",
    "th",
    "td",
}
POSITION_TAGS = {"input", "button", "select", "a"}

FRAMEWORK_DATA_ATTR_PREFIXES = (
    "data-v-",
    "data-react",
    "data-radix-",
    "data-headlessui-",
    "data-rbd-",
    "data-sentry-",
    "data-gtm-",
    "data-ng-",
    "data-turbo-",
    "data-darkreader-",
    "data-emotion",
    "data-styled",
)
FRAMEWORK_DATA_ATTRS = {
    "data-state",
    "data-orientation",
    "data-side",
    "data-align",
    "data-disabled",
    "data-highlighted",
    "data-focus-visible",
    "data-hydrated",
    "data-n-head",
    "data-lt-installed",
    "data-new-gr-c-s-check-loaded",
    "data-gr-ext-installed",
}

_XPATH_WHITESPACE = re.compile(r"[ \t\r\n]+")

_VOLATILE_ID_PATTERNS = (
    ("uuid", re.compile(r"[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}", re.IGNORECASE)),
    ("hex-digest", re.compile(r"^[a-f0-9]{16,}$", re.IGNORECASE)),
    ("runtime-token", re.compile(r"^(?::[A-Za-z0-9_-]+:|«[A-Za-z0-9_-]+»)$")),
    (
        "component-library",
        re.compile(
            r"^(?:radix|headlessui|mui|react-select|react-aria|downshift|rc-[a-z]+|mat|cdk|ember|el-id|mantine|chakra)"
            r"(?:[-_:]|\d)(?=.*\d)",
            re.IGNORECASE,
        ),
    ),
    ("jsf-segment", re.compile(r"(?::\d+:|:j_idt\d+|:jdt_\d+|^j_idt\d+)", re.IGNORECASE)),
    ("numeric-suffix", re.compile(r"^[A-Za-z]{1,8}[-_:]?\d{5,}$")),
    ("hex-suffix", re.compile(r"^[A-Za-z]{1,8}[-_:](?=[a-f0-9]*\d)[a-f0-9]{6,}$", re.IGNORECASE)),
    ("numeric-only", re.compile(r"^\d+$")),
)

_UTILITY_CLASS_PATTERN = re.compile(
    r"^(?:d-|flex-|text-|bg-|border-|p-|m-|px-|py-|mx-|my-|pt-|pb-|mt-|mb-|col-|row-|w-|h-|gap-|"
    r"justify-|items-|align-|btn-primary|btn-secondary)"
)

_DYNAMIC_CLASS_PATTERNS = (
    re.compile(r"^css-[a-z0-9_-]{4,}$", re.IGNORECASE),
    re.compile(r"^jss\d+$", re.IGNORECASE),
    re.compile(r"^sc-[a-z0-9]+$", re.IGNORECASE),
    re.compile(r"^(?=[a-f0-9]*\d)[a-f0-9]{6,}$", re.IGNORECASE),
    re.compile(r"^[a-z0-9]+_[a-z0-9]+__[a-z0-9]{5,}$", re.IGNORECASE),
)


@dataclass(frozen=True, slots=True)
class IdentifierStability:
    value: str
    stable: bool
    reasons: tuple[str, ...]


def normalize_space(value: str | None, limit: int | None = 200) -> str:
    """Collapse whitespace the way XPath ``normalize-space()`` does."""
    if not value:
        return ""
    compact = _XPATH_WHITESPACE.sub(" ", str(value)).strip(" ")
    if limit is None:
        return compact
    return compact[:limit]


def normalize_classes(raw: Sequence[str] | str | None) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        items = raw.split()
    else:
        items = [item for item in raw if isinstance(item, str)]

    seen: set[str] = set()
    normalized: list[str] = []
    for item in items:
        clean = item.strip()
        if not clean or clean in seen:
            continue
        seen.add(clean)
        normalized.append(clean)
    return normalized


def analyze_identifier(value: str | None) -> IdentifierStability:
    text = (value or "").strip()
    reasons: list[str] = []
    if len(text) < 2:
        reasons.append("too-short")
    for reason, pattern in _VOLATILE_ID_PATTERNS:
        if pattern.search(text):
            reasons.append(reason)
    return IdentifierStability(value=text, stable=not reasons, reasons=tuple(reasons))


def is_stable_identifier(value: str | None) -> bool:
    return analyze_identifier(value).stable


def is_blocked_root_id(id_value: str) -> bool:
    return id_value.strip().lower() in ROOT_ID_BLOCKLIST_LOWER


def is_dynamic_class_token(token: str) -> bool:
    value = token.strip()
    if not value:
        return True
    if any(pattern.match(value) for pattern in _DYNAMIC_CLASS_PATTERNS):
        return True
    if len(value) > 18 and re.search(r"\d", value):
        return True
    if value.count("-") >= 3 and re.search(r"\d", value):
        return True
    return False


def is_meaningful_class(token: str) -> bool:
    value = token.strip()
    if len(value) <= 2:
        return False
    if any(char in value for char in ":/[]()"):
        return False
    if _UTILITY_CLASS_PATTERN.match(value):
        return False
    return not is_dynamic_class_token(value)


def meaningful_classes(classes: Sequence[str]) -> list[str]:
    return [token for token in classes if is_meaningful_class(token)]


def is_framework_data_attribute(name: str) -> bool:
    lowered = name.strip().lower()
    if lowered in FRAMEWORK_DATA_ATTRS:
        return True
    return lowered.startswith(FRAMEWORK_DATA_ATTR_PREFIXES)


def semantic_data_attributes(attributes: Mapping[str, str]) -> list[tuple[str, str]]:
    """Non-test, non-framework ``data-*`` attributes with stable values, shortest value first."""
    picks: list[tuple[str, str]] = []
    for name, raw in attributes.items():
        lowered = name.lower()
        if not lowered.startswith("data-") or lowered in TEST_ATTR_PRIORITY:
            continue
        if is_framework_data_attribute(lowered):
            continue
        value = str(raw)
        if not value.strip() or not is_stable_identifier(value):
            continue
        picks.append((lowered, value))
    picks.sort(key=lambda item: len(item[1]))
    return picks


def preferred_test_attributes(attributes: Mapping[str, str]) -> list[tuple[str, str]]:
    picks: list[tuple[str, str]] = []
    for attr in TEST_ATTR_PRIORITY:
        raw = str(attributes.get(attr, ""))
        if raw.strip():
            picks.append((attr, raw))
    return picks
