"""Read-only document snapshot the synthesis engine runs against.

A :class:`Document` wraps an lxml HTML tree. Open shadow roots live in their
own detached trees (one :class:`Scope` each) so that XPath and CSS evaluation
never crosses a shadow boundary, the same way ``document.evaluate`` and
``querySelectorAll`` behave in a browser.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Sequence

import lxml.html
from lxml import etree
from lxml.cssselect import CSSSelector

from .models import DocumentOrder
from .selector_rules import normalize_classes, normalize_space

logger = logging.getLogger("pathfinderx.engine")

SHADOW_ROOT_TAG = "shadow-root"
PLACEHOLDER_TAG = "unknown-element"
_SHADOW_TEMPLATE_ATTRS = ("shadowrootmode", "shadowroot")
_XML_UNSAFE_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def _element_children(element: Any) -> list[Any]:
    return [child for child in element if isinstance(child.tag, str)]


class Scope:
    """The document itself or one shadow root."""

    def __init__(self, document: Document, root: Any, host: NodeRef | None = None) -> None:
        self.document = document
        self.root = root
        self.host = host

    def __repr__(self) -> str:
        if self.host is None:
            return "<Scope document>"
        return f"<Scope shadow-root of {self.host!r}>"

    @property
    def is_shadow(self) -> bool:
        return self.host is not None

    def xpath(self, expression: str) -> list[NodeRef]:
        """Evaluate an XPath 1.0 expression; raises on malformed input or non-node-set results."""
        text = expression.strip()
        if self.is_shadow and text.startswith("/") and not text.startswith("//"):
            # Absolute paths inside a shadow root start at the shadow root itself.
            text = "/*" + text
        result = self.root.getroottree().xpath(text)
        if not isinstance(result, list):
            raise ValueError(f"XPath expression does not select nodes: {expression}")
        return self._wrap(result)

    def select(self, selector: str) -> list[NodeRef]:
        matcher = CSSSelector(selector, translator="html")
        return self._wrap(matcher(self.root))

    def _wrap(self, items: Sequence[Any]) -> list[NodeRef]:
        nodes: list[NodeRef] = []
        for item in items:
            if not isinstance(item, etree._Element) or not isinstance(item.tag, str):
                continue
            if self.is_shadow and item is self.root:
                continue
            nodes.append(NodeRef(self.document, item))
        return nodes


@dataclass(frozen=True, slots=True)
class NodeRef:
    document: Document
    element: Any

    def __repr__(self) -> str:
        ident = self.element_id
        suffix = f"#{ident}" if ident else ""
        return f"<NodeRef {self.tag}{suffix}>"

    @property
    def tag(self) -> str:
        return str(self.element.tag).lower()

    @property
    def element_id(self) -> str | None:
        return self.attr("id")

    @property
    def classes(self) -> list[str]:
        return normalize_classes(self.element.get("class"))

    @property
    def attributes(self) -> dict[str, str]:
        return {str(key): str(value) for key, value in self.element.attrib.items()}

    def attr(self, name: str) -> str | None:
        raw = self.element.get(name)
        if raw is None or not str(raw).strip():
            return None
        return str(raw)

    @property
    def full_text(self) -> str:
        return normalize_space(str(self.element.xpath("string()")), limit=None)

    @property
    def text(self) -> str:
        return normalize_space(str(self.element.xpath("string()")), limit=200)

    @property
    def own_text(self) -> str:
        """Normalized first child text node, as ``normalize-space(text())`` sees it."""
        return normalize_space(str(self.element.xpath("string(text())")), limit=None)

    @property
    def parent(self) -> NodeRef | None:
        parent = self.element.getparent()
        if parent is None or self.document.is_shadow_wrapper(parent):
            return None
        return NodeRef(self.document, parent)

    @property
    def children(self) -> list[NodeRef]:
        return [NodeRef(self.document, child) for child in _element_children(self.element)]

    def ancestors(self) -> Iterator[NodeRef]:
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def previous_siblings(self) -> list[NodeRef]:
        """Preceding element siblings, nearest first."""
        return [
            NodeRef(self.document, sibling)
            for sibling in self.element.itersiblings(preceding=True)
            if isinstance(sibling.tag, str)
        ]

    def _same_tag_siblings(self) -> list[Any]:
        container = self.element.getparent()
        if container is None:
            return [self.element]
        return [child for child in _element_children(container) if child.tag == self.element.tag]

    @property
    def sibling_position(self) -> int:
        siblings = self._same_tag_siblings()
        for index, sibling in enumerate(siblings, start=1):
            if sibling is self.element:
                return index
        return 1

    @property
    def same_tag_sibling_count(self) -> int:
        return len(self._same_tag_siblings())

    @property
    def scope(self) -> Scope:
        return self.document.scope_of(self)

    @property
    def shadow_root(self) -> Scope | None:
        return self.document.shadow_scope_of(self)

    @property
    def is_document_root(self) -> bool:
        return self.element is self.document.root.element


class Document:
    def __init__(self, root: Any, shadow_roots: Mapping[Any, Any] | None = None) -> None:
        self._root = root
        self._shadow_scopes: dict[Any, Scope] = {}
        self._wrappers: set[Any] = set()
        self.scope = Scope(self, root)
        for host, wrapper in (shadow_roots or {}).items():
            self._shadow_scopes[host] = Scope(self, wrapper, host=NodeRef(self, host))
            self._wrappers.add(wrapper)
        self._order, self._scopes = self._index()

    @classmethod
    def from_html(cls, markup: str | bytes) -> Document:
        root = lxml.html.document_fromstring(markup)
        shadow_roots: dict[Any, Any] = {}
        _lift_declarative_shadow_roots(root, shadow_roots)
        return cls(root, shadow_roots)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Document:
        shadow_roots: dict[Any, Any] = {}
        root = _build_element(payload, shadow_roots)
        return cls(root, shadow_roots)

    @property
    def root(self) -> NodeRef:
        return NodeRef(self, self._root)

    def scope_of(self, node: NodeRef) -> Scope:
        return self._scopes[node.element]

    def shadow_scope_of(self, node: NodeRef) -> Scope | None:
        return self._shadow_scopes.get(node.element)

    def is_shadow_wrapper(self, element: Any) -> bool:
        return element in self._wrappers

    def query_selector(self, selector: str) -> NodeRef | None:
        matches = self.scope.select(selector)
        return matches[0] if matches else None

    def query_selector_all(self, selector: str) -> list[NodeRef]:
        return self.scope.select(selector)

    def xpath(self, expression: str) -> list[NodeRef]:
        return self.scope.xpath(expression)

    def is_descendant(self, node: NodeRef, ancestor: NodeRef) -> bool:
        """True when ``node`` lies strictly inside ``ancestor`` in the same tree."""
        return any(item is ancestor.element for item in node.element.iterancestors())

    def document_order(self, first: NodeRef, second: NodeRef) -> DocumentOrder:
        """Position of ``first`` relative to ``second`` in composed document order."""
        left = self._order[first.element]
        right = self._order[second.element]
        if left == right:
            return "same"
        return "before" if left < right else "after"

    def resolve_path(self, steps: Sequence[Mapping[str, Any]]) -> NodeRef:
        """Resolve a top-down list of ``{"index": int, "shadow": bool}`` steps from the root element."""
        current = self._root
        for step in steps:
            container = current
            if step.get("shadow"):
                scope = self._shadow_scopes.get(current)
                if scope is None:
                    raise LookupError(f"<{current.tag}> has no captured shadow root")
                container = scope.root
            children = _element_children(container)
            index = int(step.get("index", -1))
            if not 0 <= index < len(children):
                raise LookupError(f"child index {index} out of range under <{container.tag}>")
            current = children[index]
        return NodeRef(self, current)

    def _index(self) -> tuple[dict[Any, int], dict[Any, Scope]]:
        order: dict[Any, int] = {}
        scopes: dict[Any, Scope] = {}
        stack: list[tuple[Any, Scope]] = [(self._root, self.scope)]
        while stack:
            element, scope = stack.pop()
            order[element] = len(order)
            scopes[element] = scope
            stack.extend(reversed([(child, scope) for child in _element_children(element)]))
            shadow = self._shadow_scopes.get(element)
            if shadow is not None:
                stack.extend(reversed([(child, shadow) for child in _element_children(shadow.root)]))
        return order, scopes


def _first_shadow_template(element: Any) -> Any | None:
    for child in _element_children(element):
        if child.tag == "template" and any(child.get(attr) for attr in _SHADOW_TEMPLATE_ATTRS):
            return child
    return None


def _detach(element: Any) -> None:
    parent = element.getparent()
    previous = element.getprevious()
    tail = element.tail
    parent.remove(element)
    if not tail:
        return
    if previous is not None:
        previous.tail = (previous.tail or "") + tail
    else:
        parent.text = (parent.text or "") + tail


def _lift_declarative_shadow_roots(root: Any, registry: dict[Any, Any]) -> None:
    wrappers: set[Any] = set()
    pending = [root]
    while pending:
        element = pending.pop()
        if element not in wrappers:
            template = _first_shadow_template(element)
            if template is not None:
                wrapper = lxml.html.Element(SHADOW_ROOT_TAG)
                wrapper.text = template.text
                for child in list(template):
                    wrapper.append(child)
                _detach(template)
                registry[element] = wrapper
                wrappers.add(wrapper)
                pending.append(wrapper)
        pending.extend(_element_children(element))


def _xml_safe(value: Any) -> str:
    return _XML_UNSAFE_CHARS.sub("", str(value))


def _make_element(tag: str, attrs: Mapping[str, Any]) -> Any:
    name = tag.strip().lower()
    try:
        element = lxml.html.Element(name)
    except ValueError:
        logger.debug("Replacing unsupported tag name %r with placeholder.", tag)
        element = lxml.html.Element(PLACEHOLDER_TAG)
    for key, value in attrs.items():
        try:
            element.set(str(key), _xml_safe(value))
        except ValueError:
            logger.debug("Skipping unsupported attribute %r on <%s>.", key, name)
    return element


def _append_children(parent: Any, children: Sequence[Any], registry: dict[Any, Any]) -> None:
    last = None
    for child in children:
        if not isinstance(child, Mapping):
            continue
        if "tag" not in child:
            text = _xml_safe(child.get("text") or "")
            if last is None:
                parent.text = (parent.text or "") + text
            else:
                last.tail = (last.tail or "") + text
            continue
        element = _build_element(child, registry)
        parent.append(element)
        last = element


def _build_element(node: Mapping[str, Any], registry: dict[Any, Any]) -> Any:
    attrs = node.get("attrs") or {}
    element = _make_element(str(node.get("tag") or ""), attrs if isinstance(attrs, Mapping) else {})
    _append_children(element, node.get("children") or [], registry)
    shadow = node.get("shadow")
    if shadow is not None:
        wrapper = lxml.html.Element(SHADOW_ROOT_TAG)
        _append_children(wrapper, shadow, registry)
        registry[element] = wrapper
    return element
