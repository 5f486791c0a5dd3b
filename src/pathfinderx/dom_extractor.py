from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from .document import Document

if TYPE_CHECKING:
    from playwright.sync_api import ElementHandle, Page

    from .document import NodeRef


class CaptureError(RuntimeError):
    pass


_SERIALIZE_SCRIPT = """
() => {
  const serializeChildren = (nodes) => {
    const items = [];
    for (const child of Array.from(nodes)) {
      const item = serialize(child);
      if (item) items.push(item);
    }
    return items;
  };

  const serialize = (node) => {
    if (node.nodeType === Node.TEXT_NODE) {
      return { text: node.nodeValue || '' };
    }
    if (node.nodeType !== Node.ELEMENT_NODE) {
      return null;
    }
    const attrs = {};
    for (const attr of Array.from(node.attributes || [])) {
      attrs[attr.name] = attr.value;
    }
    const payload = {
      tag: (node.localName || node.tagName || '').toLowerCase(),
      attrs,
      children: serializeChildren(node.childNodes),
    };
    if (node.shadowRoot) {
      payload.shadow = serializeChildren(node.shadowRoot.childNodes);
    }
    return payload;
  };

  return document.documentElement ? serialize(document.documentElement) : null;
}
"""

_NODE_PATH_SCRIPT = """
(el) => {
  const steps = [];
  let current = el;
  while (current && current !== document.documentElement) {
    const parent = current.parentNode;
    if (!parent) return null;
    const inShadow = parent instanceof ShadowRoot;
    steps.push({ index: Array.from(parent.children).indexOf(current), shadow: inShadow });
    current = inShadow ? parent.host : parent;
  }
  return current ? steps.reverse() : null;
}
"""


def capture_document(page: Page) -> Document:
    """Serialize the live page, open shadow roots included, into a :class:`Document`."""
    payload: Any = page.evaluate(_SERIALIZE_SCRIPT)
    if not isinstance(payload, Mapping):
        raise CaptureError("Page has no document element to capture.")
    return Document.from_payload(payload)


def capture_node(document: Document, element: ElementHandle) -> NodeRef:
    steps: Any = element.evaluate(_NODE_PATH_SCRIPT)
    if not isinstance(steps, list) or not all(isinstance(step, Mapping) for step in steps):
        raise CaptureError("Element is not attached to the page.")
    try:
        return document.resolve_path(steps)
    except LookupError as exc:
        raise CaptureError(f"Element is missing from the captured snapshot: {exc}") from exc
