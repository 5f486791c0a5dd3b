from typing import Any

import pytest

from pathfinderx.dom_extractor import CaptureError, capture_document, capture_node
from pathfinderx.locator_generator import synthesize_locators


class FakePage:
    def __init__(self, payload: Any) -> None:
        self.payload = payload
        self.scripts: list[str] = []

    def evaluate(self, script: str) -> Any:
        self.scripts.append(script)
        return self.payload


class FakeElement:
    def __init__(self, steps: Any) -> None:
        self.steps = steps

    def evaluate(self, script: str) -> Any:
        return self.steps


def _payload() -> dict[str, Any]:
    return {
        "tag": "html",
        "attrs": {},
        "children": [
            {"tag": "head", "attrs": {}, "children": []},
            {
                "tag": "body",
                "attrs": {},
                "children": [
                    {"text": "\n  "},
                    {
                        "tag": "todo-app",
                        "attrs": {"id": "todos"},
                        "children": [],
                        "shadow": [
                            {"tag": "input", "attrs": {"name": "new-todo", "type": "text"}, "children": []},
                            {"tag": "button", "attrs": {"class": "add"}, "children": [{"text": "Add"}]},
                        ],
                    },
                    {"tag": "footer", "attrs": {"data-testid": "footer"}, "children": [{"text": "Made with care"}]},
                ],
            },
        ],
    }


def test_capture_document_builds_snapshot_with_shadow_roots() -> None:
    page = FakePage(_payload())
    document = capture_document(page)

    assert len(page.scripts) == 1
    assert "shadowRoot" in page.scripts[0]
    host = document.query_selector("#todos")
    assert host is not None
    assert host.shadow_root is not None
    assert document.query_selector("input") is None
    assert document.query_selector("footer").text == "Made with care"


def test_capture_node_resolves_shadow_steps() -> None:
    document = capture_document(FakePage(_payload()))
    node = capture_node(
        document,
        FakeElement([{"index": 1, "shadow": False}, {"index": 0, "shadow": False}, {"index": 1, "shadow": True}]),
    )

    assert node.tag == "button"
    assert node.scope.is_shadow
    candidates = synthesize_locators(node)
    assert candidates[-1].kind == "shadow"
    assert candidates[-1].expression == "#todos >>> button"


def test_capture_errors_are_reported() -> None:
    with pytest.raises(CaptureError):
        capture_document(FakePage(None))

    document = capture_document(FakePage(_payload()))
    with pytest.raises(CaptureError):
        capture_node(document, FakeElement(None))
    with pytest.raises(CaptureError):
        capture_node(document, FakeElement([{"index": 9, "shadow": False}]))
    with pytest.raises(CaptureError):
        capture_node(document, FakeElement(["body"]))
