from pathfinderx.anchors import find_stable_anchor
from pathfinderx.document import Document


def _node(markup: str, selector: str):
    document = Document.from_html(markup)
    node = document.query_selector(selector)
    assert node is not None
    return node


def test_nearest_test_attribute_ancestor_is_used() -> None:
    span = _node(
        "<html><body><section data-testid='profile'><div><span>Name</span></div></section></body></html>",
        "span",
    )
    anchor = find_stable_anchor(span)

    assert anchor is not None
    assert anchor.node.tag == "section"
    assert anchor.expression == "//*[@data-testid='profile']"
    assert anchor.hops == 2


def test_stable_id_wins_over_test_attribute_on_the_same_ancestor() -> None:
    span = _node(
        "<html><body><div id='sidebar' data-testid='side'><span>x</span></div></body></html>",
        "span",
    )
    anchor = find_stable_anchor(span)

    assert anchor is not None
    assert anchor.expression == "//*[@id='sidebar']"
    assert anchor.hops == 1


def test_root_containers_and_volatile_ids_are_skipped() -> None:
    assert find_stable_anchor(_node("<html><body><div id='root'><span>x</span></div></body></html>", "span")) is None
    assert find_stable_anchor(_node("<html><body><div id='ember123'><span>x</span></div></body></html>", "span")) is None


def test_non_unique_attributes_do_not_anchor() -> None:
    markup = (
        "<html><body>"
        "<div role='row'><span class='a'>x</span></div>"
        "<div role='row'><span class='b'>y</span></div>"
        "<form name='search'><div role='row'><span class='c'>z</span></div></form>"
        "</body></html>"
    )
    assert find_stable_anchor(_node(markup, "span.a")) is None

    anchor = find_stable_anchor(_node(markup, "span.c"))
    assert anchor is not None
    assert anchor.expression == "//form[@name='search']"
    assert anchor.hops == 2


def test_walk_stops_after_max_hops() -> None:
    nested = "<section data-testid='outer'>" + "<div>" * 7 + "<span>deep</span>" + "</div>" * 7 + "</section>"
    span = _node(f"<html><body>{nested}</body></html>", "span")

    assert find_stable_anchor(span) is None
    anchor = find_stable_anchor(span, max_hops=8)
    assert anchor is not None
    assert anchor.hops == 8
