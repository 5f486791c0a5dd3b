import logging

import pytest

from pathfinderx.document import Document
from pathfinderx.locator_generator import compare_strategies, synthesize_locators
from pathfinderx.settings import EngineSettings
from pathfinderx.strategies import STRATEGY_SETS, resolve_strategy
from pathfinderx.validation import count_locator_matches, resolves_to

PAGE = """
<html><body>
<main id="app">
  <form id="login-form">
    <input id="email" name="email" type="email">
    <input name="username" type="text">
    <button data-testid="submit-login" class="btn primary-action">Sign in</button>
    <button aria-label="Close dialog" class="icon">x</button>
  </form>
  <ul class="menu">
    <li class="item">Home</li>
    <li class="item">About</li>
  </ul>
  <div id="radix-:r3:" class="panel"><span>Profile</span></div>
  <div><div><span>x</span></div></div>
  <section><label>Nickname</label><input type="text"></section>
</main>
</body></html>
"""


@pytest.fixture()
def document() -> Document:
    return Document.from_html(PAGE)


def _assert_all_valid(target, candidates) -> None:
    assert candidates
    expressions = [candidate.expression for candidate in candidates]
    assert len(expressions) == len(set(expressions))
    assert len(candidates) <= 5
    for candidate in candidates:
        assert candidate.kind in {"xpath", "css"}
        assert count_locator_matches(target.scope, candidate.kind, candidate.expression) == 1
        assert resolves_to(target, candidate.kind, candidate.expression)


def test_unique_stable_id_is_preferred(document: Document) -> None:
    target = document.query_selector("#email")
    candidates = synthesize_locators(target)

    assert candidates[0].expression == "//*[@id='email']"
    assert candidates[0].label == "ID"
    assert any(candidate.kind == "css" and candidate.expression == "#email" for candidate in candidates)
    _assert_all_valid(target, candidates)


def test_form_identity_uses_name_and_type(document: Document) -> None:
    target = document.query_selector("input[name='username']")
    candidates = synthesize_locators(target)

    assert candidates[0].expression == "//input[@name='username' and @type='text']"
    assert candidates[0].label == "Form identity"
    _assert_all_valid(target, candidates)


def test_test_attribute_tier(document: Document) -> None:
    target = document.query_selector("button.primary-action")
    candidates = synthesize_locators(target)

    assert candidates[0].expression == "//*[@data-testid='submit-login']"
    assert candidates[0].label == "Test attribute"
    _assert_all_valid(target, candidates)


def test_class_attribute_combination_and_aria_alternate(document: Document) -> None:
    target = document.query_selector("button.icon")
    candidates = synthesize_locators(target)

    assert candidates[0].label == "Class + attribute"
    assert "@aria-label='Close dialog'" in candidates[0].expression
    assert "//button[@aria-label='Close dialog']" in [candidate.expression for candidate in candidates]
    _assert_all_valid(target, candidates)


def test_volatile_id_is_never_emitted(document: Document) -> None:
    target = document.query_selector("div.panel")
    candidates = synthesize_locators(target)

    assert candidates[0].expression == "//div[contains(@class, 'panel')]"
    assert all("radix" not in candidate.expression for candidate in candidates)
    _assert_all_valid(target, candidates)


def test_non_unique_class_is_rejected(document: Document) -> None:
    target = document.xpath("//li[2]")[0]
    candidates = synthesize_locators(target)

    assert candidates[0].expression == "//li[normalize-space()='About']"
    assert "//li[contains(@class, 'item')]" not in [candidate.expression for candidate in candidates]
    _assert_all_valid(target, candidates)


def test_label_relative_tier(document: Document) -> None:
    target = document.query_selector("section > input")
    candidates = synthesize_locators(target)

    assert candidates[0].label == "Label"
    assert candidates[0].expression == (
        "//label[normalize-space()='Nickname']/following::*[self::input or self::textarea or self::select][1]"
    )
    _assert_all_valid(target, candidates)


def test_structural_fallback_always_produces_a_locator(document: Document) -> None:
    target = document.xpath("//main/div[2]/div/span")[0]
    candidates = synthesize_locators(target)

    assert candidates[0].label == "Structural"
    assert candidates[0].expression == "/html/body/main/div[2]/div/span"
    _assert_all_valid(target, candidates)


def test_every_element_gets_a_valid_primary(document: Document) -> None:
    for target in document.xpath("//body//*"):
        candidates = synthesize_locators(target)
        _assert_all_valid(target, candidates)


def test_output_is_deterministic(document: Document) -> None:
    target = document.query_selector("button.icon")
    assert synthesize_locators(target) == synthesize_locators(target)


def test_candidate_cap_follows_settings(document: Document) -> None:
    target = document.query_selector("#email")
    candidates = synthesize_locators(target, settings=EngineSettings(max_candidates=2))
    assert len(candidates) == 2
    assert candidates[0].expression == "//*[@id='email']"


def test_basic_strategy_keeps_unchecked_ids(document: Document) -> None:
    target = document.query_selector("div.panel")
    candidates = synthesize_locators(target, strategy="basic")
    assert candidates[0].expression == "//*[@id='radix-:r3:']"


def test_compare_strategies_runs_each_set(document: Document) -> None:
    target = document.query_selector("div.panel")
    results = compare_strategies(target, list(STRATEGY_SETS))

    assert list(results) == ["stable", "basic"]
    assert results["stable"][0].expression != results["basic"][0].expression


def test_unknown_strategy_falls_back_with_warning(
    document: Document,
    caplog: pytest.LogCaptureFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(logging.getLogger("pathfinderx"), "propagate", True)
    target = document.query_selector("#email")
    with caplog.at_level(logging.WARNING, logger="pathfinderx.engine"):
        candidates = synthesize_locators(target, strategy="fastest")

    assert candidates == synthesize_locators(target, strategy="stable")
    assert "Unknown strategy 'fastest'" in caplog.text
    assert resolve_strategy(None) == STRATEGY_SETS["stable"]


def test_custom_tier_tuple_still_falls_back_to_structure(document: Document) -> None:
    target = document.query_selector("#email")
    candidates = synthesize_locators(target, strategy=())
    assert candidates[0].label == "Structural"
    assert resolves_to(target, "xpath", candidates[0].expression)


SHORT_VALUES = """
<html><body>
<div><input name="q" type="search"></div>
<div><input type="search"></div>
<form>
  <input type="radio" name="size" value="1">
  <input type="radio" name="size" value="2">
</form>
</body></html>
"""

DEEP_DUPLICATES = """
<html><body>
<div><p><span><i></i><i></i></span></p></div>
<div>
  <p><span><i></i></span></p>
  <p>
    <span><i></i><i></i></span>
    <span><i></i><i></i></span>
  </p>
</div>
</body></html>
"""


def test_short_form_name_still_gets_form_identity() -> None:
    document = Document.from_html(SHORT_VALUES)
    target = document.query_selector("input[name='q']")
    candidates = synthesize_locators(target)

    assert candidates[0].label == "Form identity"
    assert candidates[0].expression == "//input[@name='q' and @type='search']"
    _assert_all_valid(target, candidates)


def test_short_attribute_values_join_attribute_combinations() -> None:
    document = Document.from_html(SHORT_VALUES)
    target = document.query_selector("input[value='2']")
    candidates = synthesize_locators(target)

    assert candidates[0].label == "Attribute combination"
    assert candidates[0].expression == "//input[@name='size' and @value='2']"
    _assert_all_valid(target, candidates)


def test_bare_element_among_duplicates_falls_back_to_structure() -> None:
    document = Document.from_html(DEEP_DUPLICATES)
    target = document.xpath("/html/body/div[2]/p[2]/span[2]/i[2]")[0]
    candidates = synthesize_locators(target)

    assert target.attributes == {}
    assert target.full_text == ""
    assert candidates[0].label == "Structural"
    assert candidates[0].expression == "/html/body/div[2]/p[2]/span[2]/i[2]"
    assert document.xpath(candidates[0].expression) == [target]
    _assert_all_valid(target, candidates)
