import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pathfinderx.cli import app, candidate_status
from pathfinderx.document import Document
from pathfinderx.models import CandidateLocator

PAGE = """
<html><body>
  <form id="login">
    <label for="email">Email</label>
    <input id="email" name="email" type="email">
    <button type="submit">Sign in</button>
  </form>
</body></html>
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def page(tmp_path: Path) -> Path:
    path = tmp_path / "login.html"
    path.write_text(PAGE, encoding="utf-8")
    return path


def _base_args(command: str, page: Path, tmp_path: Path) -> list[str]:
    return [command, str(page), "--config", str(tmp_path / "missing.json")]


def test_locate_prints_json_candidates(runner: CliRunner, page: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, _base_args("locate", page, tmp_path) + ["-s", "#email", "--json"])

    assert result.exit_code == 0
    records = json.loads(result.stdout)
    assert records[0]["expression"] == "//*[@id='email']"
    assert records[0]["label"] == "ID"
    assert all(record["kind"] in {"xpath", "css"} for record in records)


def test_locate_renders_table(runner: CliRunner, page: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, _base_args("locate", page, tmp_path) + ["-s", "button"])

    assert result.exit_code == 0
    assert "Locators for button" in result.stdout


def test_locate_reports_missing_element(runner: CliRunner, page: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, _base_args("locate", page, tmp_path) + ["-s", "#nothing"])
    assert result.exit_code == 1


def test_locate_reports_missing_file(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(app, _base_args("locate", tmp_path / "gone.html", tmp_path) + ["-s", "body"])
    assert result.exit_code == 1


def test_relate_prints_json_options(runner: CliRunner, page: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, _base_args("relate", page, tmp_path) + ["-a", "#email", "-t", "button", "--json"])

    assert result.exit_code == 0
    options = json.loads(result.stdout)
    assert options
    assert options[0]["label"] == "Following sibling"
    assert all(set(option) >= {"label", "expression"} for option in options)


def test_compare_runs_every_strategy_set(runner: CliRunner, page: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, _base_args("compare", page, tmp_path) + ["-s", "#email", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert set(payload) == {"stable", "basic"}
    assert payload["stable"][0]["expression"] == "//*[@id='email']"


def test_version_option(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.stdout


def test_candidate_status_flags_a_different_element() -> None:
    document = Document.from_html(PAGE)
    button = document.query_selector("button")

    assert candidate_status(button, CandidateLocator("xpath", "//button", "Button")).unique
    wrong = candidate_status(button, CandidateLocator("xpath", "//input", "Input"))
    assert not wrong.unique
    assert wrong.message == "Locator matches a different element."
    assert candidate_status(button, CandidateLocator("css", "form > *", "Any")).match_count == 3


def test_candidate_status_checks_shadow_trails() -> None:
    document = Document.from_html(
        '<html><body><x-menu id="menu"><template shadowrootmode="open">'
        "<button>Open</button></template></x-menu></body></html>"
    )
    button = document.query_selector("#menu").shadow_root.select("button")[0]

    assert candidate_status(button, CandidateLocator("shadow", "#menu >>> button", "Shadow DOM")).unique
    assert candidate_status(button, CandidateLocator("shadow", "#menu >>> a", "Shadow DOM")).match_count == 0
