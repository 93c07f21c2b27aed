"""Command line entrypoint behaviour with an injected application."""

from __future__ import annotations

import pytest

from main import build_parser, main
from models.records import DEFAULT_WEATHER, RecommendationResult
from outfit_app.app import OutfitRecommenderApp
from outfit_app.config import AppConfig
from outfit_app.errors import RecommendationError, ValidationError
from tools import init_rule_store
from tools.vector_store import InMemoryVectorStore


class _FakeApp:
    def __init__(self, text: str = "Bring an umbrella.", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[tuple] = []
        self.remembered: list[tuple] = []
        self.connected = False
        self.closed = False

    def __enter__(self) -> "_FakeApp":
        self.connected = True
        return self

    def __exit__(self, *exc_info) -> None:
        self.closed = True

    def recommend(self, user_input, preference=None, location=None, deadline=None):
        self.calls.append((user_input, preference, location))
        if self.error is not None:
            raise self.error
        return RecommendationResult(text=self.text, rules_used=[], weather=DEFAULT_WEATHER)

    def remember(self, user_input, result, preference=""):
        self.remembered.append((user_input, result.text, preference))
        return True


def test_parser_defaults_match_cli_contract() -> None:
    args = build_parser().parse_args([])

    assert args.question == ""
    assert args.pref == "casual"
    assert args.loc == "Beijing"
    assert args.remember is False


def test_main_prints_recommendation_and_exits_zero(capsys: pytest.CaptureFixture[str]) -> None:
    app = _FakeApp()

    code = main(["-question", "Is it rainy?", "-loc", "Shanghai"], app_factory=lambda: app)

    assert code == 0
    assert capsys.readouterr().out.strip() == "Bring an umbrella."
    assert app.calls == [("Is it rainy?", "casual", "Shanghai")]
    assert app.connected and app.closed
    assert app.remembered == []


def test_remember_flag_stores_preference() -> None:
    app = _FakeApp()

    main(["-question", "I like linen", "-pref", "formal", "-remember"], app_factory=lambda: app)

    assert app.remembered == [("I like linen", "Bring an umbrella.", "formal")]


@pytest.mark.parametrize(
    "error", [ValidationError("user question is required"), RecommendationError("LLM request failed")]
)
def test_errors_print_message_and_exit_nonzero(capsys: pytest.CaptureFixture[str], error) -> None:
    app = _FakeApp(error=error)

    code = main(["-question", "anything"], app_factory=lambda: app)

    assert code == 1
    assert capsys.readouterr().out.strip() == f"Error: {error}"
    assert app.closed


def test_init_rule_store_loads_rules_into_offline_store(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    rules = tmp_path / "rules.json"
    rules.write_text(
        '{"rules": [{"temperature_min": 0, "temperature_max": 10, "weather": "rainy",'
        ' "preference": "casual", "outfit": "Raincoat"}]}',
        encoding="utf-8",
    )
    store = InMemoryVectorStore(dimension=8)

    def factory() -> OutfitRecommenderApp:
        return OutfitRecommenderApp(AppConfig(embedding_backend="hashing", embedding_dimension=8), store=store)

    assert init_rule_store.main(["--rules", str(rules)], app_factory=factory) == 0
    assert store.count() == 1
    assert "Stored 1 rules in outfit_preferences (0 failed)" in capsys.readouterr().out

    assert init_rule_store.main(["--rules", str(tmp_path / "missing.json")], app_factory=factory) == 1
