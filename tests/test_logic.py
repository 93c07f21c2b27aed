"""Pure pipeline helpers: deadlines, prompt assembly and request validation."""

from __future__ import annotations

import pytest

from logic.deadline import Deadline, effective_timeout
from logic.prompt import INSTRUCTION, format_weather, render_prompt
from logic.validation import validate_request
from models.records import WeatherSnapshot
from outfit_app.errors import DeadlineExceeded, ValidationError


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_unbounded_deadline_never_expires() -> None:
    deadline = Deadline()

    assert deadline.remaining() is None
    assert not deadline.expired
    deadline.check("anything")


def test_deadline_counts_down_and_expires() -> None:
    clock = _Clock()
    deadline = Deadline(10.0, clock=clock)

    clock.now += 4.0
    assert deadline.remaining() == pytest.approx(6.0)

    clock.now += 6.0
    assert deadline.expired
    assert deadline.remaining() == 0.0
    with pytest.raises(DeadlineExceeded, match="LLM call"):
        deadline.check("LLM call")


def test_cancel_expires_immediately() -> None:
    deadline = Deadline(30.0)
    deadline.cancel()

    assert deadline.cancelled
    assert deadline.remaining() == 0.0
    with pytest.raises(DeadlineExceeded, match="cancelled"):
        deadline.check("weather lookup")


def test_negative_deadline_is_rejected() -> None:
    with pytest.raises(ValueError):
        Deadline(-1.0)


@pytest.mark.parametrize("default, ceiling, expected", [(10.0, None, 10.0), (10.0, 3.0, 3.0), (2.0, 5.0, 2.0)])
def test_effective_timeout_takes_the_tighter_bound(default, ceiling, expected) -> None:
    assert effective_timeout(default, ceiling) == expected


def test_prompt_contains_question_weather_rules_and_instruction() -> None:
    weather = WeatherSnapshot.from_bounds(min_temp=2.0, max_temp=8.0, condition="cloudy")

    prompt = render_prompt("  What should I wear?  ", weather, ["Wool coat", "Puffer jacket"])

    assert prompt.splitlines() == [
        "User question: What should I wear?",
        "",
        "Current weather: cloudy, 2-8°C (average 5.0°C)",
        "",
        "Relevant clothing rules:",
        "Wool coat",
        "Puffer jacket",
        "",
        INSTRUCTION,
    ]


def test_prompt_with_no_rules_is_still_well_formed() -> None:
    weather = WeatherSnapshot.from_bounds(min_temp=15.0, max_temp=25.0, condition="sunny")

    prompt = render_prompt("Hi", weather, [])

    assert "Relevant clothing rules:\n\n" in prompt
    assert prompt.endswith(INSTRUCTION)
    assert format_weather(weather) == "sunny, 15-25°C (average 20.0°C)"


def test_validate_request_applies_defaults_for_blank_fields() -> None:
    request = validate_request("Any tips?", "  ", None, default_preference="casual", default_location="Shanghai")

    assert request.user_input == "Any tips?"
    assert request.preference == "casual"
    assert request.location == "Shanghai"


def test_validate_request_strips_optional_fields() -> None:
    request = validate_request("Any tips?", " formal ", " Beijing ")

    assert request.preference == "formal"
    assert request.location == "Beijing"


@pytest.mark.parametrize("user_input", [None, "", "  \n "])
def test_validate_request_rejects_empty_question(user_input) -> None:
    with pytest.raises(ValidationError):
        validate_request(user_input)


@pytest.mark.parametrize("ceiling", [0.0, -1.0])
def test_effective_timeout_rejects_spent_budget(ceiling) -> None:
    with pytest.raises(DeadlineExceeded, match="exhausted"):
        effective_timeout(5.0, ceiling)
