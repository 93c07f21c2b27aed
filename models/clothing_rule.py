"""Clothing rule data model and rule file loading."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, model_validator

from outfit_app.errors import ValidationError


class _RuleEntry(BaseModel):
    temperature_min: int
    temperature_max: int
    weather: str = Field(min_length=1, max_length=50)
    schedule: str = ""
    preference: str = Field(min_length=1, max_length=50)
    outfit: str = Field(min_length=1, max_length=500)

    @model_validator(mode="after")
    def _check_bounds(self) -> "_RuleEntry":
        if self.temperature_min > self.temperature_max:
            raise ValueError("temperature_min cannot exceed temperature_max")
        return self


class _RuleFile(BaseModel):
    rules: List[_RuleEntry] = []


@dataclass(frozen=True)
class ClothingRule:
    """A static rule mapping a temperature band and weather to an outfit."""

    temperature_min: int
    temperature_max: int
    weather: str
    schedule: str
    preference: str
    outfit: str

    def describe(self) -> str:
        """Render the rule as the sentence that gets embedded."""

        parts = [f"Temperature {self.temperature_min}-{self.temperature_max}°C", f"weather {self.weather}"]
        if self.schedule:
            parts.append(f"schedule {self.schedule}")
        parts.append(f"preference {self.preference}")
        return f"{', '.join(parts)}: {self.outfit}"


def parse_rules(payload: dict) -> List[ClothingRule]:
    """Validate a decoded rule file and return immutable rules."""

    try:
        parsed = _RuleFile.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid clothing rule file: {exc}") from exc
    return [ClothingRule(**entry.model_dump()) for entry in parsed.rules]


def load_rules(path: str | Path) -> List[ClothingRule]:
    """Read the JSON rule file at ``path``."""

    rule_path = Path(path)
    try:
        payload = json.loads(rule_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValidationError(f"Failed to load rules from {rule_path}: {exc}") from exc
    return parse_rules(payload)


__all__ = ["ClothingRule", "load_rules", "parse_rules"]
