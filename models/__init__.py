"""Model package exports."""

from models.clothing_rule import ClothingRule, load_rules, parse_rules
from models.records import (
    CLOTHING_RULE_ATTRIBUTES,
    DEFAULT_WEATHER,
    AttributeField,
    RecommendationRequest,
    RecommendationResult,
    VectorRecord,
    WeatherSnapshot,
)

__all__ = [
    "AttributeField",
    "CLOTHING_RULE_ATTRIBUTES",
    "ClothingRule",
    "DEFAULT_WEATHER",
    "RecommendationRequest",
    "RecommendationResult",
    "VectorRecord",
    "WeatherSnapshot",
    "load_rules",
    "parse_rules",
]
