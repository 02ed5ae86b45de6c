"""Layers package initialization."""
from schemagen.layers.page_classifier import ClassificationResult, PageClassifier, classify, classify_with_details
from schemagen.layers.ai_generation import AIGenerationLayer, AIGenerationResult, parse_ai_response

__all__ = [
    "ClassificationResult",
    "PageClassifier",
    "classify",
    "classify_with_details",
    "AIGenerationLayer",
    "AIGenerationResult",
    "parse_ai_response",
]
