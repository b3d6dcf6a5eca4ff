"""
Mining Relevance Classifier Module
"""
from eddn_stream.classifier.classifier import (
    ClassifierStats,
    MessageClassifier,
    classify,
    extract_schema_type,
    is_mining_commodity,
)
from eddn_stream.classifier.rules import DEFAULT_RULES_PATH, ClassifierRules, load_rules

__all__ = [
    "ClassifierRules",
    "ClassifierStats",
    "DEFAULT_RULES_PATH",
    "MessageClassifier",
    "classify",
    "extract_schema_type",
    "is_mining_commodity",
    "load_rules",
]
