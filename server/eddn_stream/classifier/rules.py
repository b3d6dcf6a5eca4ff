"""
Classifier Rule Tables

The allow-lists and mining vocabulary used by the classifier are data, not
code. They are loaded from a JSON document so they can be tuned without
touching the classification logic.

File format:
  {
    "schema_types":       ["commodity", "journal", ...],
    "journal_schema":     "journal",
    "commodity_schema":   "commodity",
    "journal_events":     ["MiningRefined", ...],
    "transaction_events": ["MarketBuy", "MarketSell"],
    "mining_commodities": ["painite", "gold", ...]
  }
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from eddn_stream.core.types import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).with_name("default_rules.json")

_LIST_FIELDS = (
    "schema_types",
    "journal_events",
    "transaction_events",
    "mining_commodities",
)


@dataclass(frozen=True)
class ClassifierRules:
    """Immutable rule set consumed by classify()."""

    schema_types: frozenset[str]
    journal_events: frozenset[str]
    transaction_events: frozenset[str]
    mining_commodities: tuple[str, ...]
    journal_schema: str = "journal"
    commodity_schema: str = "commodity"

    def __post_init__(self) -> None:
        if not self.schema_types:
            raise ValidationError("schema_types must not be empty", field="schema_types")
        if not self.transaction_events <= self.journal_events:
            raise ValidationError(
                "transaction_events must be a subset of journal_events",
                field="transaction_events",
                value=sorted(self.transaction_events - self.journal_events),
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClassifierRules:
        """Build rules from a parsed JSON document."""
        if not isinstance(data, dict):
            raise ValidationError("Rules document must be a JSON object", value=data)

        lists: dict[str, list[str]] = {}
        for name in _LIST_FIELDS:
            value = data.get(name, [])
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValidationError(f"{name} must be a list of strings", field=name, value=value)
            lists[name] = value

        journal_schema = data.get("journal_schema", "journal")
        commodity_schema = data.get("commodity_schema", "commodity")
        for name, value in (("journal_schema", journal_schema), ("commodity_schema", commodity_schema)):
            if not isinstance(value, str) or not value:
                raise ValidationError(f"{name} must be a non-empty string", field=name, value=value)

        # Vocabulary is matched case-insensitively; normalize once here
        vocabulary = tuple(dict.fromkeys(term.lower() for term in lists["mining_commodities"] if term))

        return cls(
            schema_types=frozenset(lists["schema_types"]),
            journal_events=frozenset(lists["journal_events"]),
            transaction_events=frozenset(lists["transaction_events"]),
            mining_commodities=vocabulary,
            journal_schema=journal_schema,
            commodity_schema=commodity_schema,
        )


def load_rules(path: Optional[Union[str, Path]] = None) -> ClassifierRules:
    """
    Load classifier rules from a JSON file.

    Args:
        path: Rules file. Defaults to the packaged default_rules.json.

    Raises:
        ValidationError: If the file is missing, unreadable or invalid.
    """
    rules_path = Path(path) if path else DEFAULT_RULES_PATH

    try:
        data = json.loads(rules_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValidationError(
            f"Cannot read classifier rules: {e}",
            path=rules_path,
        ) from e
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Classifier rules are not valid JSON: {e}",
            path=rules_path,
        ) from e

    rules = ClassifierRules.from_dict(data)
    logger.info(
        "Loaded classifier rules",
        extra={
            "path": str(rules_path),
            "schema_types": len(rules.schema_types),
            "journal_events": len(rules.journal_events),
            "vocabulary": len(rules.mining_commodities),
        },
    )
    return rules
