"""
Mining Relevance Classifier

Decides whether a decoded EDDN message matters for mining activity.
classify() is a pure function of (message, rules); MessageClassifier only
adds counters around it.

Decision order (first failure wins):
  1. $schemaRef must look like .../schemas/<type>/<version>
  2. <type> must be in the schema allow-list
  3. journal: event must be allow-listed; MarketBuy/MarketSell also need a
     mining commodity in "Type"
  4. commodity: at least one commodities[].name must be a mining commodity
  5. any other allow-listed schema is accepted
"""
from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from eddn_stream.classifier.rules import ClassifierRules
from eddn_stream.models.message import ClassificationResult, DecodedMessage

logger = logging.getLogger(__name__)

SCHEMA_REF_PATTERN = re.compile(r"/schemas/([^/]+)/(\d+)")


def extract_schema_type(schema_ref: Optional[str]) -> Optional[str]:
    """Return the <type> segment of a schema URL, or None."""
    if not schema_ref:
        return None
    match = SCHEMA_REF_PATTERN.search(schema_ref)
    if match is None:
        return None
    return match.group(1)


def is_mining_commodity(name: Any, vocabulary: Iterable[str]) -> bool:
    """
    Case-insensitive, bidirectional substring match against the vocabulary.

    "Gold" matches "gold"; "LowTemperatureDiamond" matches
    "lowtemperaturediamond"; a short name such as "tin" also matches any
    vocabulary term that contains it.
    """
    if not name or not isinstance(name, str):
        return False
    lowered = name.lower()
    return any(term in lowered or lowered in term for term in vocabulary)


def _first_mining_commodity(commodities: list[Any], vocabulary: Iterable[str]) -> Optional[str]:
    for item in commodities:
        if isinstance(item, dict) and is_mining_commodity(item.get("name"), vocabulary):
            return item["name"]
    return None


def classify(message: DecodedMessage, rules: ClassifierRules) -> ClassificationResult:
    """Classify one message. Pure: no I/O and no state."""
    if not message.schema_ref or not message.has_body:
        return ClassificationResult.rejected("missing schema reference or message body")

    schema_type = extract_schema_type(message.schema_ref)
    if schema_type is None:
        return ClassificationResult.rejected("unrecognised schema reference")

    if schema_type not in rules.schema_types:
        return ClassificationResult.rejected("schema not allow-listed", schema_type)

    body = message.body

    if schema_type == rules.journal_schema and body.get("event"):
        event = body["event"]
        if not isinstance(event, str) or event not in rules.journal_events:
            return ClassificationResult.rejected(f"journal event {event} not allow-listed", schema_type)

        if event in rules.transaction_events:
            commodity = body.get("Type")
            if not is_mining_commodity(commodity, rules.mining_commodities):
                return ClassificationResult.rejected(
                    f"{event} of non-mining commodity {commodity!r}", schema_type
                )
            return ClassificationResult.accepted(schema_type, f"{event} of {commodity}")

        return ClassificationResult.accepted(schema_type, f"journal event {event}")

    if schema_type == rules.commodity_schema:
        commodities = body.get("commodities")
        if isinstance(commodities, list):
            matched = _first_mining_commodity(commodities, rules.mining_commodities)
            if matched is None:
                return ClassificationResult.rejected("no mining commodities listed", schema_type)
            return ClassificationResult.accepted(schema_type, f"market lists {matched}")

    return ClassificationResult.accepted(schema_type, f"{schema_type} schema")


@dataclass
class ClassifierStats:
    """Counters for classified traffic."""

    messages_classified: int = 0
    messages_relevant: int = 0
    relevant_by_schema: Counter = field(default_factory=Counter)


class MessageClassifier:
    """
    Stateful wrapper around classify() that keeps counters.

    The decision itself never depends on the counters.
    """

    def __init__(self, rules: ClassifierRules) -> None:
        self._rules = rules
        self._stats = ClassifierStats()

    @property
    def rules(self) -> ClassifierRules:
        return self._rules

    @property
    def stats(self) -> ClassifierStats:
        """Get classifier statistics."""
        return self._stats

    def classify(self, message: DecodedMessage) -> ClassificationResult:
        result = classify(message, self._rules)

        self._stats.messages_classified += 1
        if result.is_relevant:
            self._stats.messages_relevant += 1
            self._stats.relevant_by_schema[result.schema_type] += 1
        else:
            logger.debug(
                "Message not relevant: %s",
                result.matched_reason,
                extra={"schema_type": result.schema_type},
            )

        return result
