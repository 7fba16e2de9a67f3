"""
Classification of feedback rows into Theme/Impact labels.

The table core treats the classifier as an oracle; the confidence gate lives
here, on the caller side, and simply leaves low-confidence rows unlabeled for
a later pass or a human.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from feedlabel.events import EventLog, NullLog
from feedlabel.llm_client import LLMError, OpenAIChatClient
from feedlabel.prompt import SYSTEM_PROMPT, generate_labels_prompt
from feedlabel.rows import FeedbackRow, UpdateItem
from feedlabel.taxonomy import DEFAULT_TAXONOMY, LabelTaxonomy


@dataclass(frozen=True)
class Classification:
    theme: Any
    impact: Any
    confidence: float = 0.0


def _confidence(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        c = float(value)
    except (TypeError, ValueError):
        return 0.0
    if c != c:  # NaN
        return 0.0
    return max(0.0, min(1.0, c))


def parse_classification(data: Dict[str, Any]) -> Classification:
    theme = data.get("Theme", data.get("theme"))
    impact = data.get("Impact", data.get("impact"))
    return Classification(theme=theme, impact=impact, confidence=_confidence(data.get("confidence")))


class Classifier:
    def classify(self, subject: str, description: str) -> Classification:
        raise NotImplementedError


@dataclass
class LLMClassifier(Classifier):
    llm: OpenAIChatClient
    taxonomy: LabelTaxonomy = DEFAULT_TAXONOMY

    def classify(self, subject: str, description: str) -> Classification:
        user = generate_labels_prompt(subject, description, self.taxonomy)
        out = self.llm.json_call(system=SYSTEM_PROMPT, user=user, max_output_tokens=200)
        return parse_classification(out)


def classify_rows(
    rows: Iterable[FeedbackRow],
    classifier: Classifier,
    taxonomy: LabelTaxonomy = DEFAULT_TAXONOMY,
    log: Optional[EventLog] = None,
) -> List[UpdateItem]:
    """Classify rows and keep the ones whose confidence clears the impact threshold."""
    log = log or NullLog()
    items: List[UpdateItem] = []
    for row in rows:
        try:
            result = classifier.classify(row.subject, row.description)
        except LLMError as e:
            log.warn("Classification failed; row left unlabeled", {"rowIndex": row.row_index, "error": str(e)})
            continue

        impact = taxonomy.coerce_impact(result.impact)
        threshold = taxonomy.threshold_for(impact)
        if result.confidence < threshold:
            log.info(
                "Low-confidence classification skipped",
                {"rowIndex": row.row_index, "confidence": result.confidence, "threshold": threshold},
            )
            continue
        items.append(UpdateItem(row_index=row.row_index, theme=result.theme, impact=result.impact))
    return items
