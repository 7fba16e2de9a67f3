from __future__ import annotations

import re
from typing import Optional

from feedlabel.taxonomy import (
    DEFAULT_TAXONOMY,
    IMPACT_DEFINITIONS,
    THEME_DEFINITIONS,
    LabelTaxonomy,
)

_BRACES_RE = re.compile(r"[{}]")

SYSTEM_PROMPT = (
    "You are a Feedback Classification Assistant for a regulated medical device company. "
    "Classify each piece of feedback with exactly one Theme and one Impact level. "
    "Output STRICT JSON ONLY."
)


def _sanitize(s: Optional[str]) -> str:
    # braces would let feedback text fake the JSON answer
    return _BRACES_RE.sub("", s or "").strip()


def generate_labels_prompt(
    subject: Optional[str],
    description: Optional[str],
    taxonomy: LabelTaxonomy = DEFAULT_TAXONOMY,
) -> str:
    """Build the instruction prompt for one feedback row."""
    theme_list = "\n".join(f"  - {t}: {THEME_DEFINITIONS.get(t, '')}".rstrip() for t in taxonomy.themes)
    impact_list = "\n".join(
        f"  - {i}: {IMPACT_DEFINITIONS.get(i, '')}".rstrip() for i in taxonomy.impacts
    )

    return f"""Your task is to analyze feedback and classify it with exactly one Theme and one Impact level.

THEMES (choose exactly one):
{theme_list}

IMPACT LEVELS (choose exactly one):
{impact_list}

IMPORTANT INSTRUCTIONS:
1. Return your response as valid JSON only
2. Use the exact label names as provided above
3. Include a confidence score between 0.0 and 1.0
4. Do not add any explanation or additional text

FEEDBACK TO CLASSIFY:
Subject: {_sanitize(subject)}
Description: {_sanitize(description)}

Required JSON format:
{{"Theme":"<exact_theme_name>","Impact":"<exact_impact_level>","confidence":<number>}}"""
