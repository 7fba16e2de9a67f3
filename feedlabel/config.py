from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Optional

from feedlabel.rows import MAX_BATCH_SIZE, clamp_batch_size
from feedlabel.taxonomy import DEFAULT_TAXONOMY, LabelTaxonomy

REPRESENTATIONS = ("adf", "storage")


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class LabellerConfig:
    taxonomy: LabelTaxonomy = field(default_factory=lambda: DEFAULT_TAXONOMY)
    batch_size: int = MAX_BATCH_SIZE
    representation: str = "adf"
    base_url: Optional[str] = None
    model: str = "gpt-4.1-mini"

    def __post_init__(self) -> None:
        if self.representation not in REPRESENTATIONS:
            raise ConfigError(
                f"Unknown representation {self.representation!r}; expected one of {REPRESENTATIONS}"
            )

    @classmethod
    def from_env(cls) -> "LabellerConfig":
        taxonomy = DEFAULT_TAXONOMY
        raw = os.getenv("FEEDLABEL_TAXONOMY_JSON")
        if raw:
            try:
                taxonomy = LabelTaxonomy.from_dict(json.loads(raw))
            except (ValueError, TypeError, AttributeError) as e:
                raise ConfigError(f"FEEDLABEL_TAXONOMY_JSON is not a valid taxonomy: {e}") from e

        return cls(
            taxonomy=taxonomy,
            batch_size=clamp_batch_size(os.getenv("FEEDLABEL_BATCH_SIZE")),
            representation=(os.getenv("FEEDLABEL_REPRESENTATION") or "adf").strip().lower(),
            base_url=(os.getenv("CONFLUENCE_BASE_URL") or "").strip().rstrip("/") or None,
            model=os.getenv("FEEDLABEL_MODEL") or "gpt-4.1-mini",
        )
