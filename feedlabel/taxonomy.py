"""
Label taxonomy: the closed sets of Theme and Impact values a row may carry.

Any classification outside the sets is coerced to the fallback before it is
written into the page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

DEFAULT_THEMES: Tuple[str, ...] = ("Feature Request", "Integration", "Bug", "Query", "Other")
DEFAULT_IMPACTS: Tuple[str, ...] = ("High", "Medium", "Low")

# Minimum classifier confidence per impact level before a label is accepted
DEFAULT_CONFIDENCE_THRESHOLDS: Dict[str, float] = {
    "High": 0.8,
    "Medium": 0.7,
    "Low": 0.6,
}
DEFAULT_THRESHOLD = 0.7

THEME_DEFINITIONS: Dict[str, str] = {
    "Feature Request": "Requests for new or enhanced capabilities not currently available, "
    "including new modules, exports or improvements to existing features.",
    "Integration": "Problems or requests involving connections to other systems, APIs, "
    "imports/exports or third-party tools.",
    "Bug": "Something is broken: errors, crashes, incorrect behavior, outages or timeouts.",
    "Query": "Questions about how to do something, setup help, documentation or training needs.",
    "Other": "Feedback that does not fit any other theme.",
}

IMPACT_DEFINITIONS: Dict[str, str] = {
    "High": "Affects safety or a large user base; requires urgent attention.",
    "Medium": "Disruptive but there are workarounds or limited user scope.",
    "Low": "Minor annoyance, cosmetic issue, or nice-to-have enhancement.",
}


def _canonical(value: Any, allowed: Tuple[str, ...]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    v = value.strip().lower()
    for a in allowed:
        if a.lower() == v:
            return a
    return None


@dataclass(frozen=True)
class LabelTaxonomy:
    themes: Tuple[str, ...] = DEFAULT_THEMES
    impacts: Tuple[str, ...] = DEFAULT_IMPACTS
    fallback_theme: str = "Other"
    fallback_impact: str = "Low"
    confidence_thresholds: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_CONFIDENCE_THRESHOLDS)
    )
    default_threshold: float = DEFAULT_THRESHOLD

    def __post_init__(self) -> None:
        if self.fallback_theme not in self.themes:
            raise ValueError(f"Fallback theme {self.fallback_theme!r} is not in the theme set")
        if self.fallback_impact not in self.impacts:
            raise ValueError(f"Fallback impact {self.fallback_impact!r} is not in the impact set")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LabelTaxonomy":
        kwargs: Dict[str, Any] = {}
        if data.get("themes"):
            kwargs["themes"] = tuple(str(t) for t in data["themes"])
        if data.get("impacts"):
            kwargs["impacts"] = tuple(str(i) for i in data["impacts"])
        if data.get("fallback_theme"):
            kwargs["fallback_theme"] = str(data["fallback_theme"])
        if data.get("fallback_impact"):
            kwargs["fallback_impact"] = str(data["fallback_impact"])
        if data.get("confidence_thresholds"):
            kwargs["confidence_thresholds"] = {
                str(k): float(v) for k, v in dict(data["confidence_thresholds"]).items()
            }
        if data.get("default_threshold") is not None:
            kwargs["default_threshold"] = float(data["default_threshold"])
        return cls(**kwargs)

    def coerce_theme(self, value: Any) -> str:
        return _canonical(value, self.themes) or self.fallback_theme

    def coerce_impact(self, value: Any) -> str:
        return _canonical(value, self.impacts) or self.fallback_impact

    def threshold_for(self, impact: str) -> float:
        return float(self.confidence_thresholds.get(impact, self.default_threshold))


DEFAULT_TAXONOMY = LabelTaxonomy()
