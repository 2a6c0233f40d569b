"""
Insight value object: a short, prioritized observation about spending.

Insights are produced fresh on each request and never persisted.
Lower priority number = more urgent.
"""
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Any, Optional


class InsightType(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    WARNING = "warning"
    INFO = "info"
    ALERT = "alert"


@dataclass(frozen=True)
class Insight:
    type: InsightType
    icon: str
    priority: int
    title: str
    message: str
    tip: str
    source: Optional[str] = None

    def with_source(self, source: str) -> "Insight":
        return replace(self, source=source)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data
