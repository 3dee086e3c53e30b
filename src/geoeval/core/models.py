"""Data models for GeoEval."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any


class Provider(Enum):
    """Assistant providers the backend can ask on our behalf."""
    CHATGPT = "chatgpt"
    GEMINI = "gemini"

    @property
    def label(self) -> str:
        return {"chatgpt": "ChatGPT", "gemini": "Gemini"}[self.value]


@dataclass
class Company:
    """A client company owning one or more projects."""
    id: str
    name: str
    description: Optional[str] = None
    website: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Company":
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            name=data.get("name", ""),
            description=data.get("description"),
            website=data.get("website"),
        )


@dataclass
class Project:
    """A website evaluated for one location."""
    id: str
    company_id: str
    name: str
    domain: str = ""
    nation: str = ""
    state: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            company_id=str(data.get("company_id") or ""),
            name=data.get("name", ""),
            domain=data.get("domain") or "",
            nation=data.get("nation") or "",
            state=data.get("state"),
            description=data.get("description"),
        )


@dataclass
class Analysis:
    """Brand profile produced by the website analysis step."""
    brand_name: str
    niche: str = ""
    purpose: str = ""
    services: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Analysis":
        return cls(
            brand_name=data.get("brandName") or data.get("brand_name") or "",
            niche=data.get("niche") or "",
            purpose=data.get("purpose") or "",
            services=list(data.get("services") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the backend's camelCase shape."""
        return {
            "brandName": self.brand_name,
            "niche": self.niche,
            "purpose": self.purpose,
            "services": list(self.services),
        }


@dataclass
class Category:
    """Question category defined by the backend."""
    id: str
    name: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            name=data.get("name", ""),
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class QuestionResult:
    """One question and the assistant's answer to it."""
    id: str
    category: str
    question: str
    full_answer: str = ""
    found: bool = False
    loading: bool = False
    category_id: Optional[str] = None
    uuid: Optional[str] = None
    provider: Optional[Provider] = None

    @property
    def has_answer(self) -> bool:
        return bool(self.full_answer)

    @property
    def status_label(self) -> str:
        """Display status; an unanswered record is pending, never a miss."""
        if self.loading:
            return "loading"
        if not self.has_answer:
            return "pending"
        return "found" if self.found else "miss"


@dataclass
class MetricGroup:
    """Rates computed over one slice of prompts (brand-agnostic or brand-included)."""
    total_prompts: int = 0
    mentions: int = 0
    brand_mention_rate: float = 0.0
    top_3_position_rate: float = 0.0
    recommendation_rate: float = 0.0
    positive_sentiment_rate: float = 0.0
    zero_mention_count: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MetricGroup":
        data = data or {}
        return cls(
            total_prompts=int(data.get("total_prompts") or 0),
            mentions=int(data.get("mentions") or 0),
            brand_mention_rate=float(data.get("brand_mention_rate") or 0.0),
            top_3_position_rate=float(data.get("top_3_position_rate") or 0.0),
            recommendation_rate=float(data.get("recommendation_rate") or 0.0),
            positive_sentiment_rate=float(data.get("positive_sentiment_rate") or 0.0),
            zero_mention_count=int(data.get("zero_mention_count") or 0),
        )


@dataclass
class GeoMetrics:
    """Aggregate visibility metrics computed by the backend."""
    brand_name: str
    total_prompts: int
    brand_agnostic_metrics: MetricGroup
    brand_included_metrics: MetricGroup
    competitor_mentions: Dict[str, int] = field(default_factory=dict)
    brand_features: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def is_snapshot(data: Optional[Dict[str, Any]]) -> bool:
        """Whether a payload holds an actual snapshot rather than an empty reply."""
        return bool(data) and bool(data.get("brand_name") or data.get("total_prompts"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoMetrics":
        created_at = None
        raw_created = data.get("createdAt") or data.get("created_at")
        if raw_created:
            try:
                created_at = datetime.fromisoformat(str(raw_created).replace("Z", "+00:00"))
            except ValueError:
                created_at = None

        mentions = data.get("competitor_mentions") or {}
        if isinstance(mentions, list):
            # some backends send [{"name": ..., "count": ...}]
            mentions = {m.get("name", ""): m.get("count", 0) for m in mentions if isinstance(m, dict)}

        return cls(
            brand_name=data.get("brand_name") or "",
            total_prompts=int(data.get("total_prompts") or 0),
            brand_agnostic_metrics=MetricGroup.from_dict(data.get("brand_agnostic_metrics")),
            brand_included_metrics=MetricGroup.from_dict(data.get("brand_included_metrics")),
            competitor_mentions={str(k): int(v or 0) for k, v in mentions.items() if k},
            brand_features=list(data.get("brand_features") or []),
            created_at=created_at,
            raw=dict(data),
        )
