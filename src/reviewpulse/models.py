"""Domain models used across the pipeline."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Category = Literal["issue", "request", "feedback"]
Trend = Literal["up", "down", "stable"]


class Phase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    ANALYZING = "analyzing"
    DEDUPLICATING = "deduplicating"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"


class Review(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    day: str  # YYYY-MM-DD
    rating: int = Field(ge=1, le=5)
    text: str = Field(min_length=1)
    app: str
    author: str = ""


class SeedTopic(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    category: Category


class CustomTopic(BaseModel):
    id: str
    label: str
    category: Category
    app_id: str | None = None  # None = applies to every app
    is_active: bool = True
    created_at: datetime | None = None

    def as_seed(self) -> SeedTopic:
        return SeedTopic(label=self.label, category=self.category)


class AppOption(BaseModel):
    id: str
    name: str
    package: str = ""


# ── Service payloads ───────────────────────────────────────────────────────


class TopicMatch(BaseModel):
    """One topic returned by the classifier for a batch of reviews."""

    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(min_length=1)
    category: Category
    matched_reviews: list[int] = Field(default_factory=list, alias="matchedReviews")
    is_new_topic: bool = Field(default=False, alias="isNewTopic")

    @field_validator("category", mode="before")
    @classmethod
    def _lower_category(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("topic")
    @classmethod
    def _strip_topic(cls, value: str) -> str:
        return value.strip()


class ClassificationResult(BaseModel):
    topics: list[TopicMatch] = Field(default_factory=list)


class MergeGroup(BaseModel):
    canonical: str
    variants: list[str] = Field(default_factory=list)


class DeduplicationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    merged_topics: list[MergeGroup] = Field(default_factory=list, alias="mergedTopics")


# ── Report ─────────────────────────────────────────────────────────────────


class TopicFrequency(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    topic: str
    category: Category
    frequencies: dict[str, int] = Field(default_factory=dict)
    total_count: int = Field(default=0, alias="totalCount")
    trend: Trend = "stable"
    trend_percentage: int = Field(default=0, ge=0, alias="trendPercentage")


class AnalysisReport(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    target_date: str = Field(alias="targetDate")
    app: str
    topics: list[TopicFrequency] = Field(default_factory=list)
    date_range: list[str] = Field(default_factory=list, alias="dateRange")
    generated_at: datetime = Field(alias="generatedAt")
    total_reviews_analyzed: int = Field(default=0, alias="totalReviewsAnalyzed")
    new_topics_discovered: int = Field(default=0, alias="newTopicsDiscovered")


class ReportSummary(BaseModel):
    id: str
    app_id: str
    app_name: str
    target_date: str
    date_range_start: str
    date_range_end: str
    total_reviews_analyzed: int = 0
    new_topics_discovered: int = 0
    created_at: datetime | None = None


class PipelineStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Phase = Phase.IDLE
    message: str = ""
    progress: int = Field(default=0, ge=0, le=100)
    current_day: str | None = None
