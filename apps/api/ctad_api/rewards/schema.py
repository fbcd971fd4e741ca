"""Process capture payload and reward models (camelCase on the wire)."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ctad_api.db.enums import ContributorTier, LikeReason, OptimizationMode, Platform, RejectionReason
from ctad_api.utils.numbers import round_half_up


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to the naive-UTC convention used by the models."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
    )


class PromptVersion(CamelModel):
    """A single version in the prompt evolution chain."""

    id: str
    content: str
    timestamp: str
    parent_id: Optional[str] = None
    mode: OptimizationMode
    platform: Platform = Platform.unknown
    metadata: Optional[dict[str, Any]] = None

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value):
        return OptimizationMode(value)

    @field_validator("platform", mode="before")
    @classmethod
    def _coerce_platform(cls, value):
        return Platform(value)


class RejectedOutput(CamelModel):
    id: str
    prompt_version_id: str
    timestamp: str
    reason: Optional[RejectionReason] = None
    custom_feedback: Optional[str] = None

    @field_validator("reason", mode="before")
    @classmethod
    def _coerce_reason(cls, value):
        return RejectionReason(value) if value else None


class SelectedOutput(CamelModel):
    id: str
    prompt_version_id: str
    timestamp: str
    like_reason: Optional[LikeReason] = None
    custom_feedback: Optional[str] = None
    output_hash: Optional[str] = None

    @field_validator("like_reason", mode="before")
    @classmethod
    def _coerce_like_reason(cls, value):
        return LikeReason(value) if value else None


class ProcessDeclarationInput(CamelModel):
    """Body of POST /api/process-declaration."""

    platform: str
    session_started_at: datetime
    session_ended_at: Optional[datetime] = None
    session_duration: Optional[float] = None  # seconds
    iteration_count: Optional[int] = None
    prompt_lineage: list[PromptVersion]
    rejected_outputs: list[RejectedOutput]
    selected_output: Optional[SelectedOutput] = None
    consent_for_training_data: bool = False
    consent_timestamp: Optional[datetime] = None
    consent_version: Optional[str] = None
    contributor_id: Optional[str] = None
    expertise_tags: list[str] = Field(default_factory=list)

    @field_validator("expertise_tags", mode="before")
    @classmethod
    def _none_tags(cls, value):
        return value or []

    @property
    def platform_enum(self) -> Platform:
        return Platform(self.platform)

    def resolved_duration(self) -> Optional[int]:
        """Given duration, else derived from start/end when an end time exists."""
        if self.session_duration:
            return round_half_up(self.session_duration)
        if self.session_ended_at is not None:
            started = to_naive_utc(self.session_started_at)
            ended = to_naive_utc(self.session_ended_at)
            return round_half_up((ended - started).total_seconds())
        if self.session_duration is not None:
            return round_half_up(self.session_duration)
        return None

    def scoring_duration(self) -> Optional[float]:
        """Seconds for the duration bonus: a given duration is used unrounded."""
        if self.session_duration:
            return self.session_duration
        return self.resolved_duration()

    def resolved_iteration_count(self) -> int:
        return self.iteration_count or len(self.prompt_lineage)

    @property
    def rewardable(self) -> bool:
        """Rewards need both an anonymous id and training-data consent."""
        return bool(self.contributor_id) and self.consent_for_training_data


class TierChange(CamelModel):
    from_tier: ContributorTier = Field(alias="from")
    to_tier: ContributorTier = Field(alias="to")


class ContributorReward(CamelModel):
    """Reward reported back to the extension after a contribution."""

    points_earned: int
    new_total: int
    tier_change: Optional[TierChange] = None
    quality_multiplier: float
    rarity_bonus: float

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ContributorStats(CamelModel):
    total_contributions: int
    total_points: int
    current_tier: ContributorTier
    taste_score: float
    expertise_tags: list[str]
    platform_stats: dict[str, Any]
