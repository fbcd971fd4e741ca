"""Contribution reward engine.

Scoring is deterministic: the same payload and the same contributor state
(taste score, total points, tier) always yield the same reward. Persisted
side effects are limited to the contributor row.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ctad_api.db.enums import ContributorTier, Platform
from ctad_api.errors import DependencyFailure, ValidationError
from ctad_api.models import Contributor, ProcessDeclaration
from ctad_api.rewards.schema import (
    ContributorReward,
    ContributorStats,
    ProcessDeclarationInput,
    TierChange,
    to_naive_utc,
)
from ctad_api.settings import get_settings
from ctad_api.utils.metrics import points_awarded, tier_changes
from ctad_api.utils.numbers import clamp01, round_half_up

logger = logging.getLogger(__name__)

BASE_POINTS = 10
DEFAULT_TASTE_SCORE = 0.5
TASTE_SCORE_ALPHA = 0.2  # EMA learning rate

# Lower bound of each tier, highest first.
TIER_THRESHOLDS = (
    (ContributorTier.oracle, 2000),
    (ContributorTier.tastemaker, 500),
    (ContributorTier.curator, 100),
    (ContributorTier.explorer, 0),
)

# Lower = more common platform (less bonus).
PLATFORM_RARITY = {
    Platform.midjourney: 0.8,
    Platform.chatgpt: 0.7,
    Platform.dalle: 0.9,
    Platform.stable_diffusion: 1.0,
    Platform.suno: 1.2,
    Platform.udio: 1.3,
    Platform.runway: 1.4,
    Platform.pika: 1.5,
    Platform.higgsfield: 1.8,
    Platform.flux: 1.3,
    Platform.leonardo: 1.1,
    Platform.claude: 0.9,
    Platform.unknown: 1.0,
}


def calculate_tier(total_points: int) -> ContributorTier:
    """Tier for a point total; each lower bound is inclusive."""
    for tier, minimum in TIER_THRESHOLDS:
        if total_points >= minimum:
            return tier
    return ContributorTier.explorer


def duration_bonus(duration_seconds: Optional[float]) -> int:
    if not duration_seconds:
        return 0
    minutes = duration_seconds / 60
    if minutes >= 15:
        return 10
    if minutes >= 5:
        return 5
    if minutes >= 2:
        return 2
    return 0


def compute_base_points(data: ProcessDeclarationInput) -> int:
    """Points before multipliers."""
    points = BASE_POINTS

    # Lineage depth and explicit rejections, both capped against gaming.
    points += min(len(data.prompt_lineage) * 2, 20)
    points += min(len(data.rejected_outputs) * 3, 30)

    if data.selected_output is not None:
        points += 10
        if data.selected_output.like_reason:
            points += 5
        if data.selected_output.custom_feedback:
            points += 10

    points += duration_bonus(data.scoring_duration())
    points += min(len(data.expertise_tags) * 2, 6)
    return points


def quality_multiplier(taste_score: float) -> float:
    return 0.5 + taste_score


def rarity_bonus(platform: Platform) -> float:
    return PLATFORM_RARITY.get(platform, 1.0)


def compute_reward(
    data: ProcessDeclarationInput,
    taste_score: float,
    total_points: int,
    previous_tier: ContributorTier,
) -> ContributorReward:
    """Pure reward computation from a payload and the contributor's current state."""
    multiplier = quality_multiplier(taste_score)
    bonus = rarity_bonus(data.platform_enum)
    points_earned = round_half_up(compute_base_points(data) * multiplier * bonus)
    new_total = total_points + points_earned
    new_tier = calculate_tier(new_total)

    return ContributorReward(
        points_earned=points_earned,
        new_total=new_total,
        tier_change=(
            TierChange(from_tier=previous_tier, to_tier=new_tier) if new_tier != previous_tier else None
        ),
        quality_multiplier=multiplier,
        rarity_bonus=bonus,
    )


class RewardEngine:
    """Applies rewards and taste-score updates to contributor records."""

    def __init__(self, db: Session, max_attempts: Optional[int] = None):
        """Initialize reward engine."""
        self.db = db
        self.max_attempts = max_attempts or get_settings().reward_update_max_attempts

    def get_contributor(self, anonymous_id: str) -> Optional[Contributor]:
        return self.db.query(Contributor).filter(Contributor.anonymous_id == anonymous_id).first()

    def _get_or_create_contributor(self, anonymous_id: str) -> Contributor:
        contributor = self.get_contributor(anonymous_id)
        if contributor is None:
            contributor = Contributor(
                anonymous_id=anonymous_id,
                total_contributions=0,
                total_points=0,
                current_tier=ContributorTier.explorer,
                taste_score=DEFAULT_TASTE_SCORE,
                expertise_tags=[],
                platform_stats={},
            )
            self.db.add(contributor)
            self.db.flush()
            logger.info("Contributor created", extra={"contributor_id": anonymous_id})
        return contributor

    def calculate_contribution_reward(
        self,
        contributor_id: str,
        process_declaration_id: str,
        data: ProcessDeclarationInput,
    ) -> ContributorReward:
        """
        Score a contribution and fold it into the contributor's record.

        The contributor row is versioned; a concurrent writer causes a re-read
        and recompute, up to ``max_attempts`` times.

        Raises:
            DependencyFailure: the update could not be applied.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                contributor = self._get_or_create_contributor(contributor_id)
                reward = compute_reward(
                    data,
                    taste_score=contributor.taste_score,
                    total_points=contributor.total_points,
                    previous_tier=contributor.current_tier,
                )
                self._apply_reward(contributor, reward, data)
                self.db.commit()
            except (StaleDataError, IntegrityError) as e:
                self.db.rollback()
                logger.warning(
                    "Contributor update conflict, retrying",
                    extra={"contributor_id": contributor_id, "attempt": attempt, "error": str(e)},
                )
                continue

            points_awarded.observe(reward.points_earned)
            if reward.tier_change is not None:
                tier_changes.labels(to_tier=reward.tier_change.to_tier.value).inc()
            logger.info(
                "Contribution rewarded",
                extra={
                    "contributor_id": contributor_id,
                    "process_declaration_id": process_declaration_id,
                    "points_earned": reward.points_earned,
                    "new_total": reward.new_total,
                },
            )
            return reward

        raise DependencyFailure(
            f"Contributor {contributor_id} could not be updated after {self.max_attempts} attempts"
        )

    def _apply_reward(self, contributor: Contributor, reward: ContributorReward, data: ProcessDeclarationInput):
        # JSON columns are replaced, never mutated in place, so changes are detected.
        tags = list(contributor.expertise_tags or [])
        for tag in data.expertise_tags:
            if tag not in tags:
                tags.append(tag)

        platform_key = data.platform_enum.value
        stats = {key: dict(value) for key, value in (contributor.platform_stats or {}).items()}
        entry = stats.setdefault(platform_key, {"contributions": 0, "accuracy": 0.5})
        entry["contributions"] += 1

        contributor.total_contributions = contributor.total_contributions + 1
        contributor.total_points = reward.new_total
        contributor.current_tier = calculate_tier(reward.new_total)
        contributor.expertise_tags = tags
        contributor.platform_stats = stats
        if data.consent_version is not None:
            contributor.consent_version = data.consent_version
        if data.consent_timestamp is not None:
            contributor.consent_timestamp = to_naive_utc(data.consent_timestamp)

    def update_taste_score(self, contributor_id: str, alignment_score: float) -> float:
        """
        Move the taste score 20% of the way toward ``alignment_score``.

        Returns the neutral default without creating anything when the
        contributor is unknown.

        Raises:
            ValidationError: ``alignment_score`` outside [0, 1] for a known
                contributor.
        """
        for attempt in range(1, self.max_attempts + 1):
            contributor = self.get_contributor(contributor_id)
            if contributor is None:
                return DEFAULT_TASTE_SCORE
            if not 0.0 <= alignment_score <= 1.0:
                raise ValidationError("Alignment score must be between 0 and 1", field="alignmentScore")

            new_score = clamp01(
                contributor.taste_score * (1 - TASTE_SCORE_ALPHA) + alignment_score * TASTE_SCORE_ALPHA
            )
            contributor.taste_score = new_score
            try:
                self.db.commit()
            except StaleDataError:
                self.db.rollback()
                logger.warning(
                    "Taste score update conflict, retrying",
                    extra={"contributor_id": contributor_id, "attempt": attempt},
                )
                continue

            logger.info(
                "Taste score updated",
                extra={"contributor_id": contributor_id, "taste_score": new_score},
            )
            return new_score

        raise DependencyFailure(
            f"Taste score for {contributor_id} could not be updated after {self.max_attempts} attempts"
        )

    def get_contributor_stats(self, contributor_id: str) -> Optional[ContributorStats]:
        contributor = self.get_contributor(contributor_id)
        if contributor is None:
            return None
        return ContributorStats(
            total_contributions=contributor.total_contributions,
            total_points=contributor.total_points,
            current_tier=contributor.current_tier,
            taste_score=contributor.taste_score,
            expertise_tags=contributor.expertise_tags or [],
            platform_stats=contributor.platform_stats or {},
        )

    def get_platform_distribution(self) -> dict[str, int]:
        """Declaration counts per platform, consenting submissions only."""
        rows = (
            self.db.query(ProcessDeclaration.platform, func.count(ProcessDeclaration.id))
            .filter(ProcessDeclaration.consent_for_training_data == True)  # noqa: E712
            .group_by(ProcessDeclaration.platform)
            .all()
        )
        return {platform.value: count for platform, count in rows}

    def get_aggregate_stats(self) -> dict:
        total_declarations = (
            self.db.query(func.count(ProcessDeclaration.id))
            .filter(ProcessDeclaration.consent_for_training_data == True)  # noqa: E712
            .scalar()
        )
        total_contributors = self.db.query(func.count(Contributor.id)).scalar()
        return {
            "totalDeclarations": total_declarations or 0,
            "totalContributors": total_contributors or 0,
            "platformDistribution": self.get_platform_distribution(),
        }
