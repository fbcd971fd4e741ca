"""Tests for contribution scoring and contributor reputation."""

from unittest.mock import Mock

import pytest
from sqlalchemy.orm.exc import StaleDataError

from ctad_api.db.enums import ContributorTier, Platform
from ctad_api.errors import DependencyFailure, ValidationError
from ctad_api.models import Contributor, ProcessDeclaration
from ctad_api.rewards.engine import (
    RewardEngine,
    calculate_tier,
    compute_base_points,
    compute_reward,
    duration_bonus,
    rarity_bonus,
)
from ctad_api.rewards.ingest import ProcessCaptureService
from ctad_api.rewards.validation import validate_process_input
from ctad_api.utils.numbers import clamp01, round_half_up


class TestScoring:
    """Pure reward computation."""

    def test_reference_contribution(self, process_payload):
        """5 versions, 2 rejections, full selection, 10 minutes, neutral taste."""
        data = validate_process_input(process_payload)

        reward = compute_reward(data, taste_score=0.5, total_points=0, previous_tier=ContributorTier.explorer)

        assert compute_base_points(data) == 56
        assert reward.points_earned == 56
        assert reward.new_total == 56
        assert reward.quality_multiplier == 1.0
        assert reward.rarity_bonus == 1.0
        assert reward.tier_change is None

    def test_deterministic(self, process_payload):
        data = validate_process_input(process_payload)
        first = compute_reward(data, 0.73, 120, ContributorTier.curator)
        second = compute_reward(data, 0.73, 120, ContributorTier.curator)
        assert first == second

    def test_taste_score_scales_points(self, process_payload):
        data = validate_process_input(process_payload)
        assert compute_reward(data, 0.9, 0, ContributorTier.explorer).points_earned == 78  # 56 * 1.4
        assert compute_reward(data, 0.0, 0, ContributorTier.explorer).points_earned == 28  # 56 * 0.5

    def test_rare_platform_bonus(self, process_payload):
        process_payload["platform"] = "Higgsfield"
        data = validate_process_input(process_payload)

        reward = compute_reward(data, 0.5, 0, ContributorTier.explorer)
        assert reward.rarity_bonus == 1.8
        assert reward.points_earned == 101  # 100.8

    def test_rarity_table(self):
        assert rarity_bonus(Platform.chatgpt) == 0.7
        assert rarity_bonus(Platform.midjourney) == 0.8
        assert rarity_bonus(Platform.unknown) == 1.0

    def test_counts_are_capped(self, process_payload):
        version = process_payload["promptLineage"][0]
        rejection = process_payload["rejectedOutputs"][0]
        process_payload["promptLineage"] = [dict(version, id=f"pv-{i}") for i in range(40)]
        process_payload["rejectedOutputs"] = [dict(rejection, id=f"rej-{i}") for i in range(25)]
        process_payload["expertiseTags"] = ["portraits", "lighting", "anime", "architecture", "motion"]

        # 10 + 20 + 30 + 25 + 5 + 6
        assert compute_base_points(validate_process_input(process_payload)) == 96

    def test_minimal_contribution(self, process_payload):
        process_payload.update(
            promptLineage=[], rejectedOutputs=[], selectedOutput=None, sessionDuration=None
        )
        assert compute_base_points(validate_process_input(process_payload)) == 10

    def test_selection_without_extras(self, process_payload):
        process_payload["selectedOutput"] = {
            "id": "sel-1",
            "promptVersionId": "pv-4",
            "timestamp": "2026-03-01T10:09:00.000Z",
        }
        assert compute_base_points(validate_process_input(process_payload)) == 41

    def test_fractional_duration_not_rounded_up(self, process_payload):
        """A duration just under two minutes earns no duration bonus."""
        process_payload["sessionDuration"] = 119.6
        data = validate_process_input(process_payload)

        assert data.resolved_duration() == 120
        assert compute_base_points(data) == 51

    def test_derived_duration_scores_bonus(self, process_payload):
        del process_payload["sessionDuration"]
        process_payload["sessionEndedAt"] = "2026-03-01T10:16:00.000Z"

        assert compute_base_points(validate_process_input(process_payload)) == 61

    @pytest.mark.parametrize(
        "seconds, bonus",
        [
            (None, 0), (0, 0), (119, 0), (119.6, 0), (120, 2), (299, 2), (299.7, 2),
            (300, 5), (899, 5), (899.9, 5), (900, 10), (7200, 10),
        ],
    )
    def test_duration_bonus(self, seconds, bonus):
        assert duration_bonus(seconds) == bonus

    @pytest.mark.parametrize(
        "points, tier",
        [
            (0, ContributorTier.explorer),
            (99, ContributorTier.explorer),
            (100, ContributorTier.curator),
            (499, ContributorTier.curator),
            (500, ContributorTier.tastemaker),
            (1999, ContributorTier.tastemaker),
            (2000, ContributorTier.oracle),
            (50000, ContributorTier.oracle),
        ],
    )
    def test_tier_thresholds(self, points, tier):
        assert calculate_tier(points) is tier

    def test_tier_change_reported(self, process_payload):
        data = validate_process_input(process_payload)
        reward = compute_reward(data, 0.5, 90, ContributorTier.explorer)

        assert reward.new_total == 146
        assert reward.tier_change.from_tier is ContributorTier.explorer
        assert reward.tier_change.to_tier is ContributorTier.curator
        assert reward.to_response()["tierChange"] == {"from": "explorer", "to": "curator"}

    def test_response_omits_absent_tier_change(self, process_payload):
        data = validate_process_input(process_payload)
        body = compute_reward(data, 0.5, 0, ContributorTier.explorer).to_response()

        assert body == {
            "pointsEarned": 56,
            "newTotal": 56,
            "qualityMultiplier": 1.0,
            "rarityBonus": 1.0,
        }


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4999) == 2
    assert round_half_up(-2.5) == -2


def test_clamp01():
    assert clamp01(-0.1) == 0.0
    assert clamp01(1.3) == 1.0
    assert clamp01(0.42) == 0.42


class TestRewardEngine:
    """Contributor persistence."""

    def _submit(self, db, payload):
        data = validate_process_input(payload)
        return RewardEngine(db).calculate_contribution_reward(data.contributor_id, "pd-1", data)

    def test_first_contribution_creates_contributor(self, db, process_payload):
        process_payload["expertiseTags"] = ["cinematic", "neon"]
        reward = self._submit(db, process_payload)

        contributor = db.query(Contributor).filter(Contributor.anonymous_id == "anon-42").one()
        assert reward.points_earned == 60  # 56 + 2 tags * 2
        assert contributor.total_contributions == 1
        assert contributor.total_points == 60
        assert contributor.current_tier is ContributorTier.explorer
        assert contributor.taste_score == 0.5
        assert contributor.expertise_tags == ["cinematic", "neon"]
        assert contributor.platform_stats == {"stable-diffusion": {"contributions": 1, "accuracy": 0.5}}
        assert contributor.consent_version == "1.0"

    def test_repeat_contributions_accumulate(self, db, process_payload):
        process_payload["expertiseTags"] = ["neon"]
        self._submit(db, process_payload)
        process_payload["expertiseTags"] = ["neon", "portraits"]
        process_payload["platform"] = "MIDJOURNEY"
        self._submit(db, process_payload)
        self._submit(db, process_payload)

        db.expire_all()
        contributor = db.query(Contributor).one()
        assert contributor.total_contributions == 3
        assert contributor.expertise_tags == ["neon", "portraits"]
        assert contributor.platform_stats["stable-diffusion"]["contributions"] == 1
        assert contributor.platform_stats["midjourney"]["contributions"] == 2

    def test_crossing_threshold_updates_tier(self, db, process_payload):
        db.add(
            Contributor(
                anonymous_id="anon-42",
                total_contributions=4,
                total_points=90,
                current_tier=ContributorTier.explorer,
                taste_score=0.5,
                expertise_tags=[],
                platform_stats={},
            )
        )
        db.commit()

        reward = self._submit(db, process_payload)

        assert reward.tier_change is not None
        assert reward.tier_change.to_tier is ContributorTier.curator
        assert db.query(Contributor).one().current_tier is ContributorTier.curator

    def test_conflicts_exhaust_attempts(self, db, process_payload, monkeypatch):
        data = validate_process_input(process_payload)
        engine = RewardEngine(db, max_attempts=2)

        def stale_commit():
            raise StaleDataError("row changed")

        monkeypatch.setattr(db, "commit", stale_commit)
        with pytest.raises(DependencyFailure):
            engine.calculate_contribution_reward("anon-42", "pd-1", data)

    def test_stats_for_unknown_contributor(self, db):
        assert RewardEngine(db).get_contributor_stats("nobody") is None

    def test_aggregate_stats_only_count_consenting(self, db, process_payload):
        service = ProcessCaptureService(db)
        service.submit(process_payload)
        process_payload["platform"] = "suno"
        service.submit(process_payload)
        process_payload["consentForTrainingData"] = False
        process_payload["contributorId"] = None
        service.submit(process_payload)

        stats = RewardEngine(db).get_aggregate_stats()
        assert stats == {
            "totalDeclarations": 2,
            "totalContributors": 1,
            "platformDistribution": {"stable-diffusion": 1, "suno": 1},
        }


class TestTasteScore:
    """Exponential moving average toward consensus alignment."""

    @pytest.fixture
    def contributor(self, db):
        contributor = Contributor(
            anonymous_id="anon-7",
            total_contributions=0,
            total_points=0,
            current_tier=ContributorTier.explorer,
            taste_score=0.5,
            expertise_tags=[],
            platform_stats={},
        )
        db.add(contributor)
        db.commit()
        return contributor

    def test_moves_twenty_percent_toward_alignment(self, db, contributor):
        engine = RewardEngine(db)
        assert engine.update_taste_score("anon-7", 1.0) == pytest.approx(0.6)
        assert engine.update_taste_score("anon-7", 0.0) == pytest.approx(0.48)
        assert db.query(Contributor).one().taste_score == pytest.approx(0.48)

    def test_equal_alignment_is_fixed_point(self, db, contributor):
        assert RewardEngine(db).update_taste_score("anon-7", 0.5) == pytest.approx(0.5)

    def test_stays_in_unit_interval(self, db, contributor):
        engine = RewardEngine(db)
        for _ in range(50):
            score = engine.update_taste_score("anon-7", 1.0)
        assert 0.0 <= score <= 1.0

    def test_unknown_contributor_returns_default(self, db):
        assert RewardEngine(db).update_taste_score("ghost", 0.9) == 0.5
        assert db.query(Contributor).count() == 0

    def test_unknown_contributor_ignores_alignment_range(self, db):
        assert RewardEngine(db).update_taste_score("ghost", 1.5) == 0.5
        assert db.query(Contributor).count() == 0

    @pytest.mark.parametrize("alignment", [-0.01, 1.01])
    def test_alignment_out_of_range(self, db, contributor, alignment):
        with pytest.raises(ValidationError):
            RewardEngine(db).update_taste_score("anon-7", alignment)


class TestProcessCaptureService:
    """Storing sessions and tolerating reward failures."""

    def test_submit_stores_and_rewards(self, db, process_payload):
        result = ProcessCaptureService(db).submit(process_payload)

        declaration = db.query(ProcessDeclaration).one()
        assert declaration.id == result.declaration_id
        assert declaration.platform is Platform.stable_diffusion
        assert declaration.session_duration == 600
        assert declaration.iteration_count == 5
        assert declaration.prompt_lineage[1]["parentId"] == "pv-0"
        assert result.reward.points_earned == 56

    def test_no_reward_without_consent(self, db, process_payload):
        process_payload["consentForTrainingData"] = False
        result = ProcessCaptureService(db).submit(process_payload)

        assert result.reward is None
        assert db.query(Contributor).count() == 0

    def test_no_reward_without_contributor_id(self, db, process_payload):
        del process_payload["contributorId"]
        result = ProcessCaptureService(db).submit(process_payload)

        assert result.reward is None
        assert db.query(ProcessDeclaration).count() == 1

    def test_reward_failure_keeps_declaration(self, db, process_payload):
        engine = Mock()
        engine.calculate_contribution_reward.side_effect = RuntimeError("database went away")

        result = ProcessCaptureService(db, engine=engine).submit(process_payload)

        assert result.reward is None
        assert db.query(ProcessDeclaration).filter(ProcessDeclaration.id == result.declaration_id).count() == 1
        engine.calculate_contribution_reward.assert_called_once()

    def test_iteration_count_defaults_to_lineage_length(self, db, process_payload):
        del process_payload["iterationCount"]
        ProcessCaptureService(db).submit(process_payload)
        assert db.query(ProcessDeclaration).one().iteration_count == 5
