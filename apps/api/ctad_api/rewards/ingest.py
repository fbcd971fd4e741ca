"""Process capture ingestion: store the session, then reward the contributor."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ctad_api.errors import ConflictError, DependencyFailure
from ctad_api.models import ProcessDeclaration
from ctad_api.rewards.engine import RewardEngine
from ctad_api.rewards.schema import ContributorReward, ProcessDeclarationInput, to_naive_utc
from ctad_api.rewards.validation import validate_process_input
from ctad_api.utils.metrics import process_declarations, reward_failures

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    declaration_id: str
    reward: Optional[ContributorReward] = None


class ProcessCaptureService:
    """Accepts process capture payloads from the browser extension."""

    def __init__(self, db: Session, engine: Optional[RewardEngine] = None):
        """Initialize service."""
        self.db = db
        self.engine = engine or RewardEngine(db)

    def submit(self, payload: Any) -> SubmissionResult:
        """
        Validate and persist a payload, then attempt the reward.

        The process declaration is committed before the reward runs; a reward
        failure is logged and reported as a missing reward, never as a failed
        submission.

        Raises:
            ValidationError: payload failed validation.
            ConflictError: duplicate key on insert.
        """
        data = validate_process_input(payload)
        declaration = self._store(data)
        declaration_id = declaration.id

        reward = None
        if data.rewardable:
            try:
                reward = self.engine.calculate_contribution_reward(
                    data.contributor_id, declaration_id, data
                )
            except Exception as e:
                self.db.rollback()
                failure = e if isinstance(e, DependencyFailure) else DependencyFailure(str(e))
                reward_failures.inc()
                logger.error(
                    f"Reward calculation failed: {failure.message}",
                    extra={
                        "process_declaration_id": declaration_id,
                        "contributor_id": data.contributor_id,
                    },
                    exc_info=not isinstance(e, DependencyFailure),
                )

        return SubmissionResult(declaration_id=declaration_id, reward=reward)

    def _store(self, data: ProcessDeclarationInput) -> ProcessDeclaration:
        declaration = ProcessDeclaration(
            platform=data.platform_enum,
            session_started_at=to_naive_utc(data.session_started_at),
            session_ended_at=to_naive_utc(data.session_ended_at),
            session_duration=data.resolved_duration(),
            iteration_count=data.resolved_iteration_count(),
            prompt_lineage=[v.model_dump(mode="json", by_alias=True) for v in data.prompt_lineage],
            rejected_outputs=[r.model_dump(mode="json", by_alias=True) for r in data.rejected_outputs],
            selected_output=(
                data.selected_output.model_dump(mode="json", by_alias=True)
                if data.selected_output is not None
                else None
            ),
            consent_for_training_data=data.consent_for_training_data,
            consent_timestamp=to_naive_utc(data.consent_timestamp),
            consent_version=data.consent_version,
            contributor_id=data.contributor_id,
            contributor_expertise_tags=list(data.expertise_tags),
        )
        self.db.add(declaration)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Duplicate declaration") from e

        process_declarations.labels(
            platform=declaration.platform.value,
            consent=str(declaration.consent_for_training_data).lower(),
        ).inc()
        logger.info(
            "Process declaration stored",
            extra={"process_declaration_id": declaration.id, "platform": declaration.platform.value},
        )
        return declaration
