# candidates/services.py
import logging

from django.db import transaction
from django.utils import timezone

from cores.exceptions import AlreadyWrittenError, NotFoundError, TransitionError
from cores.models import AuditLog
from .models import Candidate

logger = logging.getLogger(__name__)

Status = Candidate.Status


class StatusTransitioner:
    """
    Owns every write to a candidate's attempt fields
    (has_written, status, total_score, percentage).

        REGISTERED -> WRITTEN            begin_attempt (compare-and-set on has_written)
        WRITTEN    -> PASSED | FAILED    resolve_outcome, same transaction as scoring
        PASSED     -> ADMITTED | REJECTED
        FAILED     -> REJECTED           record_decision, external administrative write
    """

    DECISIONS = {
        Status.PASSED: {Status.ADMITTED, Status.REJECTED},
        Status.FAILED: {Status.REJECTED},
    }

    @staticmethod
    def outcome_for(total_score, pass_marks):
        return Status.PASSED if total_score >= pass_marks else Status.FAILED

    def begin_attempt(self, candidate_id):
        # One conditional UPDATE: of two racing submissions only one matches the row.
        updated = (
            Candidate.objects
            .filter(pk=candidate_id, has_written=False)
            .update(has_written=True, status=Status.WRITTEN, updated_at=timezone.now())
        )
        if updated != 1:
            logger.warning("Duplicate submission rejected for candidate %s", candidate_id)
            raise AlreadyWrittenError()

    def resolve_outcome(self, candidate_id, total_score, percentage, pass_marks):
        status = self.outcome_for(total_score, pass_marks)
        updated = (
            Candidate.objects
            .filter(pk=candidate_id, status=Status.WRITTEN)
            .update(
                total_score=total_score,
                percentage=percentage,
                status=status,
                updated_at=timezone.now(),
            )
        )
        if updated != 1:
            raise TransitionError(f"Candidate {candidate_id} is not awaiting a result.")
        return status

    @transaction.atomic
    def record_decision(self, candidate_id, decision, actor=None):
        candidate = Candidate.objects.select_for_update().filter(pk=candidate_id).first()
        if candidate is None:
            raise NotFoundError("Candidate not found")

        allowed = self.DECISIONS.get(candidate.status, set())
        if decision not in allowed:
            raise TransitionError(f"Cannot move candidate from {candidate.status} to {decision}.")

        previous = candidate.status
        candidate.status = decision
        candidate.save(update_fields=['status', 'updated_at'])

        AuditLog.record(
            'DECISION', candidate,
            details=f"{candidate.registration_number}: {previous} -> {decision}",
            actor=actor,
        )
        logger.info("Candidate %s moved %s -> %s", candidate.registration_number, previous, decision)
        return candidate
