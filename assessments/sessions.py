# assessments/sessions.py
import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from candidates.models import Candidate
from cores.exceptions import AlreadyWrittenError, NotFoundError
from cores.models import AuditLog
from .models import ExamSession

logger = logging.getLogger(__name__)


class SessionManager:
    """Opens and tracks the one exam attempt each candidate is allowed."""

    @transaction.atomic
    def start_session(self, candidate_id, actor=None, now=None):
        """
        Returns (session, created). An attempt already in progress is
        returned as is, so reloading the exam page never resets the clock.
        """
        candidate = (
            Candidate.objects
            .select_for_update()
            .filter(pk=candidate_id)
            .first()
        )
        if candidate is None:
            raise NotFoundError("Candidate not found")
        if candidate.has_written:
            raise AlreadyWrittenError()
        if candidate.screening is None:
            raise NotFoundError("Screening not found")

        session, _ = ExamSession.objects.get_or_create(candidate=candidate)
        if session.state == ExamSession.State.IN_PROGRESS:
            return session, False
        if session.state == ExamSession.State.SUBMITTED:
            raise AlreadyWrittenError()

        now = now or timezone.now()
        session.state = ExamSession.State.IN_PROGRESS
        session.started_at = now
        session.deadline = now + timedelta(minutes=candidate.screening.duration)
        session.save()

        AuditLog.record(
            'SESSION_STARTED', session,
            details=f"{candidate.registration_number} started; deadline {session.deadline.isoformat()}",
            actor=actor,
        )
        logger.info(
            "Session started for candidate %s, deadline %s",
            candidate.registration_number, session.deadline.isoformat(),
        )
        return session, True

    def get_session(self, candidate_id):
        candidate = Candidate.objects.filter(pk=candidate_id).first()
        if candidate is None:
            raise NotFoundError("Candidate not found")
        session = ExamSession.objects.filter(candidate=candidate).first()
        # Unsaved placeholder so callers always see a state
        return session or ExamSession(candidate=candidate)
