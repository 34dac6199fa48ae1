# assessments/timeout.py
import logging
import time
from datetime import datetime, timezone as dt_timezone

logger = logging.getLogger(__name__)


def utcnow():
    return datetime.now(dt_timezone.utc)


def reconcile_submission(session, now):
    """
    Close an exam session at submission time.

    Submissions past the deadline are accepted and flagged; there is no hard
    cut-off on the server.
    """
    late = bool(session.deadline and now > session.deadline)
    if late:
        overdue = int((now - session.deadline).total_seconds())
        logger.warning(
            "Late submission accepted for candidate %s (%ss past deadline)",
            session.candidate_id, overdue,
        )
    session.state = session.State.SUBMITTED
    session.submitted_at = now
    session.submitted_late = late
    return session


class ExamCountdown:
    """
    Client-side countdown for one attempt.

    Seeded from the server deadline, so re-creating it after a reload resumes
    the remaining time instead of restarting it. Ticks once per second on a
    single thread. Expiry and manual submission share the same path, and the
    submit callback runs at most once per successful submission.
    """

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"

    tick_seconds = 1

    def __init__(self, deadline, on_submit, clock=utcnow):
        self.deadline = deadline
        self.on_submit = on_submit
        self.clock = clock
        self.state = self.NOT_STARTED
        self.remaining = None
        self.expired = False

    def start(self):
        if self.state == self.NOT_STARTED:
            self.state = self.IN_PROGRESS
            self.tick()

    def tick(self):
        if self.state != self.IN_PROGRESS:
            return self.remaining or 0

        self.remaining = max(0, int((self.deadline - self.clock()).total_seconds()))
        if self.remaining == 0 and not self.expired:
            self.expired = True
            logger.info("Time is up, submitting automatically")
            self.submit()
        return self.remaining

    def submit(self):
        """Submit now. Returns False if the attempt was already submitted."""
        if self.state == self.SUBMITTED:
            return False
        self.state = self.SUBMITTED
        try:
            self.on_submit()
        except Exception:
            # Let the caller retry by hand; expiry never re-fires on its own.
            self.state = self.IN_PROGRESS
            raise
        return True

    def run(self, sleep=time.sleep):
        self.start()
        while self.state == self.IN_PROGRESS and not self.expired:
            sleep(self.tick_seconds)
            self.tick()
