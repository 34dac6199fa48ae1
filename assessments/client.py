# assessments/client.py
import logging
import time

import requests
from django.utils.dateparse import parse_datetime

from cores.exceptions import (
    AlreadyWrittenError, NotFoundError, PersistenceError, ScreeningError, ValidationError,
)
from .timeout import ExamCountdown, utcnow

logger = logging.getLogger(__name__)

ERRORS_BY_STATUS = {
    403: AlreadyWrittenError,
    404: NotFoundError,
    422: ValidationError,
    500: PersistenceError,
}


class ExamClient:
    """Thin HTTP client for the candidate-facing screening API."""

    def __init__(self, base_url, token=None, session=None, timeout=20):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.http = session or requests.Session()
        if token:
            self.http.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method, path, **kwargs):
        resp = self.http.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        if resp.status_code >= 400:
            try:
                message = resp.json().get('error')
            except ValueError:
                message = None
            error_class = ERRORS_BY_STATUS.get(resp.status_code)
            if error_class is None:
                resp.raise_for_status()
            raise error_class(message)
        return resp.json()

    def get_candidate(self, candidate_id):
        return self._request('GET', f"/api/candidates/{candidate_id}/")

    def start_session(self, candidate_id):
        return self._request('POST', f"/api/candidates/{candidate_id}/session/")

    def fetch_questions(self, candidate_id):
        return self._request('GET', f"/api/candidates/{candidate_id}/questions/")

    def submit(self, candidate_id, answers, time_taken):
        payload = {"candidateId": candidate_id, "answers": answers, "timeTaken": time_taken}
        return self._request('POST', "/api/scoring/", json=payload)['result']


class TimedAttempt:
    """
    Drives one exam attempt from the candidate's side: opens the session,
    collects answers, and submits when the candidate is done or time runs out.
    """

    def __init__(self, client, candidate_id, clock=utcnow):
        self.client = client
        self.candidate_id = candidate_id
        self.clock = clock
        self.questions = []
        self.answers = {}
        self.result = None
        self.countdown = None
        self.started_at = None

    def begin(self):
        session = self.client.start_session(self.candidate_id)
        self.questions = self.client.fetch_questions(self.candidate_id)
        self.started_at = self.clock()
        self.countdown = ExamCountdown(parse_datetime(session['deadline']), self._send, clock=self.clock)
        self.countdown.start()
        return session

    def answer(self, question_id, selected_answer):
        if self.countdown is None or self.countdown.state != ExamCountdown.IN_PROGRESS:
            raise RuntimeError("Attempt is not in progress.")
        self.answers[question_id] = selected_answer

    def submit(self):
        return self.countdown.submit()

    def run(self, sleep=time.sleep):
        self.countdown.run(sleep=sleep)

    def _send(self):
        answers = [
            {"questionId": question_id, "selectedAnswer": selected}
            for question_id, selected in self.answers.items()
        ]
        time_taken = int((self.clock() - self.started_at).total_seconds())
        try:
            self.result = self.client.submit(self.candidate_id, answers, time_taken)
        except AlreadyWrittenError:
            # An earlier attempt of this same submission already landed
            logger.info("Submission for candidate %s was already recorded", self.candidate_id)
        except ScreeningError as exc:
            logger.error("Submission for candidate %s failed: %s", self.candidate_id, exc)
            raise
