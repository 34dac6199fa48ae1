import threading
from datetime import timedelta
from types import SimpleNamespace
from unittest import mock, skipUnless

from django.contrib.auth import get_user_model
from django.db import DatabaseError, connection, connections
from django.test import SimpleTestCase, TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework.test import APIClient

from candidates.models import Candidate
from candidates.services import StatusTransitioner
from cores.exceptions import (
    AlreadyWrittenError, NotFoundError, PersistenceError, ValidationError,
)
from cores.models import AuditLog
from screenings.models import Department, Option, Program, ProgramTest, Question, Screening, Subject
from .client import ExamClient, TimedAttempt
from .intake import AnswerIntake
from .models import ExamSession
from .reports import candidate_report, screening_statistics
from .scoring import ScoringEngine, determine_grade
from .sessions import SessionManager
from .timeout import ExamCountdown, utcnow

OPTIONS = ["A", "B", "C", "D"]


def build_screening(question_count=10, marks=10, total_marks=100, pass_marks=50, duration=60, code="CSC"):
    department, _ = Department.objects.get_or_create(code="SCI", defaults={"name": "Sciences"})
    program = Program.objects.create(department=department, name=f"Program {code}", code=code)
    subject, _ = Subject.objects.get_or_create(code="GNS", defaults={"name": "General Studies"})
    screening = Screening.objects.create(
        name=f"Post-UTME {code}",
        duration=duration,
        total_marks=total_marks,
        pass_marks=pass_marks,
        status=Screening.Status.ACTIVE,
    )
    questions = []
    for index in range(question_count):
        question = Question.objects.create(
            screening=screening,
            subject=subject,
            text=f"Question {index + 1}",
            correct_answer="B",
            marks=marks,
            order=index,
        )
        for position, text in enumerate(OPTIONS):
            Option.objects.create(question=question, text=text, position=position)
        questions.append(question)
    return program, screening, questions


def make_candidate(program, screening, registration_number="REG001"):
    return Candidate.objects.create(
        first_name="Amina",
        last_name="Bello",
        email=f"{registration_number.lower()}@example.com",
        registration_number=registration_number,
        program=program,
        screening=screening,
    )


def answers_for(questions, correct=0, wrong=0):
    """First `correct` questions right, next `wrong` wrong, the rest omitted."""
    payload = []
    for question in questions[:correct]:
        payload.append({"questionId": question.id, "selectedAnswer": "B"})
    for question in questions[correct:correct + wrong]:
        payload.append({"questionId": question.id, "selectedAnswer": "C"})
    return payload


class ScoringEngineTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.program, cls.screening, cls.questions = build_screening()
        cls.candidate = make_candidate(cls.program, cls.screening)

    def score(self, answers, **kwargs):
        return ScoringEngine().score(self.candidate.pk, answers, **kwargs)

    def test_six_correct_four_unanswered_passes(self):
        result = self.score(answers_for(self.questions, correct=6), time_taken=1200)

        self.assertEqual(result['totalScore'], 60)
        self.assertEqual(result['percentage'], 60.0)
        self.assertEqual(result['status'], Candidate.Status.PASSED)
        self.assertEqual(result['correctAnswers'], 6)
        self.assertEqual(result['unansweredQuestions'], 4)
        self.assertEqual(result['timeTaken'], 1200)

        self.candidate.refresh_from_db()
        self.assertTrue(self.candidate.has_written)
        self.assertEqual(self.candidate.total_score, 60)
        self.assertEqual(self.candidate.percentage, 60.0)
        self.assertEqual(self.candidate.status, Candidate.Status.PASSED)

    def test_four_correct_fails(self):
        result = self.score(answers_for(self.questions, correct=4))

        self.assertEqual(result['totalScore'], 40)
        self.assertEqual(result['status'], Candidate.Status.FAILED)
        self.candidate.refresh_from_db()
        self.assertEqual(self.candidate.status, Candidate.Status.FAILED)

    def test_exactly_pass_marks_passes(self):
        result = self.score(answers_for(self.questions, correct=5, wrong=5))

        self.assertEqual(result['totalScore'], 50)
        self.assertEqual(result['status'], Candidate.Status.PASSED)
        self.assertEqual(result['wrongAnswers'], 5)

    def test_one_row_per_assigned_question_and_total_matches(self):
        self.score(answers_for(self.questions, correct=3, wrong=2))

        rows = list(self.candidate.test_scores.all())
        self.assertEqual(sorted(r.question_id for r in rows), sorted(q.id for q in self.questions))
        self.candidate.refresh_from_db()
        self.assertEqual(self.candidate.total_score, sum(r.marks for r in rows))

    def test_unanswered_question_is_recorded_as_null_and_zero(self):
        self.score(answers_for(self.questions, correct=1))

        unanswered = self.candidate.test_scores.exclude(question=self.questions[0])
        self.assertEqual(unanswered.count(), 9)
        for row in unanswered:
            self.assertIsNone(row.selected_answer)
            self.assertFalse(row.is_correct)
            self.assertEqual(row.marks, 0)

    def test_blank_answer_counts_as_unanswered(self):
        result = self.score([{"questionId": self.questions[0].id, "selectedAnswer": "   "}])

        self.assertEqual(result['unansweredQuestions'], 10)
        row = self.candidate.test_scores.get(question=self.questions[0])
        self.assertIsNone(row.selected_answer)

    def test_answer_comparison_ignores_case_and_whitespace(self):
        result = self.score([{"questionId": self.questions[0].id, "selectedAnswer": " b "}])
        self.assertEqual(result['totalScore'], 10)

    def test_second_submission_is_rejected_and_first_result_kept(self):
        self.score(answers_for(self.questions, correct=7))

        with self.assertRaises(AlreadyWrittenError):
            self.score(answers_for(self.questions, correct=10))

        self.candidate.refresh_from_db()
        self.assertEqual(self.candidate.total_score, 70)
        self.assertEqual(self.candidate.test_scores.count(), 10)

    def test_racing_submission_loses_compare_and_set(self):
        engine = ScoringEngine()
        validate = engine.intake.validate

        def validate_then_race(questions, answers):
            selections = validate(questions, answers)
            # A second request (auto-submit) lands while this one is in flight
            ScoringEngine().score(self.candidate.pk, answers_for(self.questions, correct=8))
            return selections

        engine.intake.validate = validate_then_race

        with self.assertRaises(AlreadyWrittenError):
            engine.score(self.candidate.pk, answers_for(self.questions, correct=3))

        self.candidate.refresh_from_db()
        self.assertEqual(self.candidate.total_score, 80)
        self.assertEqual(self.candidate.test_scores.count(), 10)
        self.assertEqual(AuditLog.objects.filter(action='SCORED').count(), 1)

    def test_question_outside_assigned_set_is_rejected_without_writes(self):
        _, _, foreign = build_screening(question_count=1, code="MTH")
        payload = answers_for(self.questions, correct=2) + [{"questionId": foreign[0].id, "selectedAnswer": "B"}]

        with self.assertRaises(ValidationError):
            self.score(payload)

        self.candidate.refresh_from_db()
        self.assertFalse(self.candidate.has_written)
        self.assertEqual(self.candidate.status, Candidate.Status.REGISTERED)
        self.assertEqual(self.candidate.test_scores.count(), 0)

    def test_malformed_payload_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.score("not-a-list")
        with self.assertRaises(ValidationError):
            self.score([{"selectedAnswer": "B"}])

        self.candidate.refresh_from_db()
        self.assertFalse(self.candidate.has_written)

    def test_duplicate_question_in_payload_is_rejected(self):
        question_id = self.questions[0].id
        payload = [
            {"questionId": question_id, "selectedAnswer": "B"},
            {"questionId": question_id, "selectedAnswer": "C"},
        ]
        with self.assertRaises(ValidationError):
            self.score(payload)

    def test_unknown_candidate(self):
        with self.assertRaises(NotFoundError):
            ScoringEngine().score(999999, [])

    def test_database_failure_rolls_back_everything(self):
        with mock.patch.object(StatusTransitioner, 'resolve_outcome', side_effect=DatabaseError("disk full")):
            with self.assertRaises(PersistenceError):
                self.score(answers_for(self.questions, correct=6))

        self.candidate.refresh_from_db()
        self.assertFalse(self.candidate.has_written)
        self.assertEqual(self.candidate.status, Candidate.Status.REGISTERED)
        self.assertIsNone(self.candidate.total_score)
        self.assertEqual(self.candidate.test_scores.count(), 0)

        # Nothing was committed, so a retry succeeds
        result = self.score(answers_for(self.questions, correct=6))
        self.assertEqual(result['totalScore'], 60)

    def test_submission_closes_the_session(self):
        SessionManager().start_session(self.candidate.pk)

        self.score(answers_for(self.questions, correct=2))

        session = ExamSession.objects.get(candidate=self.candidate)
        self.assertEqual(session.state, ExamSession.State.SUBMITTED)
        self.assertIsNotNone(session.submitted_at)
        self.assertFalse(session.submitted_late)

    def test_attempt_time_is_stored_on_the_session(self):
        SessionManager().start_session(self.candidate.pk)

        self.score(answers_for(self.questions, correct=6), time_taken=900)

        session = ExamSession.objects.get(candidate=self.candidate)
        self.assertEqual(session.time_taken, 900)
        self.assertEqual(candidate_report(self.candidate.pk)['performance']['timeTaken'], 900)

    def test_late_submission_is_accepted_and_flagged(self):
        started = timezone.now() - timedelta(hours=2)
        SessionManager().start_session(self.candidate.pk, now=started)

        result = self.score(answers_for(self.questions, correct=6))

        self.assertEqual(result['totalScore'], 60)
        session = ExamSession.objects.get(candidate=self.candidate)
        self.assertTrue(session.submitted_late)

    def test_program_test_narrows_question_set(self):
        program_test = ProgramTest.objects.create(program=self.program, screening=self.screening)
        program_test.questions.set(self.questions[:3])

        result = self.score(answers_for(self.questions[:3], correct=3))

        self.assertEqual(self.candidate.test_scores.count(), 3)
        self.assertEqual(result['maxScore'], 30)
        # Percentage is always against the screening's total marks
        self.assertEqual(result['percentage'], 30.0)

    def test_grade_and_subject_breakdown(self):
        result = self.score(answers_for(self.questions, correct=8))

        self.assertEqual(result['grade'], 'A')
        self.assertEqual(result['gradeDescription'], 'Excellent')
        [subject] = result['subjectBreakdown']
        self.assertEqual(subject['subjectCode'], 'GNS')
        self.assertEqual(subject['totalQuestions'], 10)
        self.assertEqual(subject['correctAnswers'], 8)
        self.assertEqual(subject['score'], 80)
        self.assertEqual(subject['percentage'], 80.0)

    def test_zero_total_marks_gives_zero_percentage(self):
        Screening.objects.filter(pk=self.screening.pk).update(total_marks=0, pass_marks=0)

        result = self.score(answers_for(self.questions, correct=2))

        self.assertEqual(result['percentage'], 0.0)
        self.assertEqual(result['status'], Candidate.Status.PASSED)


class GradeScaleTests(SimpleTestCase):

    def test_boundaries(self):
        self.assertEqual(determine_grade(100), 'A')
        self.assertEqual(determine_grade(79.99), 'B')
        self.assertEqual(determine_grade(60), 'C')
        self.assertEqual(determine_grade(50), 'D')
        self.assertEqual(determine_grade(40), 'E')
        self.assertEqual(determine_grade(39.5), 'F')


class SessionManagerTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.program, cls.screening, cls.questions = build_screening(duration=90)
        cls.candidate = make_candidate(cls.program, cls.screening)

    def test_start_sets_server_deadline(self):
        now = timezone.now()
        session, created = SessionManager().start_session(self.candidate.pk, now=now)

        self.assertTrue(created)
        self.assertEqual(session.state, ExamSession.State.IN_PROGRESS)
        self.assertEqual(session.started_at, now)
        self.assertEqual(session.deadline, now + timedelta(minutes=90))

    def test_restart_returns_existing_deadline(self):
        first, _ = SessionManager().start_session(self.candidate.pk, now=timezone.now() - timedelta(minutes=30))
        again, created = SessionManager().start_session(self.candidate.pk)

        self.assertFalse(created)
        self.assertEqual(again.pk, first.pk)
        self.assertEqual(again.deadline, first.deadline)

    def test_written_candidate_cannot_start(self):
        ScoringEngine().score(self.candidate.pk, [])

        with self.assertRaises(AlreadyWrittenError):
            SessionManager().start_session(self.candidate.pk)

    def test_missing_candidate_or_screening(self):
        with self.assertRaises(NotFoundError):
            SessionManager().start_session(999999)

        unassigned = make_candidate(self.program, None, registration_number="REG404")
        with self.assertRaises(NotFoundError):
            SessionManager().start_session(unassigned.pk)

    def test_unstarted_session_view(self):
        session = SessionManager().get_session(self.candidate.pk)

        self.assertEqual(session.state, ExamSession.State.NOT_STARTED)
        self.assertEqual(session.time_remaining_seconds(), 0)

    def test_time_remaining_counts_down_from_deadline(self):
        now = timezone.now()
        session, _ = SessionManager().start_session(self.candidate.pk, now=now)

        self.assertEqual(session.time_remaining_seconds(now + timedelta(minutes=30)), 60 * 60)
        self.assertEqual(session.time_remaining_seconds(now + timedelta(hours=3)), 0)


class AnswerIntakeTests(SimpleTestCase):

    questions = [SimpleNamespace(id=1), SimpleNamespace(id=2), SimpleNamespace(id=3)]

    def test_omitted_questions_are_unanswered(self):
        selections = AnswerIntake().validate(self.questions, [{"questionId": 2, "selectedAnswer": " C ", "timeTaken": 14}])

        self.assertEqual(set(selections), {1, 2, 3})
        self.assertEqual(selections[2].selected_answer, "C")
        self.assertEqual(selections[2].time_taken, 14)
        self.assertIsNone(selections[1].selected_answer)
        self.assertIsNone(selections[3].selected_answer)

    def test_null_answer_is_unanswered(self):
        selections = AnswerIntake().validate(self.questions, [{"questionId": 1, "selectedAnswer": None}])
        self.assertIsNone(selections[1].selected_answer)

    def test_empty_payload_is_valid(self):
        selections = AnswerIntake().validate(self.questions, [])
        self.assertTrue(all(s.selected_answer is None for s in selections.values()))

    def test_unknown_question_is_rejected(self):
        with self.assertRaises(ValidationError):
            AnswerIntake().validate(self.questions, [{"questionId": 42, "selectedAnswer": "A"}])


class FakeClock:

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class ExamCountdownTests(SimpleTestCase):

    def setUp(self):
        self.clock = FakeClock(timezone.now())
        self.submissions = []
        self.countdown = ExamCountdown(
            self.clock.now + timedelta(seconds=3),
            lambda: self.submissions.append(self.clock.now),
            clock=self.clock,
        )

    def test_expiry_submits_exactly_once(self):
        self.countdown.start()
        self.assertEqual(self.countdown.state, ExamCountdown.IN_PROGRESS)

        for _ in range(5):
            self.clock.advance(1)
            self.countdown.tick()

        self.assertEqual(len(self.submissions), 1)
        self.assertEqual(self.countdown.state, ExamCountdown.SUBMITTED)
        self.assertFalse(self.countdown.submit())
        self.assertEqual(len(self.submissions), 1)

    def test_manual_submit_stops_the_timer(self):
        self.countdown.start()
        self.assertTrue(self.countdown.submit())

        self.clock.advance(10)
        self.countdown.tick()

        self.assertEqual(len(self.submissions), 1)

    def test_reseeding_from_deadline_keeps_remaining_time(self):
        self.countdown.start()
        self.clock.advance(2)
        reloaded = ExamCountdown(self.countdown.deadline, lambda: None, clock=self.clock)
        reloaded.start()

        self.assertEqual(reloaded.remaining, 1)

    def test_failed_submit_can_be_retried_by_hand(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise ConnectionError("offline")

        countdown = ExamCountdown(self.clock.now + timedelta(seconds=1), flaky, clock=self.clock)
        countdown.start()
        self.clock.advance(1)
        with self.assertRaises(ConnectionError):
            countdown.tick()

        self.assertEqual(countdown.state, ExamCountdown.IN_PROGRESS)
        self.clock.advance(1)
        countdown.tick()
        self.assertEqual(len(calls), 1)

        self.assertTrue(countdown.submit())
        self.assertEqual(len(calls), 2)

    def test_default_clock_is_timezone_aware(self):
        self.assertIs(ExamCountdown(self.clock.now, lambda: None).clock, utcnow)
        self.assertIs(TimedAttempt(mock.Mock(), 1).clock, utcnow)
        self.assertTrue(timezone.is_aware(utcnow()))

    def test_run_loop_ticks_once_per_second(self):
        sleeps = []

        def sleep(seconds):
            sleeps.append(seconds)
            self.clock.advance(seconds)

        self.countdown.run(sleep=sleep)

        self.assertEqual(sleeps, [1, 1, 1])
        self.assertEqual(len(self.submissions), 1)


class ExamClientTests(SimpleTestCase):

    def response(self, status_code, payload):
        return mock.Mock(status_code=status_code, json=mock.Mock(return_value=payload))

    def test_error_statuses_map_to_typed_errors(self):
        http = mock.Mock()
        http.headers = {}
        http.request.return_value = self.response(403, {"error": "Candidate has already written this test."})
        client = ExamClient("http://testserver", token="abc", session=http)

        with self.assertRaises(AlreadyWrittenError):
            client.fetch_questions(1)
        self.assertEqual(http.headers["Authorization"], "Bearer abc")

    def test_timed_attempt_auto_submits_collected_answers(self):
        clock = FakeClock(timezone.now())
        deadline = clock.now + timedelta(seconds=2)
        client = mock.Mock()
        client.start_session.return_value = {"state": "IN_PROGRESS", "deadline": deadline.isoformat()}
        client.fetch_questions.return_value = [{"id": 7, "question": "Q", "options": OPTIONS}]
        client.submit.return_value = {"totalScore": 10}

        attempt = TimedAttempt(client, 5, clock=clock)
        attempt.begin()
        attempt.answer(7, "B")
        attempt.run(sleep=clock.advance)

        client.submit.assert_called_once_with(5, [{"questionId": 7, "selectedAnswer": "B"}], 2)
        self.assertEqual(attempt.result, {"totalScore": 10})
        with self.assertRaises(RuntimeError):
            attempt.answer(7, "C")

    def test_retry_after_recorded_submission_is_not_an_error(self):
        clock = FakeClock(timezone.now())
        client = mock.Mock()
        client.start_session.return_value = {"deadline": (clock.now + timedelta(minutes=5)).isoformat()}
        client.fetch_questions.return_value = []
        client.submit.side_effect = AlreadyWrittenError()

        attempt = TimedAttempt(client, 5, clock=clock)
        attempt.begin()

        self.assertTrue(attempt.submit())
        self.assertIsNone(attempt.result)


class ReportTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.program, cls.screening, cls.questions = build_screening()
        cls.passer = make_candidate(cls.program, cls.screening, "REG001")
        cls.failer = make_candidate(cls.program, cls.screening, "REG002")
        cls.absent = make_candidate(cls.program, cls.screening, "REG003")
        ScoringEngine().score(cls.passer.pk, answers_for(cls.questions, correct=7))
        ScoringEngine().score(cls.failer.pk, answers_for(cls.questions, correct=3))

    def test_candidate_report(self):
        report = candidate_report(self.passer.pk)

        self.assertEqual(report['performance']['totalScore'], 70)
        self.assertEqual(report['performance']['grade'], 'B')
        self.assertEqual(report['performance']['status'], Candidate.Status.PASSED)
        self.assertEqual(len(report['testScores']), 10)
        self.assertEqual(report['program']['department'], 'Sciences')

    def test_screening_statistics(self):
        stats = screening_statistics(self.screening.pk)

        self.assertEqual(stats['totalCandidates'], 3)
        self.assertEqual(stats['writtenCandidates'], 2)
        self.assertEqual(stats['passedCandidates'], 1)
        self.assertEqual(stats['failedCandidates'], 1)
        self.assertEqual(stats['averageScore'], 50)
        self.assertEqual(stats['passRate'], 50)
        [program] = stats['programStats']
        self.assertEqual(program['total'], 3)
        self.assertEqual(program['written'], 2)

    def test_admission_decision_does_not_change_pass_counts(self):
        StatusTransitioner().record_decision(self.passer.pk, Candidate.Status.REJECTED)

        stats = screening_statistics(self.screening.pk)
        self.assertEqual(stats['passedCandidates'], 1)

    def test_unknown_screening(self):
        with self.assertRaises(NotFoundError):
            screening_statistics(999999)


class ScoringApiTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.program, cls.screening, cls.questions = build_screening()
        cls.candidate = make_candidate(cls.program, cls.screening)
        cls.user = get_user_model().objects.create_user(username="examiner", password="s3cret-pass")

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def post_scoring(self, answers, candidate_id=None):
        payload = {
            "candidateId": candidate_id or self.candidate.pk,
            "answers": answers,
            "timeTaken": 900,
        }
        return self.client.post('/api/scoring/', payload, format='json')

    def test_scoring_success(self):
        response = self.post_scoring(answers_for(self.questions, correct=6))

        self.assertEqual(response.status_code, 200)
        result = response.json()['result']
        self.assertEqual(result['totalScore'], 60)
        self.assertEqual(result['percentage'], 60)
        self.assertEqual(result['status'], 'PASSED')
        self.assertEqual(len(result['testScores']), 10)
        self.assertEqual(AuditLog.objects.get(action='SCORED').actor, self.user)

    def test_second_submission_is_forbidden(self):
        self.post_scoring(answers_for(self.questions, correct=6))
        response = self.post_scoring(answers_for(self.questions, correct=9))

        self.assertEqual(response.status_code, 403)
        self.assertIn('error', response.json())
        self.candidate.refresh_from_db()
        self.assertEqual(self.candidate.total_score, 60)

    def test_unknown_candidate_is_404(self):
        response = self.post_scoring([], candidate_id=999999)
        self.assertEqual(response.status_code, 404)

    def test_out_of_set_answer_is_422(self):
        response = self.post_scoring([{"questionId": 999999, "selectedAnswer": "A"}])

        self.assertEqual(response.status_code, 422)
        self.candidate.refresh_from_db()
        self.assertFalse(self.candidate.has_written)

    def test_malformed_body_is_422(self):
        response = self.client.post('/api/scoring/', {"answers": "nope"}, format='json')
        self.assertEqual(response.status_code, 422)

    def test_persistence_failure_is_500(self):
        with mock.patch.object(StatusTransitioner, 'resolve_outcome', side_effect=DatabaseError("boom")):
            response = self.post_scoring(answers_for(self.questions, correct=6))

        self.assertEqual(response.status_code, 500)
        self.candidate.refresh_from_db()
        self.assertFalse(self.candidate.has_written)

    def test_report_and_statistics_endpoints(self):
        self.post_scoring(answers_for(self.questions, correct=6))

        report = self.client.get('/api/scoring/', {'candidateId': self.candidate.pk})
        self.assertEqual(report.status_code, 200)
        self.assertEqual(report.json()['performance']['totalScore'], 60)

        stats = self.client.get('/api/scoring/statistics/', {'screeningId': self.screening.pk})
        self.assertEqual(stats.status_code, 200)
        self.assertEqual(stats.json()['passedCandidates'], 1)

        self.assertEqual(self.client.get('/api/scoring/').status_code, 400)
        self.assertEqual(self.client.get('/api/scoring/statistics/').status_code, 400)

    def test_time_taken_is_persisted(self):
        self.post_scoring(answers_for(self.questions, correct=6))

        self.assertEqual(ExamSession.objects.get(candidate=self.candidate).time_taken, 900)
        report = self.client.get('/api/scoring/', {'candidateId': self.candidate.pk}).json()
        self.assertEqual(report['performance']['timeTaken'], 900)

    def test_batch_endpoint(self):
        other = make_candidate(self.program, self.screening, "REG002")
        payload = {"submissions": [
            {"candidateId": self.candidate.pk, "answers": answers_for(self.questions, correct=6), "timeTaken": 600},
            {"candidateId": other.pk, "answers": answers_for(self.questions, correct=2)},
            {"candidateId": 999999, "answers": []},
        ]}

        response = self.client.post('/api/scoring/batch/', payload, format='json')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['summary'], {'total': 3, 'successful': 2, 'failed': 1})
        self.assertEqual([r['candidateId'] for r in body['results']], [self.candidate.pk, other.pk])
        self.assertEqual(body['errors'][0]['candidateId'], 999999)
        self.assertEqual(body['errors'][0]['error'], 'Candidate not found')

    def test_batch_endpoint_requires_submissions(self):
        self.assertEqual(self.client.post('/api/scoring/batch/', {}, format='json').status_code, 422)
        response = self.client.post('/api/scoring/batch/', {"submissions": []}, format='json')
        self.assertEqual(response.status_code, 422)

    def test_requires_authentication(self):
        response = APIClient().post('/api/scoring/', {}, format='json')
        self.assertIn(response.status_code, (401, 403))


class BatchScoringTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.program, cls.screening, cls.questions = build_screening()
        cls.fresh = make_candidate(cls.program, cls.screening, "REG001")
        cls.written = make_candidate(cls.program, cls.screening, "REG002")

    def test_mixed_batch_keeps_going_past_failures(self):
        ScoringEngine().score(self.written.pk, answers_for(self.questions, correct=4))

        outcome = ScoringEngine().score_batch([
            {"candidateId": self.fresh.pk, "answers": answers_for(self.questions, correct=7), "timeTaken": 1500},
            {"candidateId": self.written.pk, "answers": answers_for(self.questions, correct=10)},
            {"candidateId": 999999, "answers": []},
        ])

        self.assertEqual(outcome['summary'], {'total': 3, 'successful': 1, 'failed': 2})
        [scored] = outcome['results']
        self.assertEqual(scored['candidateId'], self.fresh.pk)
        self.assertEqual(scored['result']['totalScore'], 70)

        errors = {e['candidateId']: e for e in outcome['errors']}
        self.assertEqual(errors[self.written.pk]['code'], 'already_written')
        self.assertEqual(errors[999999]['code'], 'not_found')

        self.fresh.refresh_from_db()
        self.written.refresh_from_db()
        self.assertEqual(self.fresh.status, Candidate.Status.PASSED)
        self.assertEqual(ExamSession.objects.get(candidate=self.fresh).time_taken, 1500)
        # First result stands for the candidate who had already written
        self.assertEqual(self.written.total_score, 40)

    def test_malformed_item_is_reported_not_raised(self):
        outcome = ScoringEngine().score_batch([
            {"answers": []},
            "not-a-submission",
            {"candidateId": self.fresh.pk, "answers": [{"questionId": 999999, "selectedAnswer": "A"}]},
        ])

        self.assertEqual(outcome['summary']['failed'], 3)
        self.assertEqual({e['code'] for e in outcome['errors']}, {'invalid_answers'})
        self.fresh.refresh_from_db()
        self.assertFalse(self.fresh.has_written)

    def test_persistence_failure_only_affects_its_submission(self):
        real_resolve = StatusTransitioner.resolve_outcome
        calls = []

        def fail_first(transitioner, *args, **kwargs):
            calls.append(args[0])
            if len(calls) == 1:
                raise DatabaseError("disk full")
            return real_resolve(transitioner, *args, **kwargs)

        with mock.patch.object(StatusTransitioner, 'resolve_outcome', autospec=True, side_effect=fail_first):
            outcome = ScoringEngine().score_batch([
                {"candidateId": self.fresh.pk, "answers": answers_for(self.questions, correct=6)},
                {"candidateId": self.written.pk, "answers": answers_for(self.questions, correct=6)},
            ])

        self.assertEqual(outcome['summary'], {'total': 2, 'successful': 1, 'failed': 1})
        self.assertEqual(outcome['errors'][0]['code'], 'persistence_error')
        self.fresh.refresh_from_db()
        self.assertFalse(self.fresh.has_written)
        self.assertEqual(self.fresh.test_scores.count(), 0)


@skipUnless(connection.vendor == 'postgresql', "row-level locking needs PostgreSQL")
class ConcurrentAttemptTests(TransactionTestCase):
    """Two requests for the same candidate on separate connections."""

    def setUp(self):
        self.program, self.screening, self.questions = build_screening()
        self.candidate = make_candidate(self.program, self.screening)

    def run_in_parallel(self, *targets):
        barrier = threading.Barrier(len(targets))
        outcomes = []

        def runner(target):
            try:
                barrier.wait()
                outcomes.append(target())
            except AlreadyWrittenError:
                outcomes.append('already_written')
            except Exception as exc:
                outcomes.append(repr(exc))
            finally:
                connections.close_all()

        threads = [threading.Thread(target=runner, args=(target,)) for target in targets]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return outcomes

    def test_parallel_submissions_score_once(self):
        def submit(correct):
            return lambda: ScoringEngine().score(
                self.candidate.pk, answers_for(self.questions, correct=correct)
            )['totalScore']

        outcomes = self.run_in_parallel(submit(6), submit(8))

        self.assertEqual(len(outcomes), 2)
        self.assertIn('already_written', outcomes)
        [winner] = [o for o in outcomes if o != 'already_written']
        self.assertIn(winner, (60, 80))

        self.candidate.refresh_from_db()
        self.assertEqual(self.candidate.total_score, winner)
        self.assertEqual(self.candidate.test_scores.count(), 10)
        self.assertEqual(AuditLog.objects.filter(action='SCORED').count(), 1)

    def test_parallel_session_starts_share_one_deadline(self):
        def start():
            session, created = SessionManager().start_session(self.candidate.pk)
            return created, session.deadline

        outcomes = self.run_in_parallel(start, start)

        self.assertEqual(sorted(created for created, _ in outcomes), [False, True])
        self.assertEqual(len({deadline for _, deadline in outcomes}), 1)
        self.assertEqual(ExamSession.objects.filter(candidate=self.candidate).count(), 1)
