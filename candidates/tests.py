from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from assessments.scoring import ScoringEngine
from assessments.tests import answers_for, build_screening, make_candidate
from cores.exceptions import AlreadyWrittenError, NotFoundError, TransitionError
from cores.models import AuditLog
from .models import Candidate
from .services import StatusTransitioner

Status = Candidate.Status


class StatusTransitionerTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.program, cls.screening, cls.questions = build_screening()
        cls.candidate = make_candidate(cls.program, cls.screening)

    def test_outcome_is_decided_by_pass_marks(self):
        self.assertEqual(StatusTransitioner.outcome_for(50, 50), Status.PASSED)
        self.assertEqual(StatusTransitioner.outcome_for(49, 50), Status.FAILED)

    def test_begin_attempt_flips_lock_once(self):
        transitioner = StatusTransitioner()
        transitioner.begin_attempt(self.candidate.pk)

        self.candidate.refresh_from_db()
        self.assertTrue(self.candidate.has_written)
        self.assertEqual(self.candidate.status, Status.WRITTEN)

        with self.assertRaises(AlreadyWrittenError):
            transitioner.begin_attempt(self.candidate.pk)

    def test_outcome_requires_written_candidate(self):
        with self.assertRaises(TransitionError):
            StatusTransitioner().resolve_outcome(self.candidate.pk, 60, 60.0, 50)

    def test_admission_after_pass(self):
        ScoringEngine().score(self.candidate.pk, answers_for(self.questions, correct=6))

        candidate = StatusTransitioner().record_decision(self.candidate.pk, Status.ADMITTED)

        self.assertEqual(candidate.status, Status.ADMITTED)
        self.assertTrue(AuditLog.objects.filter(action='DECISION', target_object_id=str(candidate.pk)).exists())

    def test_failed_candidate_can_only_be_rejected(self):
        ScoringEngine().score(self.candidate.pk, answers_for(self.questions, correct=1))

        with self.assertRaises(TransitionError):
            StatusTransitioner().record_decision(self.candidate.pk, Status.ADMITTED)

        candidate = StatusTransitioner().record_decision(self.candidate.pk, Status.REJECTED)
        self.assertEqual(candidate.status, Status.REJECTED)

    def test_terminal_and_unscored_states_refuse_decisions(self):
        with self.assertRaises(TransitionError):
            StatusTransitioner().record_decision(self.candidate.pk, Status.ADMITTED)

        ScoringEngine().score(self.candidate.pk, answers_for(self.questions, correct=9))
        StatusTransitioner().record_decision(self.candidate.pk, Status.ADMITTED)
        with self.assertRaises(TransitionError):
            StatusTransitioner().record_decision(self.candidate.pk, Status.REJECTED)

    def test_unknown_candidate(self):
        with self.assertRaises(NotFoundError):
            StatusTransitioner().record_decision(999999, Status.ADMITTED)


class CandidateApiTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.program, cls.screening, cls.questions = build_screening(question_count=3, pass_marks=20, duration=45)
        cls.candidate = make_candidate(cls.program, cls.screening)
        cls.user = get_user_model().objects.create_user(username="registrar", password="s3cret-pass")

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_candidate_detail(self):
        response = self.client.get(f'/api/candidates/{self.candidate.pk}/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['registrationNumber'], 'REG001')
        self.assertEqual(data['status'], 'REGISTERED')
        self.assertFalse(data['hasWritten'])
        self.assertEqual(data['screening']['duration'], 45)
        self.assertEqual(data['program']['department']['code'], 'SCI')

    def test_candidate_detail_404(self):
        response = self.client.get('/api/candidates/999999/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], 'Candidate not found')

    def test_questions_exclude_answer_keys(self):
        response = self.client.get(f'/api/candidates/{self.candidate.pk}/questions/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual([q['id'] for q in data], [q.id for q in self.questions])
        for item in data:
            self.assertNotIn('correctAnswer', item)
            self.assertNotIn('correct_answer', item)

    def test_questions_forbidden_after_writing(self):
        ScoringEngine().score(self.candidate.pk, [])

        response = self.client.get(f'/api/candidates/{self.candidate.pk}/questions/')
        self.assertEqual(response.status_code, 403)

    def test_start_session_is_idempotent(self):
        url = f'/api/candidates/{self.candidate.pk}/session/'

        first = self.client.post(url)
        second = self.client.post(url)

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(first.json()['deadline'], second.json()['deadline'])
        self.assertEqual(second.json()['state'], 'IN_PROGRESS')
        self.assertGreater(second.json()['timeRemainingSeconds'], 44 * 60)

        current = self.client.get(url)
        self.assertEqual(current.json()['deadline'], first.json()['deadline'])

    def test_session_state_before_start(self):
        response = self.client.get(f'/api/candidates/{self.candidate.pk}/session/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['state'], 'NOT_STARTED')
        self.assertIsNone(response.json()['deadline'])

    def test_start_session_after_writing_is_forbidden(self):
        ScoringEngine().score(self.candidate.pk, [])

        response = self.client.post(f'/api/candidates/{self.candidate.pk}/session/')
        self.assertEqual(response.status_code, 403)

    def test_decision_endpoint(self):
        url = f'/api/candidates/{self.candidate.pk}/decision/'

        self.assertEqual(self.client.post(url, {'decision': 'ADMITTED'}, format='json').status_code, 409)
        self.assertEqual(self.client.post(url, {'decision': 'MAYBE'}, format='json').status_code, 400)

        ScoringEngine().score(self.candidate.pk, answers_for(self.questions, correct=3))
        response = self.client.post(url, {'decision': 'ADMITTED'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'ADMITTED')
