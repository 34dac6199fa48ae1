from django.core.exceptions import ValidationError as ModelValidationError
from django.test import TestCase

from assessments.tests import build_screening, make_candidate
from cores.exceptions import NotFoundError
from .models import ProgramTest, Question
from .serializers import CandidateQuestionSerializer
from .services import QuestionSetProvider


class QuestionSetProviderTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.program, cls.screening, cls.questions = build_screening(question_count=4)
        cls.candidate = make_candidate(cls.program, cls.screening)

    def test_returns_active_questions_in_order(self):
        Question.objects.filter(pk=self.questions[0].pk).update(order=99)
        Question.objects.filter(pk=self.questions[1].pk).update(is_active=False)

        ids = [q.id for q in QuestionSetProvider().questions_for(self.candidate)]

        self.assertEqual(ids, [self.questions[2].id, self.questions[3].id, self.questions[0].id])

    def test_program_test_subset_is_used(self):
        program_test = ProgramTest.objects.create(program=self.program, screening=self.screening)
        program_test.questions.set([self.questions[3], self.questions[1]])

        ids = [q.id for q in QuestionSetProvider().questions_for(self.candidate)]

        self.assertEqual(ids, [self.questions[1].id, self.questions[3].id])

    def test_inactive_or_empty_program_test_falls_back_to_screening(self):
        ProgramTest.objects.create(program=self.program, screening=self.screening)

        self.assertEqual(len(QuestionSetProvider().questions_for(self.candidate)), 4)

    def test_candidate_without_screening(self):
        candidate = make_candidate(self.program, None, registration_number="REG002")

        with self.assertRaises(NotFoundError):
            QuestionSetProvider().questions_for(candidate)

    def test_candidate_view_hides_correct_answer(self):
        questions = QuestionSetProvider().questions_for(self.candidate)
        data = CandidateQuestionSerializer(questions, many=True).data

        self.assertEqual(data[0]['options'], ["A", "B", "C", "D"])
        self.assertNotIn('correct_answer', data[0])
        self.assertNotIn('correctAnswer', data[0])

    def test_correct_answer_must_be_an_option(self):
        question = self.questions[0]
        question.correct_answer = "E"

        with self.assertRaises(ModelValidationError):
            question.full_clean()
