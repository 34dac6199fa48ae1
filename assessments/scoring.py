# assessments/scoring.py
import logging
from collections import OrderedDict

from django.db import DatabaseError, transaction
from django.utils import timezone

from candidates.models import Candidate
from candidates.services import StatusTransitioner
from cores.exceptions import NotFoundError, PersistenceError, ScreeningError, ValidationError
from cores.models import AuditLog
from screenings.services import QuestionSetProvider
from .intake import AnswerIntake
from .models import ExamSession, TestScore
from .serializers import ScoringRequestSerializer, TestScoreSerializer
from .timeout import reconcile_submission

logger = logging.getLogger(__name__)

# (grade, minimum percentage, description), highest first
GRADING_SCALE = [
    ('A', 80, 'Excellent'),
    ('B', 70, 'Very Good'),
    ('C', 60, 'Good'),
    ('D', 50, 'Fair'),
    ('E', 40, 'Pass'),
    ('F', 0, 'Fail'),
]


def determine_grade(percentage):
    for grade, minimum, _ in GRADING_SCALE:
        if percentage >= minimum:
            return grade
    return 'F'


def grade_description(grade):
    for name, _, description in GRADING_SCALE:
        if name == grade:
            return description
    return 'Unknown'


def compute_percentage(total_score, total_marks):
    if not total_marks:
        return 0.0
    return round(total_score / total_marks * 100, 2)


def is_correct_answer(selected, correct):
    if selected is None:
        return False
    return selected.strip().casefold() == correct.strip().casefold()


class ScoringEngine:
    """
    Turns a candidate's submission into per-question TestScore rows, an
    aggregate score and a PASSED/FAILED status.

    Everything from the has_written compare-and-set to the status write is one
    transaction. A second submission for the same candidate, sequential or
    racing, fails the compare-and-set with AlreadyWrittenError and writes
    nothing.
    """

    def __init__(self, provider=None, intake=None, transitioner=None):
        self.provider = provider or QuestionSetProvider()
        self.intake = intake or AnswerIntake()
        self.transitioner = transitioner or StatusTransitioner()

    def score(self, candidate_id, answers, time_taken=None, actor=None, now=None):
        candidate = Candidate.objects.select_related('screening').filter(pk=candidate_id).first()
        if candidate is None:
            raise NotFoundError("Candidate not found")
        if candidate.screening is None:
            raise NotFoundError("Screening not found")

        questions = self.provider.questions_for(candidate)
        if not questions:
            raise NotFoundError("No questions found for this screening")

        # Rejected payloads never reach the database
        selections = self.intake.validate(questions, answers)

        try:
            with transaction.atomic():
                result = self._score_atomically(
                    candidate, questions, selections, time_taken, actor, now or timezone.now()
                )
        except ScreeningError:
            raise
        except DatabaseError as exc:
            logger.exception("Scoring failed for candidate %s; rolled back", candidate_id)
            raise PersistenceError() from exc

        logger.info(
            "Scored candidate %s: %s/%s (%s%%) %s",
            candidate.registration_number, result['totalScore'],
            candidate.screening.total_marks, result['percentage'], result['status'],
        )
        return result

    def score_batch(self, submissions, actor=None, now=None):
        """
        Score several submissions, each in its own transaction.

        A failing submission lands in `errors` and the rest of the batch
        carries on. Each item has the same shape as a single scoring request.
        """
        results = []
        errors = []

        for submission in submissions:
            candidate_id = submission.get('candidateId') if isinstance(submission, dict) else None
            serializer = ScoringRequestSerializer(data=submission)
            try:
                if not serializer.is_valid():
                    raise ValidationError(serializer.errors)
                data = serializer.validated_data
                result = self.score(
                    data['candidateId'],
                    data['answers'],
                    time_taken=data.get('timeTaken'),
                    actor=actor,
                    now=now,
                )
            except ScreeningError as exc:
                logger.warning("Batch scoring skipped candidate %s: %s", candidate_id, exc.detail)
                errors.append({
                    'candidateId': candidate_id,
                    'error': exc.detail,
                    'code': exc.default_code,
                })
                continue
            results.append({'candidateId': data['candidateId'], 'result': result})

        logger.info("Batch scoring finished: %s scored, %s failed", len(results), len(errors))
        return {
            'results': results,
            'errors': errors,
            'summary': {
                'total': len(submissions),
                'successful': len(results),
                'failed': len(errors),
            },
        }

    def _score_atomically(self, candidate, questions, selections, time_taken, actor, now):
        screening = candidate.screening

        # 1. Single-attempt lock
        self.transitioner.begin_attempt(candidate.pk)

        # 2-3. One row per assigned question
        rows = []
        for question in questions:
            selection = selections[question.id]
            correct = is_correct_answer(selection.selected_answer, question.correct_answer)
            rows.append(TestScore(
                candidate=candidate,
                question=question,
                selected_answer=selection.selected_answer,
                is_correct=correct,
                marks=question.marks if correct else 0,
                time_taken=selection.time_taken,
            ))
        TestScore.objects.bulk_create(rows)

        # 4. Aggregate
        total_score = sum(row.marks for row in rows)
        percentage = compute_percentage(total_score, screening.total_marks)

        # 5. Resolve status in the same transaction
        status = self.transitioner.resolve_outcome(candidate.pk, total_score, percentage, screening.pass_marks)

        session = ExamSession.objects.select_for_update().filter(candidate=candidate).first()
        if session is None:
            session = ExamSession(candidate=candidate)
        reconcile_submission(session, now)
        session.time_taken = time_taken
        session.save()

        AuditLog.record(
            'SCORED', candidate,
            details=f"{candidate.registration_number}: {total_score}/{screening.total_marks} {status}",
            actor=actor,
        )

        return self._build_result(candidate, questions, rows, total_score, percentage, status, time_taken)

    def _build_result(self, candidate, questions, rows, total_score, percentage, status, time_taken):
        answered = [row for row in rows if row.selected_answer is not None]
        correct_count = sum(1 for row in rows if row.is_correct)
        grade = determine_grade(percentage)

        return {
            'candidateId': candidate.pk,
            'totalScore': total_score,
            'maxScore': sum(q.marks for q in questions),
            'percentage': percentage,
            'status': status,
            'grade': grade,
            'gradeDescription': grade_description(grade),
            'correctAnswers': correct_count,
            'wrongAnswers': len(answered) - correct_count,
            'unansweredQuestions': len(rows) - len(answered),
            'timeTaken': time_taken or 0,
            'subjectBreakdown': subject_breakdown(questions, rows),
            'testScores': TestScoreSerializer(rows, many=True).data,
        }


def subject_breakdown(questions, rows):
    groups = OrderedDict()
    by_question = {row.question_id: row for row in rows}

    for question in questions:
        subject = question.subject
        key = subject.id if subject else None
        group = groups.setdefault(key, {
            'subjectId': key,
            'subjectName': subject.name if subject else 'General',
            'subjectCode': subject.code if subject else '',
            'totalQuestions': 0,
            'correctAnswers': 0,
            'score': 0,
            '_marks': 0,
        })
        row = by_question[question.id]
        group['totalQuestions'] += 1
        group['_marks'] += question.marks
        if row.is_correct:
            group['correctAnswers'] += 1
            group['score'] += row.marks

    breakdown = []
    for group in groups.values():
        available = group.pop('_marks')
        group['percentage'] = compute_percentage(group['score'], available)
        breakdown.append(group)
    return breakdown
