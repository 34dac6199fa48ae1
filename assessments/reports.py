# assessments/reports.py
from collections import OrderedDict

from candidates.models import Candidate
from cores.exceptions import NotFoundError
from screenings.models import Screening
from .models import ExamSession
from .scoring import determine_grade, grade_description
from .serializers import TestScoreSerializer


def candidate_report(candidate_id):
    candidate = (
        Candidate.objects
        .select_related('screening', 'program__department')
        .prefetch_related('test_scores')
        .filter(pk=candidate_id)
        .first()
    )
    if candidate is None:
        raise NotFoundError("Candidate not found")

    session = ExamSession.objects.filter(candidate=candidate).first()
    screening = candidate.screening
    grade = determine_grade(candidate.percentage) if candidate.percentage is not None else 'F'

    return {
        'candidate': {
            'id': candidate.pk,
            'firstName': candidate.first_name,
            'lastName': candidate.last_name,
            'email': candidate.email,
            'registrationNumber': candidate.registration_number,
        },
        'screening': {
            'name': screening.name,
            'totalMarks': screening.total_marks,
            'passMarks': screening.pass_marks,
        } if screening else None,
        'program': {
            'name': candidate.program.name,
            'code': candidate.program.code,
            'department': candidate.program.department.name,
        },
        'performance': {
            'totalScore': candidate.total_score,
            'percentage': candidate.percentage,
            'grade': grade,
            'gradeDescription': grade_description(grade),
            'status': candidate.status,
            'hasWritten': candidate.has_written,
            'timeTaken': session.time_taken if session else None,
            'submittedAt': session.submitted_at if session else None,
            'submittedLate': session.submitted_late if session else False,
        },
        'testScores': TestScoreSerializer(candidate.test_scores.all(), many=True).data,
    }


def _average(values):
    return round(sum(values) / len(values), 2) if values else 0


def screening_statistics(screening_id):
    screening = Screening.objects.filter(pk=screening_id).first()
    if screening is None:
        raise NotFoundError("Screening not found")

    candidates = list(
        Candidate.objects
        .filter(screening=screening)
        .select_related('program__department')
        .order_by('program_id', 'id')
    )
    written = [c for c in candidates if c.has_written and c.total_score is not None]
    # Pass track is decided by marks, so later admission decisions do not move it
    passed = [c for c in written if c.total_score >= screening.pass_marks]
    written_ids = {c.pk for c in written}

    programs = OrderedDict()
    for candidate in candidates:
        stats = programs.setdefault(candidate.program_id, {
            'programId': candidate.program_id,
            'programName': candidate.program.name,
            'departmentName': candidate.program.department.name,
            'total': 0,
            'written': 0,
            'passed': 0,
            '_scores': [],
        })
        stats['total'] += 1
        if candidate.pk in written_ids:
            stats['written'] += 1
            stats['_scores'].append(candidate.total_score)
            if candidate.total_score >= screening.pass_marks:
                stats['passed'] += 1

    program_stats = []
    for stats in programs.values():
        stats['averageScore'] = _average(stats.pop('_scores'))
        program_stats.append(stats)

    return {
        'screeningId': screening.pk,
        'totalCandidates': len(candidates),
        'writtenCandidates': len(written),
        'passedCandidates': len(passed),
        'failedCandidates': len(written) - len(passed),
        'averageScore': _average([c.total_score for c in written]),
        'passRate': round(len(passed) / len(written) * 100, 2) if written else 0,
        'programStats': program_stats,
    }
