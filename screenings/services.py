# screenings/services.py
from django.db.models import Prefetch

from cores.exceptions import NotFoundError
from .models import Option, ProgramTest, Question


class QuestionSetProvider:
    """
    Supplies the ordered question set a candidate is examined on.

    The set comes from the candidate's screening. When an active ProgramTest
    ties the candidate's program to that screening and names explicit
    questions, only those are used.
    """

    def questions_for(self, candidate):
        if candidate.screening_id is None:
            raise NotFoundError("Candidate is not assigned to a screening.")

        queryset = Question.objects.filter(screening_id=candidate.screening_id, is_active=True)

        program_test = (
            ProgramTest.objects
            .filter(program_id=candidate.program_id, screening_id=candidate.screening_id, is_active=True)
            .first()
        )
        if program_test is not None:
            selected_ids = list(program_test.questions.values_list('id', flat=True))
            if selected_ids:
                queryset = queryset.filter(id__in=selected_ids)

        return list(
            queryset
            .select_related('subject')
            .prefetch_related(Prefetch('options', queryset=Option.objects.order_by('position', 'id')))
            .order_by('order', 'id')
        )
