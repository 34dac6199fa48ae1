from rest_framework import permissions, status, views
from rest_framework.response import Response

from assessments.serializers import ExamSessionSerializer
from assessments.sessions import SessionManager
from cores.exceptions import AlreadyWrittenError, NotFoundError, ScreeningError, error_response
from screenings.serializers import CandidateQuestionSerializer
from screenings.services import QuestionSetProvider
from .models import Candidate
from .serializers import CandidateSerializer, DecisionSerializer
from .services import StatusTransitioner


def _load_candidate(candidate_id):
    candidate = (
        Candidate.objects
        .select_related('screening', 'program__department')
        .filter(pk=candidate_id)
        .first()
    )
    if candidate is None:
        raise NotFoundError("Candidate not found")
    return candidate


class CandidateDetailView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, candidate_id):
        try:
            candidate = _load_candidate(candidate_id)
        except ScreeningError as exc:
            return error_response(exc)
        return Response(CandidateSerializer(candidate).data)


class CandidateQuestionsView(views.APIView):
    """Ordered question set for the candidate's screening, without answer keys."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, candidate_id):
        try:
            candidate = _load_candidate(candidate_id)
            if candidate.has_written:
                raise AlreadyWrittenError()
            questions = QuestionSetProvider().questions_for(candidate)
            if not questions:
                raise NotFoundError("No questions found for this screening")
        except ScreeningError as exc:
            return error_response(exc)

        return Response(CandidateQuestionSerializer(questions, many=True).data)


class CandidateSessionView(views.APIView):
    """
    GET returns the current attempt state.
    POST opens the attempt, or resumes the one already running.
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, candidate_id):
        try:
            session = SessionManager().get_session(candidate_id)
        except ScreeningError as exc:
            return error_response(exc)
        return Response(ExamSessionSerializer(session).data)

    def post(self, request, candidate_id):
        try:
            session, created = SessionManager().start_session(candidate_id, actor=request.user)
        except ScreeningError as exc:
            return error_response(exc)

        data = ExamSessionSerializer(session).data
        return Response(data, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class CandidateDecisionView(views.APIView):
    """Records the administrative admission decision after scoring."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, candidate_id):
        serializer = DecisionSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        try:
            candidate = StatusTransitioner().record_decision(
                candidate_id, serializer.validated_data['decision'], actor=request.user
            )
        except ScreeningError as exc:
            return error_response(exc)

        return Response(CandidateSerializer(candidate).data)
