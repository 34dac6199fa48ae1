from rest_framework import permissions, status, views
from rest_framework.response import Response

from cores.exceptions import ScreeningError, ValidationError, error_response
from .reports import candidate_report, screening_statistics
from .scoring import ScoringEngine
from .serializers import BatchScoringRequestSerializer, ScoringRequestSerializer


class ScoringView(views.APIView):
    """
    POST scores a candidate's submission.
    Payload: { "candidateId": 1, "answers": [ { "questionId": 3, "selectedAnswer": "Paris" } ], "timeTaken": 1800 }

    GET ?candidateId= returns the candidate's performance report.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = ScoringRequestSerializer(data=request.data)
        try:
            if not serializer.is_valid():
                raise ValidationError(serializer.errors)
            data = serializer.validated_data
            result = ScoringEngine().score(
                data['candidateId'],
                data['answers'],
                time_taken=data.get('timeTaken'),
                actor=request.user,
            )
        except ScreeningError as exc:
            return error_response(exc)

        return Response({"message": "Test scored successfully", "result": result})

    def get(self, request):
        candidate_id = request.query_params.get('candidateId')
        if not candidate_id:
            return Response({"error": "Missing required parameters"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            report = candidate_report(int(candidate_id))
        except ValueError:
            return Response({"error": "candidateId must be an integer"}, status=status.HTTP_400_BAD_REQUEST)
        except ScreeningError as exc:
            return error_response(exc)
        return Response(report)


class BatchScoringView(views.APIView):
    """
    POST scores several submissions in one call.
    Payload: { "submissions": [ { "candidateId": 1, "answers": [...], "timeTaken": 1800 }, ... ] }

    Failed submissions are reported under "errors" and do not stop the rest.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = BatchScoringRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(ValidationError(serializer.errors))

        outcome = ScoringEngine().score_batch(serializer.validated_data["submissions"], actor=request.user)
        return Response({"message": "Batch scoring completed", **outcome})


class ScreeningStatisticsView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        screening_id = request.query_params.get('screeningId')
        if not screening_id:
            return Response({"error": "Screening ID is required"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            statistics = screening_statistics(int(screening_id))
        except ValueError:
            return Response({"error": "screeningId must be an integer"}, status=status.HTTP_400_BAD_REQUEST)
        except ScreeningError as exc:
            return error_response(exc)
        return Response(statistics)
