from rest_framework import serializers

from screenings.serializers import ProgramSerializer, ScreeningSerializer
from .models import Candidate


class CandidateSerializer(serializers.ModelSerializer):
    """Candidate with program and screening metadata. Carries no answer keys."""
    firstName = serializers.CharField(source='first_name')
    lastName = serializers.CharField(source='last_name')
    registrationNumber = serializers.CharField(source='registration_number')
    hasWritten = serializers.BooleanField(source='has_written')
    totalScore = serializers.IntegerField(source='total_score', allow_null=True)
    program = ProgramSerializer(read_only=True)
    screening = ScreeningSerializer(read_only=True)

    class Meta:
        model = Candidate
        fields = [
            'id', 'firstName', 'lastName', 'email', 'registrationNumber',
            'hasWritten', 'totalScore', 'percentage', 'status',
            'program', 'screening',
        ]


class DecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[Candidate.Status.ADMITTED, Candidate.Status.REJECTED])
