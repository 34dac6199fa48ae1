from rest_framework import serializers

from .models import ExamSession, TestScore


class AnswerSerializer(serializers.Serializer):
    questionId = serializers.IntegerField()
    selectedAnswer = serializers.CharField(allow_null=True, allow_blank=True, required=False, max_length=255)
    timeTaken = serializers.IntegerField(min_value=0, allow_null=True, required=False)


class ScoringRequestSerializer(serializers.Serializer):
    candidateId = serializers.IntegerField()
    # Items are checked by AnswerIntake against the candidate's question set
    answers = serializers.ListField(child=serializers.DictField(), allow_empty=True)
    timeTaken = serializers.IntegerField(min_value=0, allow_null=True, required=False)


class ExamSessionSerializer(serializers.ModelSerializer):
    candidateId = serializers.IntegerField(source='candidate_id', read_only=True)
    startedAt = serializers.DateTimeField(source='started_at', read_only=True)
    submittedAt = serializers.DateTimeField(source='submitted_at', read_only=True)
    submittedLate = serializers.BooleanField(source='submitted_late', read_only=True)
    timeTaken = serializers.IntegerField(source='time_taken', read_only=True, allow_null=True)
    timeRemainingSeconds = serializers.SerializerMethodField()

    class Meta:
        model = ExamSession
        fields = ['candidateId', 'state', 'startedAt', 'deadline', 'submittedAt', 'submittedLate', 'timeTaken', 'timeRemainingSeconds']

    def get_timeRemainingSeconds(self, obj):
        return obj.time_remaining_seconds()


class TestScoreSerializer(serializers.ModelSerializer):
    questionId = serializers.IntegerField(source='question_id', read_only=True)
    selectedAnswer = serializers.CharField(source='selected_answer', read_only=True, allow_null=True)
    isCorrect = serializers.BooleanField(source='is_correct', read_only=True)
    timeTaken = serializers.IntegerField(source='time_taken', read_only=True, allow_null=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = TestScore
        fields = ['questionId', 'selectedAnswer', 'isCorrect', 'marks', 'timeTaken', 'createdAt']


class BatchScoringRequestSerializer(serializers.Serializer):
    # Each item is validated on its own so one bad submission does not sink the batch
    submissions = serializers.ListField(child=serializers.DictField(), allow_empty=False)
