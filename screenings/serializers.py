# screenings/serializers.py
from rest_framework import serializers
from .models import Department, Program, Screening, Subject, Question


class DepartmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Department
        fields = ['id', 'name', 'code']


class ProgramSerializer(serializers.ModelSerializer):
    department = DepartmentSerializer(read_only=True)

    class Meta:
        model = Program
        fields = ['id', 'name', 'code', 'department']


class ScreeningSerializer(serializers.ModelSerializer):
    totalMarks = serializers.IntegerField(source='total_marks')
    passMarks = serializers.IntegerField(source='pass_marks')
    startDate = serializers.DateTimeField(source='start_date')
    endDate = serializers.DateTimeField(source='end_date')

    class Meta:
        model = Screening
        fields = ['id', 'name', 'duration', 'totalMarks', 'passMarks', 'startDate', 'endDate', 'status']


class SubjectSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subject
        fields = ['id', 'name', 'code']


class CandidateQuestionSerializer(serializers.ModelSerializer):
    """Question as shown to a candidate. Never exposes the correct answer."""
    question = serializers.CharField(source='text')
    options = serializers.ListField(source='option_texts', child=serializers.CharField())
    subject = SubjectSerializer(read_only=True)

    class Meta:
        model = Question
        fields = ['id', 'question', 'options', 'marks', 'subject']
