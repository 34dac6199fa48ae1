# screenings/models.py
from django.core.exceptions import ValidationError
from django.db import models


class Department(models.Model):
    name = models.CharField(max_length=150)
    code = models.CharField(max_length=20, unique=True)

    def __str__(self):
        return self.name


class Program(models.Model):
    department = models.ForeignKey(Department, on_delete=models.CASCADE, related_name='programs')
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=20, unique=True)

    def __str__(self):
        return f"{self.code} - {self.name}"


class Subject(models.Model):
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=20, unique=True)

    def __str__(self):
        return self.name


class Screening(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        ACTIVE = "ACTIVE", "Active"
        CLOSED = "CLOSED", "Closed"

    name = models.CharField(max_length=255)
    duration = models.PositiveIntegerField(help_text="Duration in minutes")
    total_marks = models.PositiveIntegerField(default=100)
    # Absolute marks, not a percentage
    pass_marks = models.PositiveIntegerField(default=50)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Question(models.Model):
    screening = models.ForeignKey(Screening, related_name='questions', on_delete=models.CASCADE)
    subject = models.ForeignKey(Subject, related_name='questions', on_delete=models.SET_NULL, null=True, blank=True)

    text = models.TextField()
    correct_answer = models.CharField(max_length=255, help_text="Must match one of the options")
    marks = models.PositiveIntegerField(default=1)
    order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return f"{self.text[:50]}..."

    @property
    def option_texts(self):
        return [option.text for option in self.options.all()]

    def clean(self):
        if self.marks < 1:
            raise ValidationError({"marks": "Marks must be a positive integer."})
        if self.pk:
            options = self.option_texts
            if options and self.correct_answer not in options:
                raise ValidationError({"correct_answer": "Correct answer must be one of the options."})


class Option(models.Model):
    question = models.ForeignKey(Question, related_name='options', on_delete=models.CASCADE)
    text = models.CharField(max_length=255)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['position', 'id']
        unique_together = ('question', 'position')

    def __str__(self):
        return self.text


class ProgramTest(models.Model):
    """Links a screening's question bank to one program, optionally narrowing it."""
    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name='program_tests')
    screening = models.ForeignKey(Screening, on_delete=models.CASCADE, related_name='program_tests')
    # Empty means every active question of the screening
    questions = models.ManyToManyField(Question, blank=True, related_name='program_tests')
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('program', 'screening')

    def __str__(self):
        return f"{self.program} / {self.screening}"
