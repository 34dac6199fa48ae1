# assessments/models.py
from django.db import models
from django.utils import timezone

from candidates.models import Candidate
from screenings.models import Question


class ExamSession(models.Model):
    """Tracks a candidate's single attempt and its server-side deadline."""

    class State(models.TextChoices):
        NOT_STARTED = "NOT_STARTED", "Not started"
        IN_PROGRESS = "IN_PROGRESS", "In progress"
        SUBMITTED = "SUBMITTED", "Submitted"

    candidate = models.OneToOneField(Candidate, on_delete=models.CASCADE, related_name='exam_session')
    state = models.CharField(max_length=12, choices=State.choices, default=State.NOT_STARTED)
    started_at = models.DateTimeField(null=True, blank=True)
    deadline = models.DateTimeField(null=True, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    submitted_late = models.BooleanField(default=False)
    time_taken = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds the candidate spent on the attempt")

    def __str__(self):
        return f"{self.candidate} - {self.state}"

    def time_remaining_seconds(self, now=None):
        if self.state != self.State.IN_PROGRESS or self.deadline is None:
            return 0
        now = now or timezone.now()
        return max(0, int((self.deadline - now).total_seconds()))


class TestScoreQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise TypeError("TestScore rows are append-only.")

    def delete(self):
        raise TypeError("TestScore rows are append-only.")


class TestScore(models.Model):
    """Scoring record for one candidate/question pair. Written once, never changed."""

    candidate = models.ForeignKey(Candidate, on_delete=models.CASCADE, related_name='test_scores')
    question = models.ForeignKey(Question, on_delete=models.PROTECT, related_name='test_scores')
    selected_answer = models.CharField(max_length=255, null=True, blank=True)
    is_correct = models.BooleanField(default=False)
    marks = models.PositiveIntegerField(default=0)
    time_taken = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds")
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TestScoreQuerySet.as_manager()

    class Meta:
        unique_together = ('candidate', 'question')
        ordering = ['id']

    def __str__(self):
        return f"{self.candidate_id}/{self.question_id}: {self.marks}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise TypeError("TestScore rows are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TypeError("TestScore rows are append-only.")
