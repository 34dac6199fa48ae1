# candidates/models.py
from django.db import models

from screenings.models import Program, Screening


class Candidate(models.Model):
    class Status(models.TextChoices):
        REGISTERED = "REGISTERED", "Registered"
        WRITTEN = "WRITTEN", "Written"
        PASSED = "PASSED", "Passed"
        FAILED = "FAILED", "Failed"
        ADMITTED = "ADMITTED", "Admitted"
        REJECTED = "REJECTED", "Rejected"

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True)
    registration_number = models.CharField(max_length=50, unique=True)

    program = models.ForeignKey(Program, on_delete=models.PROTECT, related_name='candidates')
    screening = models.ForeignKey(Screening, on_delete=models.PROTECT, null=True, blank=True, related_name='candidates')

    # Single-attempt lock. Only the scoring engine flips it, exactly once.
    has_written = models.BooleanField(default=False)
    total_score = models.PositiveIntegerField(null=True, blank=True)
    percentage = models.FloatField(null=True, blank=True)
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.REGISTERED)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.registration_number} - {self.first_name} {self.last_name}"
