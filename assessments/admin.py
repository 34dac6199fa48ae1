from django.contrib import admin

from .models import ExamSession, TestScore


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ExamSession)
class ExamSessionAdmin(ReadOnlyAdmin):
    list_display = ('candidate', 'state', 'started_at', 'deadline', 'submitted_at', 'submitted_late', 'time_taken')
    list_filter = ('state', 'submitted_late')


@admin.register(TestScore)
class TestScoreAdmin(ReadOnlyAdmin):
    list_display = ('candidate', 'question', 'selected_answer', 'is_correct', 'marks')
