from django.contrib import admin

from .models import Candidate


@admin.register(Candidate)
class CandidateAdmin(admin.ModelAdmin):
    list_display = ('registration_number', 'first_name', 'last_name', 'program', 'status', 'total_score')
    list_filter = ('status', 'screening', 'program')
    search_fields = ('registration_number', 'first_name', 'last_name', 'email')
    # Written by the scoring engine and admission decisions only
    readonly_fields = ('has_written', 'total_score', 'percentage', 'status')
