from django.contrib import admin

from .models import Department, Program, Subject, Screening, Question, Option, ProgramTest


class OptionInline(admin.TabularInline):
    model = Option
    extra = 4


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('text', 'screening', 'subject', 'marks', 'is_active')
    list_filter = ('screening', 'subject', 'is_active')
    inlines = [OptionInline]


@admin.register(Screening)
class ScreeningAdmin(admin.ModelAdmin):
    list_display = ('name', 'duration', 'total_marks', 'pass_marks', 'status')


admin.site.register(Department)
admin.site.register(Program)
admin.site.register(Subject)
admin.site.register(ProgramTest)
