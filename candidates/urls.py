from django.urls import path
from .views import CandidateDetailView, CandidateQuestionsView, CandidateSessionView, CandidateDecisionView

urlpatterns = [
    path('candidates/<int:candidate_id>/', CandidateDetailView.as_view(), name='candidate-detail'),
    path('candidates/<int:candidate_id>/questions/', CandidateQuestionsView.as_view(), name='candidate-questions'),
    path('candidates/<int:candidate_id>/session/', CandidateSessionView.as_view(), name='candidate-session'),
    path('candidates/<int:candidate_id>/decision/', CandidateDecisionView.as_view(), name='candidate-decision'),
]
