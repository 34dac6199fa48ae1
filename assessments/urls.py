from django.urls import path
from .views import BatchScoringView, ScoringView, ScreeningStatisticsView

urlpatterns = [
    path('scoring/', ScoringView.as_view(), name='scoring'),
    path('scoring/batch/', BatchScoringView.as_view(), name='scoring-batch'),
    path('scoring/statistics/', ScreeningStatisticsView.as_view(), name='scoring-statistics'),
]
