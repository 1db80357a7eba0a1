from django.urls import path

from .views import FeedbackDetailView, FeedbackListCreateView, FeedbackSummaryView

app_name = "feedback"

urlpatterns = [
    path("", FeedbackListCreateView.as_view(), name="feedback-list"),
    path("summary/", FeedbackSummaryView.as_view(), name="feedback-summary"),
    path("<int:pk>/", FeedbackDetailView.as_view(), name="feedback-detail"),
]
