from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AnswerView,
    AttemptAnswerView,
    AttemptCompleteView,
    AttemptDetailView,
    AttemptExplanationView,
    AttemptHintView,
    AttemptListView,
    CardHintView,
    CSRFTokenView,
    DashboardStatsView,
    FlashcardsView,
    GradeView,
    LoginView,
    LogoutView,
    ModelListView,
    QuestionViewSet,
    QuizViewSet,
    StartQuizView,
    StudySessionViewSet,
    SubjectAnalyticsView,
    SubjectQuestionListCreate,
    SubjectViewSet,
    SummaryQuizView,
    SummaryView,
    TeacherViewSet,
)

router = DefaultRouter()
router.register('teachers', TeacherViewSet, basename='teacher')
router.register('subjects', SubjectViewSet, basename='subject')
router.register('questions', QuestionViewSet, basename='question')
router.register('quizzes', QuizViewSet, basename='quiz')
router.register('study/sessions', StudySessionViewSet, basename='study-session')

urlpatterns = [
    path('auth/csrf/', CSRFTokenView.as_view(), name='api-csrf'),
    path('auth/login/', LoginView.as_view(), name='api-login'),
    path('auth/logout/', LogoutView.as_view(), name='api-logout'),
    # Declared before the router so "start" is not read as a quiz id.
    path('quizzes/start/', StartQuizView.as_view(), name='quiz-start'),
    path('', include(router.urls)),
    path('subjects/<int:subject_id>/questions/', SubjectQuestionListCreate.as_view(), name='subject-questions'),
    path('subjects/<int:subject_id>/analytics/', SubjectAnalyticsView.as_view(), name='subject-analytics'),
    path('dashboard/stats/', DashboardStatsView.as_view(), name='dashboard-stats'),
    path('attempts/', AttemptListView.as_view(), name='attempt-list'),
    path('attempts/<int:attempt_id>/', AttemptDetailView.as_view(), name='attempt-detail'),
    path('attempts/<int:attempt_id>/answer/', AttemptAnswerView.as_view(), name='attempt-answer'),
    path('attempts/<int:attempt_id>/hint/', AttemptHintView.as_view(), name='attempt-hint'),
    path('attempts/<int:attempt_id>/explanation/', AttemptExplanationView.as_view(), name='attempt-explanation'),
    path('attempts/<int:attempt_id>/complete/', AttemptCompleteView.as_view(), name='attempt-complete'),
    path('study/summary/', SummaryView.as_view(), name='study-summary'),
    path('study/flashcards/', FlashcardsView.as_view(), name='study-flashcards'),
    path('study/quiz/', SummaryQuizView.as_view(), name='study-quiz'),
    path('study/answer/', AnswerView.as_view(), name='study-answer'),
    path('study/card-hint/', CardHintView.as_view(), name='study-card-hint'),
    path('study/grade/', GradeView.as_view(), name='study-grade'),
    path('study/models/', ModelListView.as_view(), name='study-models'),
]
