from .auth import LoginView, LogoutView, CSRFTokenView
from .teacher import TeacherViewSet
from .subject import SubjectViewSet, SubjectQuestionListCreate, QuestionViewSet
from .analytics import SubjectAnalyticsView
from .quiz import QuizViewSet, StartQuizView, DashboardStatsView, AttemptListView
from .attempt import (
    AttemptDetailView,
    AttemptAnswerView,
    AttemptHintView,
    AttemptExplanationView,
    AttemptCompleteView,
)
from .study import (
    SummaryView,
    FlashcardsView,
    SummaryQuizView,
    AnswerView,
    CardHintView,
    GradeView,
    StudySessionViewSet,
    ModelListView,
)
