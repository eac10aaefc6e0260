from .subject import SubjectAnalyticsView
