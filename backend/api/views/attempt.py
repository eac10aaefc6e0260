import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from assistant import agents
from assistant.config import config_from_payload
from assistant.exceptions import AIError
from quizzes.grading import answers_match
from quizzes.models import Quiz, QuizAttempt
from quizzes.serializers import AnswerSubmissionSerializer, QuestionHelpSerializer, QuizAttemptSerializer
from subjects.models import Question
from subjects.serializers import QuestionPublicSerializer

from .common import ai_error_response
from .quiz import get_own_attempt

logger = logging.getLogger(__name__)


def get_quiz_question(attempt, question_id):
    """The question, provided it belongs to the attempt's quiz; None otherwise."""
    if question_id not in (attempt.quiz.question_ids or []):
        return None
    return Question.objects.select_related('subject').filter(id=question_id).first()


def not_in_quiz_response():
    return Response({'detail': 'Question is not part of this quiz.'}, status=status.HTTP_400_BAD_REQUEST)


class AttemptDetailView(APIView):
    def get(self, request, attempt_id):
        attempt = get_own_attempt(request, attempt_id)
        return Response(QuizAttemptSerializer(attempt).data)


class AttemptAnswerView(APIView):
    def post(self, request, attempt_id):
        attempt = get_own_attempt(request, attempt_id)
        if attempt.is_completed:
            return Response({'detail': 'This attempt is already completed.'}, status=status.HTTP_400_BAD_REQUEST)

        serializer = AnswerSubmissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ai_payload = serializer.validated_data.get('ai')
        config = config_from_payload(ai_payload)

        question = get_quiz_question(attempt, serializer.validated_data['question_id'])
        if question is None:
            return not_in_quiz_response()

        answer = serializer.validated_data['answer']
        if question.is_open_ended and isinstance(answer, str) and ai_payload is not None:
            grade = agents.grade_answer(config, question.question_text, question.correct_answer, answer)
            is_correct = grade['grade'] == 'correct'
            extra = {
                'grading_status': (
                    QuizAttempt.GradingStatus.UNAVAILABLE.value if grade['fallback']
                    else QuizAttempt.GradingStatus.AI.value
                ),
                'grade': grade['grade'],
                'feedback': grade['explanation'],
            }
        else:
            is_correct = answers_match(answer, question.correct_answer)
            extra = {'grading_status': QuizAttempt.GradingStatus.EXACT.value}

        entry = attempt.record_answer(question.id, answer, is_correct, **extra)
        body = {'is_correct': entry['is_correct'], 'score': attempt.score, 'answer_entry': entry}

        grading_failed = extra['grading_status'] == QuizAttempt.GradingStatus.UNAVAILABLE
        if attempt.mode == Quiz.Mode.SURVIVAL and not is_correct and not grading_failed:
            body.update(self._add_penalty_question(attempt, question, config))

        return Response(body)

    def _add_penalty_question(self, attempt, question, config):
        try:
            data = agents.generate_penalty_question(
                config,
                question.question_text,
                question.correct_answer,
                subject_name=question.subject.name,
            )
        except AIError as exc:
            logger.warning('Penalty question for attempt %s failed: %s', attempt.id, exc)
            return {'penalty_question': None, 'penalty_error': exc.user_message}

        penalty = Question.objects.create(
            subject=question.subject,
            question_text=data['question_text'],
            type=data['type'],
            difficulty=data.get('difficulty'),
            answers=data.get('answers'),
            correct_answer=data['correct_answer'],
            explanation=data.get('explanation') or '',
            metadata={
                'source': Question.Source.SURVIVAL_PENALTY.value,
                'penalty_for': question.id,
                'attempt_id': attempt.id,
            },
        )
        attempt.quiz.append_question(penalty)
        logger.info('Added penalty question %s to quiz %s', penalty.id, attempt.quiz_id)
        return {'penalty_question': QuestionPublicSerializer(penalty).data}


class PracticeHelpView(APIView):
    """Shared checks for hints and explanations, which only practice mode offers."""

    help_name = ''

    def post(self, request, attempt_id):
        attempt = get_own_attempt(request, attempt_id)
        if attempt.mode != Quiz.Mode.PRACTICE:
            return Response(
                {'detail': f'{self.help_name.capitalize()}s are only available in practice mode.'},
                status=status.HTTP_400_BAD_REQUEST,
            )

        serializer = QuestionHelpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        config = config_from_payload(serializer.validated_data.get('ai'))

        question = get_quiz_question(attempt, serializer.validated_data['question_id'])
        if question is None:
            return not_in_quiz_response()

        try:
            result = self.ask(config, attempt, question, serializer.validated_data)
        except AIError as exc:
            return ai_error_response(exc)
        return Response({'question_id': question.id, **result})

    def ask(self, config, attempt, question, data):
        raise NotImplementedError


class AttemptHintView(PracticeHelpView):
    help_name = 'hint'

    def ask(self, config, attempt, question, data):
        return agents.generate_hint(config, question.question_text, question.type, question.answers)


class AttemptExplanationView(PracticeHelpView):
    help_name = 'explanation'

    def ask(self, config, attempt, question, data):
        entry = attempt.answer_for(question.id)
        if 'answer' in data:
            user_answer = data['answer']
            is_correct = answers_match(user_answer, question.correct_answer)
        elif entry is not None:
            user_answer = entry['answer']
            is_correct = entry['is_correct']
        else:
            user_answer, is_correct = None, None
        return agents.generate_explanation(
            config, question.question_text, question.correct_answer, user_answer, is_correct
        )


class AttemptCompleteView(APIView):
    def post(self, request, attempt_id):
        attempt = get_own_attempt(request, attempt_id)
        attempt.complete()
        return Response(QuizAttemptSerializer(attempt).data)
