"""One function per AI tool.

Each function takes an explicit ``ModelConfig``, sends a single prompt to the
model chosen for that tool, and returns the validated payload. Errors surface
as ``AIError`` subclasses, except in ``grade_answer``, which degrades to a
flagged fallback grade.
"""
import json
import logging

from django.conf import settings

from . import providers
from .config import ModelConfig
from .exceptions import AIError
from .schemas import (
    AnswerSchema,
    ExplanationSchema,
    FlashcardDeckSchema,
    GeneratedQuestionSetSchema,
    GradeSchema,
    HintSchema,
    SummaryQuizSchema,
    SummarySchema,
    validate_payload,
)

logger = logging.getLogger(__name__)

GRADING_FALLBACK_EXPLANATION = 'Sorry, I was unable to evaluate your answer at this time.'

MAX_GENERATED_QUESTIONS = 50
MAX_SUMMARY_QUESTIONS = 20

GRADE_SYSTEM_PROMPT = """You are an impartial teacher grading a student's answer.
Compare the user's answer with the ideal correct answer and judge whether it is
conceptually right. Ignore spelling and phrasing differences that do not change
the meaning.
Respond with a JSON object with exactly these fields:
- "grade": one of "correct", "incorrect", "partially_correct"
- "explanation": one or two sentences addressed to the student explaining the grade"""

HINT_SYSTEM_PROMPT = """You are a patient tutor. Give the student a short hint that helps
them reason towards the answer of the question without revealing the answer itself.
Respond with a JSON object: {"hint": "..."}"""

EXPLANATION_SYSTEM_PROMPT = """You are a patient tutor. Explain the correct answer to the
question in a few sentences. If the student's answer was wrong, point out the
misconception without being condescending.
Respond with a JSON object: {"explanation": "..."}"""

CARD_HINT_SYSTEM_PROMPT = """You help a student review flashcards. Given the front and the
back of a card, write a hint that nudges the student towards the back of the card
without stating it.
Respond with a JSON object: {"hint": "..."}"""

SUMMARY_SYSTEM_PROMPT = """You summarise study material for students. Keep the key
definitions, facts and relationships, drop filler, and use short paragraphs or
bullet points in Markdown.
Respond with a JSON object: {"summary": "..."}"""

FLASHCARDS_SYSTEM_PROMPT = """You turn study material into flashcards. Each card tests one
fact or concept. The front is a question or term, the back is the concise answer,
and the explanation adds one sentence of context.
Respond with a JSON object:
{"cards": [{"front": "...", "back": "...", "explanation": "..."}]}"""

SUMMARY_QUIZ_SYSTEM_PROMPT = """You write short-answer quiz questions from a summary of study
material. Questions must be answerable from the summary alone.
Respond with a JSON object:
{"questions": [{"question": "...", "correctAnswer": "...", "explanation": "..."}]}"""

ANSWER_SYSTEM_PROMPT = """You are a study assistant answering questions about the study
material the student provided. Base the answer on the material; say so when the
material does not contain the answer.
Respond with a JSON object: {"answer": "..."}"""

QUESTIONS_SYSTEM_PROMPT = """You write exam questions for a question bank.
Allowed types:
- "multiple_choice": "answers" is a list of option strings, "correct_answer" is the correct option string
- "true_false": "answers" is [true, false], "correct_answer" is true or false
- "open_answer": "answers" is null, "correct_answer" is the model answer as a string
"difficulty" is a number from 0 (trivial) to 10 (very hard).
Respond with a JSON object:
{"questions": [{"question_text": "...", "type": "...", "difficulty": 5, "answers": [...],
"correct_answer": ..., "explanation": "..."}]}"""


def _dump(value) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _ask(config: ModelConfig, tool, system_prompt, user_prompt, schema, temperature=0.7, model=None):
    model = model or config.for_tool(tool)
    provider = providers.classify_model(model)
    payload = providers.generate_json(
        model,
        system_prompt,
        user_prompt,
        user_key=config.api_key_for(provider),
        temperature=temperature,
    )
    return validate_payload(schema, payload)


def grade_answer(config: ModelConfig, question, correct_answer, user_answer) -> dict:
    """Grade a free-text answer.

    Never raises for AI failures: the result then carries ``fallback: True``
    so the caller can keep it out of statistics.
    """
    user_prompt = (
        f'Question: {question}\n'
        f'Ideal Correct Answer: {_dump(correct_answer)}\n'
        f"User's Answer: {_dump(user_answer)}"
    )
    try:
        result = _ask(config, 'grade', GRADE_SYSTEM_PROMPT, user_prompt, GradeSchema, temperature=0.2)
    except AIError as exc:
        logger.error('Grading failed, recording fallback grade: %s', exc, exc_info=exc)
        return {'grade': 'incorrect', 'explanation': GRADING_FALLBACK_EXPLANATION, 'fallback': True}
    result['fallback'] = False
    return result


def generate_hint(config: ModelConfig, question_text, question_type=None, answers=None) -> dict:
    user_prompt = f'Question: {question_text}'
    if question_type:
        user_prompt += f'\nQuestion type: {question_type}'
    if answers:
        user_prompt += f'\nOptions: {_dump(answers)}'
    return _ask(config, 'hint', HINT_SYSTEM_PROMPT, user_prompt, HintSchema)


def generate_explanation(config: ModelConfig, question_text, correct_answer, user_answer=None, is_correct=None) -> dict:
    user_prompt = f'Question: {question_text}\nCorrect answer: {_dump(correct_answer)}'
    if user_answer is not None:
        user_prompt += f"\nStudent's answer: {_dump(user_answer)}"
    if is_correct is not None:
        user_prompt += f"\nThe student's answer was {'correct' if is_correct else 'incorrect'}."
    return _ask(config, 'explanation', EXPLANATION_SYSTEM_PROMPT, user_prompt, ExplanationSchema)


def generate_card_hint(config: ModelConfig, front, back) -> dict:
    user_prompt = f'Front: {front}\nBack: {back}'
    return _ask(config, 'hint', CARD_HINT_SYSTEM_PROMPT, user_prompt, HintSchema)


def generate_summary(config: ModelConfig, text) -> dict:
    return _ask(config, 'summary', SUMMARY_SYSTEM_PROMPT, f'Study material:\n{text}', SummarySchema)


def generate_flashcards(config: ModelConfig, text) -> dict:
    return _ask(
        config,
        'flashcards',
        FLASHCARDS_SYSTEM_PROMPT,
        f'Study material:\n{text}',
        FlashcardDeckSchema,
        temperature=0.3,
    )


def generate_quiz_from_summary(config: ModelConfig, summary, question_count=5, difficulty='medium') -> dict:
    question_count = max(1, min(int(question_count), MAX_SUMMARY_QUESTIONS))
    user_prompt = (
        f'Write {question_count} {difficulty} questions.\n'
        f'Summary:\n{summary}'
    )
    result = _ask(config, 'quiz', SUMMARY_QUIZ_SYSTEM_PROMPT, user_prompt, SummaryQuizSchema)
    result['questions'] = result['questions'][:question_count]
    return result


def generate_answer(config: ModelConfig, text, history=None) -> dict:
    lines = [f'Study material:\n{text}']
    if history:
        lines.append('Conversation so far:')
        for message in history:
            speaker = 'Student' if message.get('role') == 'user' else 'Assistant'
            lines.append(f"{speaker}: {message.get('content', '')}")
    return _ask(config, 'answer', ANSWER_SYSTEM_PROMPT, '\n'.join(lines), AnswerSchema)


def generate_questions(config: ModelConfig, topic, question_count=5) -> dict:
    question_count = max(1, min(int(question_count), MAX_GENERATED_QUESTIONS))
    user_prompt = f'Write {question_count} varied questions about: {topic}'
    result = _ask(
        config,
        'questions',
        QUESTIONS_SYSTEM_PROMPT,
        user_prompt,
        GeneratedQuestionSetSchema,
        temperature=0.8,
    )
    result['questions'] = result['questions'][:question_count]
    return result


def generate_penalty_question(config: ModelConfig, question_text, correct_answer, subject_name='') -> dict:
    """One extra question on the concept a survival-mode player just missed."""
    user_prompt = (
        'Write 1 question that tests the same concept as the question below, '
        'with different wording, at the same or slightly higher difficulty.\n'
        f'Subject: {subject_name}\n'
        f'Missed question: {question_text}\n'
        f'Its correct answer: {_dump(correct_answer)}'
    )
    result = _ask(
        config,
        'questions',
        QUESTIONS_SYSTEM_PROMPT,
        user_prompt,
        GeneratedQuestionSetSchema,
        temperature=0.8,
        model=settings.STUDYGENIUS_PENALTY_MODEL or None,
    )
    return result['questions'][0]
