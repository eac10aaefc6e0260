"""Deterministic difficulty estimate for questions that arrive without one."""

BASELINE = 5.0
MIN_SCORE = 0.0
MAX_SCORE = 10.0

# Free-form answers are harder to produce than a recognised option.
TYPE_OFFSETS = {
    'open_answer': 2.0,
    'whiteboard': 2.0,
    'audio_to_text': 1.5,
    'code_output': 1.5,
    'fill_in_the_blank': 1.0,
    'match_pairs': 1.0,
    'drag_and_drop': 1.0,
    'image_labeling': 1.0,
    'text_to_audio': 0.5,
    'multiple_choice': 0.0,
    'true_false': -2.0,
}

LONG_TEXT = 150
MEDIUM_TEXT = 75
EXPLANATION_BONUS = 0.5


def length_offset(question_text) -> float:
    length = len(question_text or '')
    if length > LONG_TEXT:
        return 2.0
    if length > MEDIUM_TEXT:
        return 1.0
    return 0.0


def score_difficulty(question_type, question_text, explanation=None) -> float:
    """Return a difficulty score in [0, 10], rounded to one decimal.

    Unknown question types get no type offset.
    """
    score = BASELINE
    score += TYPE_OFFSETS.get(str(question_type or ''), 0.0)
    score += length_offset(question_text)
    if explanation is not None and str(explanation).strip():
        score += EXPLANATION_BONUS
    return round(min(max(score, MIN_SCORE), MAX_SCORE), 1)
