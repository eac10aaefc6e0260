import json


def canonical_json(value) -> str:
    """Serialize ``value`` the way answers are compared: compact, keys in insertion order."""
    return json.dumps(value, separators=(',', ':'), ensure_ascii=False, allow_nan=False)


def answers_match(submitted, correct) -> bool:
    """Exact structural comparison of a submitted answer against the answer key.

    There is no coercion: ``"5"`` does not match ``5`` and ``true`` does not
    match ``1``. List order and object key order both matter.
    """
    try:
        return canonical_json(submitted) == canonical_json(correct)
    except (TypeError, ValueError):
        return False
