import base64
import binascii
from typing import Any, Dict, Iterable, List

from ..errors import PayloadTooLarge, ValidationFailed

# Maximum request body size in bytes (10MB)
MAX_REQUEST_SIZE = 10 * 1024 * 1024

MAX_QUESTIONS_PER_QUIZ = 200
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000
MAX_QUESTION_LENGTH = 500
MIN_OPTIONS = 2
MAX_OPTIONS = 6


def validate_request_size(request) -> None:
    """Reject a request whose declared body exceeds MAX_REQUEST_SIZE.

    Only the Content-Length header is inspected so nothing is buffered.
    A missing or malformed header passes through.
    """
    content_length = request.headers.get("content-length")
    if not content_length:
        return
    try:
        size = int(content_length)
    except ValueError:
        return
    if size > MAX_REQUEST_SIZE:
        raise PayloadTooLarge()


def is_valid_base64_image(value: Any) -> bool:
    """Check that ``value`` is a ``data:image/...;base64,<payload>`` URL.

    The payload must survive a decode/encode round trip unchanged, which
    rejects stray characters, missing padding and non-canonical encodings.
    """
    if not isinstance(value, str):
        return False
    if not value.startswith("data:image/"):
        return False
    if ";base64," not in value:
        return False

    payload = value.split(";base64,")[1]
    if not payload:
        return False

    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return False
    return base64.b64encode(decoded).decode("ascii") == payload


def _validate_question(index: int, q: Any) -> None:
    label = f"Question {index + 1}"
    if not isinstance(q, dict):
        raise ValidationFailed(f"{label}: Question text is required")

    text = q.get("question")
    if not text or not isinstance(text, str):
        raise ValidationFailed(f"{label}: Question text is required")
    if len(text) > MAX_QUESTION_LENGTH:
        raise ValidationFailed(f"{label}: Question text must be less than {MAX_QUESTION_LENGTH} characters")

    options = q.get("options")
    if not isinstance(options, list) or not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        raise ValidationFailed(f"{label}: Must have between {MIN_OPTIONS} and {MAX_OPTIONS} options")
    if any(not isinstance(option, str) for option in options):
        raise ValidationFailed(f"{label}: Options must be strings")

    correct = q.get("correct_answer")
    if not correct or not isinstance(correct, str):
        raise ValidationFailed(f"{label}: Correct answer is required")
    if correct not in options:
        raise ValidationFailed(f"{label}: Correct answer must be one of the options")

    image = q.get("question_image")
    if image is not None and image != "" and not is_valid_base64_image(image):
        raise ValidationFailed(f"{label}: Invalid question image format")

    option_images = q.get("option_images")
    if option_images is None:
        return
    if not isinstance(option_images, list):
        raise ValidationFailed(f"{label}: Option images must be a list")
    for j, option_image in enumerate(option_images):
        if option_image is not None and option_image != "" and not is_valid_base64_image(option_image):
            raise ValidationFailed(f"{label}, Option {j + 1}: Invalid image format")


def validate_questions(questions: Any) -> None:
    if not isinstance(questions, list):
        raise ValidationFailed("Questions must be an array")
    if len(questions) == 0:
        raise ValidationFailed("Quiz must have at least one question")
    if len(questions) > MAX_QUESTIONS_PER_QUIZ:
        raise ValidationFailed(f"Quiz cannot have more than {MAX_QUESTIONS_PER_QUIZ} questions")

    for index, q in enumerate(questions):
        _validate_question(index, q)


def validate_quiz_payload(payload: Dict[str, Any]) -> None:
    """
    Validate a quiz definition before it reaches the database.

    Fail-fast: the first violation raises ``ValidationFailed`` with a
    human-readable reason, checked in this order:
    title -> description -> question list bounds -> each question in order.
    """
    title = payload.get("title")
    if not title or not isinstance(title, str):
        raise ValidationFailed("Title is required and must be a string")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationFailed(f"Title must be less than {MAX_TITLE_LENGTH} characters")

    description = payload.get("description")
    if description is not None and not isinstance(description, str):
        raise ValidationFailed("Description must be a string")
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationFailed(f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters")

    validate_questions(payload.get("questions"))


def validate_answer_payload(payload: Dict[str, Any], question_count: int) -> Dict[str, str]:
    """Check the shape of a submission and return its answers mapping."""
    answers = payload.get("answers") if isinstance(payload, dict) else None
    if not isinstance(answers, dict):
        raise ValidationFailed("Answers must be an object")

    if len(answers) != question_count:
        raise ValidationFailed(f"Expected {question_count} answers, got {len(answers)}")

    for question_id, answer in answers.items():
        if not answer or not isinstance(answer, str):
            raise ValidationFailed(
                f"Answer for question {question_id}: Answer text is required and must be a string"
            )
    return answers


def validate_answer_keys(answers: Dict[str, str], question_ids: Iterable) -> None:
    # the right count is not enough, every key has to be one of this quiz's questions
    expected: List[str] = [str(qid) for qid in question_ids]
    if set(answers.keys()) != set(expected):
        raise ValidationFailed("Answers do not match the questions of this quiz")
