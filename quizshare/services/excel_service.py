import pandas as pd
import json


def parse_excel(file):
    """
    Read quiz questions from a spreadsheet.

    Each row becomes a question dict in the create-quiz payload shape.
    Raises KeyError naming the first missing required column.
    """
    df = pd.read_excel(file)

    required_columns = [
        "question",
        "options(json)",
        "correct_answer",
    ]
    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        # Raise KeyError so upstream router can return a HTTP 400 with a helpful message
        raise KeyError(missing[0])

    questions = []

    def get_json_value(value):
        if not pd.notna(value):
            return []
        # a cell typed as a number arrives as int/float
        parsed = json.loads(str(value))
        if not isinstance(parsed, list):
            raise ValueError(f"options(json) must be a JSON list, got {value!r}")
        return parsed

    def get_text(value):
        return str(value) if pd.notna(value) else None

    for _, row in df.iterrows():
        q = {
            "question": get_text(row["question"]),
            "options": [str(o) for o in get_json_value(row["options(json)"])],
            "correct_answer": get_text(row["correct_answer"]),
            "question_image": get_text(row.get("question_image")),
            "option_images": None,
        }

        questions.append(q)

    return questions
