from typing import Any, Dict, List, Tuple


def grade_submission(answers: Dict[str, Any], questions: List[Any]) -> Tuple[Dict[str, bool], int]:
    """
    Grade the given answers against the provided questions.
    - answers: mapping question_id (str or uuid) -> submitted option text
    - questions: list of ORM Question objects (must have id, correct_answer)

    Returns (question_results: dict, score: int)
    A question is correct only when the answer equals correct_answer exactly;
    a missing answer is always incorrect.
    """
    question_results: Dict[str, bool] = {}
    score = 0

    for q in questions:
        qid_str = str(q.id)
        ans = answers.get(qid_str)
        correct = isinstance(ans, str) and ans == q.correct_answer
        question_results[qid_str] = correct
        if correct:
            score += 1

    return question_results, score


def build_answer_rows(quiz_id, user_id, submission_id, answers: Dict[str, Any], questions: List[Any]) -> List[dict]:
    # one row per question, correctness snapshotted at submission time
    question_results, _ = grade_submission(answers, questions)
    rows = []
    for q in questions:
        qid_str = str(q.id)
        ans = answers.get(qid_str)
        rows.append({
            "submission_id": submission_id,
            "quiz_id": quiz_id,
            "question_id": q.id,
            "user_id": user_id,
            "answer": ans if isinstance(ans, str) else None,
            "is_correct": question_results[qid_str],
        })
    return rows
