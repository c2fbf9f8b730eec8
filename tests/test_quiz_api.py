import json
from io import BytesIO

from openpyxl import Workbook
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from quizshare.services.validation_service import MAX_REQUEST_SIZE

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def test_create_requires_authentication(client, quiz_payload):
    r = client.post("/api/quiz", json=quiz_payload())
    assert r.status_code == 401


def test_create_and_read_quiz(client, login, quiz_payload):
    owner = login("owner@quizshare.io")
    payload = quiz_payload(3)
    payload["questions"][1]["option_images"] = [None, "data:image/png;base64,iVBORw0KGgo=", None]

    r = client.post("/api/quiz", json=payload, headers=owner)
    assert r.status_code == 201, r.text
    quiz = r.json()
    assert quiz["published"] is False
    assert quiz["title"] == "General knowledge"
    assert quiz["shareable_id"]
    assert [q["order"] for q in quiz["questions"]] == [0, 1, 2]
    assert [q["question"] for q in quiz["questions"]] == ["Q1", "Q2", "Q3"]

    r = client.get(f"/api/quiz/{quiz['id']}", headers=owner)
    assert r.status_code == 200
    read = r.json()
    assert read["questions"][0]["options"] == ["A", "B", "C"]
    assert read["questions"][0]["correct_answer"] == "A"
    assert read["questions"][1]["option_images"] == [None, "data:image/png;base64,iVBORw0KGgo=", None]


def test_create_rejects_invalid_payload(client, login, quiz_payload):
    owner = login("owner@quizshare.io")

    r = client.post("/api/quiz", json=quiz_payload(0), headers=owner)
    assert r.status_code == 400
    assert r.json()["detail"] == "Quiz must have at least one question"

    payload = quiz_payload(1)
    payload["questions"][0]["correct_answer"] = "Z"
    r = client.post("/api/quiz", json=payload, headers=owner)
    assert r.status_code == 400
    assert r.json()["detail"] == "Question 1: Correct answer must be one of the options"


def test_create_rejects_non_string_option_image(client, login, quiz_payload):
    owner = login("owner@quizshare.io")
    payload = quiz_payload(1)
    payload["questions"][0]["option_images"] = [0, None, None]

    r = client.post("/api/quiz", json=payload, headers=owner)
    assert r.status_code == 400
    assert r.json()["detail"] == "Question 1, Option 1: Invalid image format"
    assert client.get("/api/quizzes", headers=owner).json()["created_quizzes"] == []


def test_create_publishes_only_on_literal_true(client, login, quiz_payload):
    owner = login("owner@quizshare.io")

    r = client.post("/api/quiz", json=quiz_payload(1, published="false"), headers=owner)
    assert r.status_code == 201, r.text
    assert r.json()["published"] is False

    r = client.post("/api/quiz", json=quiz_payload(1, published=True), headers=owner)
    assert r.json()["published"] is True


def test_only_creator_reads_edits_and_deletes(client, login, quiz_payload):
    owner = login("owner@quizshare.io")
    other = login("other@quizshare.io")
    quiz = client.post("/api/quiz", json=quiz_payload(), headers=owner).json()

    assert client.get(f"/api/quiz/{quiz['id']}", headers=other).status_code == 403
    assert client.put(f"/api/quiz/{quiz['id']}", json=quiz_payload(), headers=other).status_code == 403
    assert client.delete(f"/api/quiz/{quiz['id']}", headers=other).status_code == 403
    assert client.post(f"/api/quiz/{quiz['id']}/publish", headers=other).status_code == 403
    assert client.get(f"/api/quiz/{quiz['id']}/results", headers=other).status_code == 403
    assert client.get(f"/api/quiz/{quiz['id']}").status_code == 401


def test_missing_quiz_is_404(client, login):
    owner = login("owner@quizshare.io")
    r = client.get("/api/quiz/00000000-0000-0000-0000-000000000000", headers=owner)
    assert r.status_code == 404
    assert r.json()["detail"] == "Quiz not found"


def test_update_replaces_all_questions(client, login, quiz_payload):
    owner = login("owner@quizshare.io")
    quiz = client.post("/api/quiz", json=quiz_payload(2), headers=owner).json()
    old_ids = {q["id"] for q in quiz["questions"]}

    payload = quiz_payload(3, title="Renamed", description=None)
    payload["questions"][2]["options"] = ["X", "Y"]
    payload["questions"][2]["correct_answer"] = "Y"
    r = client.put(f"/api/quiz/{quiz['id']}", json=payload, headers=owner)
    assert r.status_code == 200, r.text

    read = client.get(f"/api/quiz/{quiz['id']}", headers=owner).json()
    assert read["title"] == "Renamed"
    assert read["description"] is None
    assert len(read["questions"]) == 3
    assert read["questions"][2]["correct_answer"] == "Y"
    assert old_ids.isdisjoint({q["id"] for q in read["questions"]})


def test_invalid_update_keeps_previous_questions(client, login, quiz_payload):
    owner = login("owner@quizshare.io")
    quiz = client.post("/api/quiz", json=quiz_payload(2), headers=owner).json()

    r = client.put(f"/api/quiz/{quiz['id']}", json=quiz_payload(0), headers=owner)
    assert r.status_code == 400

    read = client.get(f"/api/quiz/{quiz['id']}", headers=owner).json()
    assert [q["id"] for q in read["questions"]] == [q["id"] for q in quiz["questions"]]


def test_failed_commit_keeps_previous_questions(client, login, quiz_payload, monkeypatch):
    owner = login("owner@quizshare.io")
    quiz = client.post("/api/quiz", json=quiz_payload(2), headers=owner).json()

    async def failing_commit(self):
        # the delete and the inserts reach the database, then the commit dies
        await self.flush()
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)
    r = client.put(f"/api/quiz/{quiz['id']}", json=quiz_payload(3, title="Renamed"), headers=owner)
    assert r.status_code == 500
    assert r.json()["detail"] == "Something went wrong"
    monkeypatch.undo()

    read = client.get(f"/api/quiz/{quiz['id']}", headers=owner).json()
    assert read["title"] == "General knowledge"
    assert [q["id"] for q in read["questions"]] == [q["id"] for q in quiz["questions"]]


def test_update_never_unpublishes(client, login, quiz_payload, published_quiz):
    owner, quiz = published_quiz
    r = client.put(f"/api/quiz/{quiz['id']}", json=quiz_payload(2, published=False), headers=owner)
    assert r.status_code == 200
    assert r.json()["published"] is True


def test_publish(client, login, quiz_payload):
    owner = login("owner@quizshare.io")
    quiz = client.post("/api/quiz", json=quiz_payload(1), headers=owner).json()
    assert quiz["published"] is False

    r = client.post(f"/api/quiz/{quiz['id']}/publish", headers=owner)
    assert r.status_code == 200
    assert r.json()["published"] is True

    r = client.get(f"/api/quiz/take/{quiz['shareable_id']}")
    assert r.status_code == 200


def test_delete_cascades(client, login, published_quiz):
    owner, quiz = published_quiz
    taker = login("taker@quizshare.io")
    answers = {q["id"]: "A" for q in quiz["questions"]}
    r = client.post(f"/api/quiz/take/{quiz['shareable_id']}/submit", json={"answers": answers}, headers=taker)
    assert r.status_code == 200

    r = client.delete(f"/api/quiz/{quiz['id']}", headers=owner)
    assert r.status_code == 204

    assert client.get(f"/api/quiz/{quiz['id']}", headers=owner).status_code == 404
    assert client.get(f"/api/quiz/take/{quiz['shareable_id']}/results", headers=taker).status_code == 404
    dashboard = client.get("/api/quizzes", headers=taker).json()
    assert dashboard["taken_quizzes"] == []


def test_clone_by_creator_and_respondent(client, login, published_quiz):
    owner, quiz = published_quiz
    taker = login("taker@quizshare.io")
    stranger = login("stranger@quizshare.io")

    r = client.post(f"/api/quiz/{quiz['id']}/clone", headers=stranger)
    assert r.status_code == 403

    answers = {q["id"]: "B" for q in quiz["questions"]}
    client.post(f"/api/quiz/take/{quiz['shareable_id']}/submit", json={"answers": answers}, headers=taker)

    r = client.post(f"/api/quiz/{quiz['id']}/clone", headers=taker)
    assert r.status_code == 201, r.text
    clone_id = r.json()["quiz_id"]
    assert clone_id != quiz["id"]

    clone = client.get(f"/api/quiz/{clone_id}", headers=taker).json()
    assert clone["title"] == "General knowledge (Copy)"
    assert clone["published"] is False
    assert clone["shareable_id"] != quiz["shareable_id"]
    strip = lambda qs: [(q["question"], q["options"], q["correct_answer"], q["order"]) for q in qs]  # noqa: E731
    assert strip(clone["questions"]) == strip(quiz["questions"])
    assert {q["id"] for q in clone["questions"]}.isdisjoint({q["id"] for q in quiz["questions"]})

    # the clone belongs to the taker, not the original owner
    assert client.get(f"/api/quiz/{clone_id}", headers=owner).status_code == 403

    r = client.post(f"/api/quiz/{quiz['id']}/clone", headers=owner)
    assert r.status_code == 201


def test_owner_results_average(client, login, published_quiz):
    owner, quiz = published_quiz
    q1, q2 = [q["id"] for q in quiz["questions"]]

    r = client.get(f"/api/quiz/{quiz['id']}/results", headers=owner)
    assert r.status_code == 200
    assert r.json()["participant_count"] == 0
    assert r.json()["average_score"] == 0

    alice = login("alice@quizshare.io", "Alice")
    bob = login("bob@quizshare.io", "Bob")
    url = f"/api/quiz/take/{quiz['shareable_id']}/submit"
    assert client.post(url, json={"answers": {q1: "A", q2: "A"}}, headers=alice).status_code == 200
    assert client.post(url, json={"answers": {q1: "A", q2: "C"}}, headers=bob).status_code == 200

    r = client.get(f"/api/quiz/{quiz['id']}/results", headers=owner)
    assert r.status_code == 200
    body = r.json()
    assert body["participant_count"] == 2
    assert body["average_score"] == 1.5
    scores = {p["user"]["full_name"]: (p["score"], p["total"]) for p in body["participants"]}
    assert scores == {"Alice": (2, 2), "Bob": (1, 2)}
    assert all(p["date_taken"] for p in body["participants"])


def test_request_too_large(client, login):
    owner = login("owner@quizshare.io")
    r = client.post(
        "/api/quiz",
        content=b"x" * (MAX_REQUEST_SIZE + 1),
        headers={**owner, "Content-Type": "application/json"},
    )
    assert r.status_code == 413
    assert "10MB" in r.json()["detail"]


def _workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    f = BytesIO()
    wb.save(f)
    return f.getvalue()


def test_import_wrong_file_format(client, login):
    owner = login("owner@quizshare.io")
    r = client.post("/api/quiz/import", files={"file": ("data.txt", b"hello", "text/plain")}, headers=owner)
    assert r.status_code == 400
    assert r.json()["detail"]


def test_import_missing_columns(client, login):
    owner = login("owner@quizshare.io")
    data = _workbook_bytes([["question"]])
    r = client.post("/api/quiz/import", files={"file": ("questions.xlsx", data, XLSX)}, headers=owner)
    assert r.status_code == 400
    assert "options(json)" in r.json()["detail"]


def test_import_preview_validates_questions(client, login):
    owner = login("owner@quizshare.io")
    data = _workbook_bytes([
        ["question", "options(json)", "correct_answer"],
        ["What is 2+2?", json.dumps(["3", "4"]), "4"],
    ])
    r = client.post("/api/quiz/import", files={"file": ("ok.xlsx", data, XLSX)}, headers=owner)
    assert r.status_code == 200, r.text
    assert r.json()["total"] == 1
    assert r.json()["preview"][0]["options"] == ["3", "4"]

    bad = _workbook_bytes([
        ["question", "options(json)", "correct_answer"],
        ["What is 2+2?", json.dumps(["3", "4"]), "5"],
    ])
    r = client.post("/api/quiz/import", files={"file": ("bad.xlsx", bad, XLSX)}, headers=owner)
    assert r.status_code == 400
    assert r.json()["detail"] == "Question 1: Correct answer must be one of the options"


def test_import_options_cell_must_be_a_json_list(client, login):
    owner = login("owner@quizshare.io")
    for cell in (4, json.dumps("5")):
        data = _workbook_bytes([
            ["question", "options(json)", "correct_answer"],
            ["What is 2+2?", cell, "4"],
        ])
        r = client.post("/api/quiz/import", files={"file": ("odd.xlsx", data, XLSX)}, headers=owner)
        assert r.status_code == 400
        assert r.json()["detail"].startswith("Could not read spreadsheet")
