from uuid import uuid4

from fastapi.testclient import TestClient

from academia.models import AcademicStatus, AcademicStatusEnum
from academia.routers.dashboard import approval_rate


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_approval_rate_helper():
    assert approval_rate([]) is None
    rows = [
        AcademicStatus(student_id=1, course_id=1, status=AcademicStatusEnum.credited),
        AcademicStatus(student_id=1, course_id=2, status=AcademicStatusEnum.regular),
        AcademicStatus(student_id=2, course_id=1, status=AcademicStatusEnum.credited),
        AcademicStatus(student_id=2, course_id=2, status=AcademicStatusEnum.withdrawn),
    ]
    assert approval_rate(rows) == 0.5


def test_dashboard_summary_counts(client: TestClient, admin_token: str, teacher_token: str):
    headers = _auth_headers(admin_token)
    before = client.get("/dashboard/summary", headers=headers)
    assert before.status_code == 200, before.text

    career = client.post("/careers/", json={"name": f"Dashboard {uuid4().hex[:6]}"}, headers=headers).json()
    course = client.post(
        "/courses/",
        json={"code": f"D-{uuid4().hex[:6]}", "name": "Indicadores", "career_id": career["id"]},
        headers=headers,
    ).json()
    student = client.post(
        "/students/",
        json={
            "first_name": "Tomás",
            "last_name": "Ruiz",
            "national_id": uuid4().hex[:8],
            "email": "tomas@example.com",
            "career_id": career["id"],
        },
        headers=headers,
    ).json()
    client.post(
        "/academic-statuses/",
        json={"student_id": student["id"], "course_id": course["id"], "status": "credited", "grade": 10},
        headers=headers,
    )

    after = client.get("/dashboard/summary", params={"top": 50}, headers=_auth_headers(teacher_token))
    assert after.status_code == 200, after.text
    data = after.json()
    previous = before.json()
    assert data["students"] == previous["students"] + 1
    assert data["careers"] == previous["careers"] + 1
    assert data["courses"] == previous["courses"] + 1
    assert 0 <= data["approval_rate"] <= 1
    assert set(data["status_breakdown"]) == {"enrolled", "regular", "credited", "withdrawn"}
    per_career = {item["career_id"]: item["students"] for item in data["students_per_career"]}
    assert per_career[career["id"]] == 1
    top = {item["course_id"]: item["approval_rate"] for item in data["top_courses"]}
    assert top[course["id"]] == 1.0
