from uuid import uuid4

from fastapi.testclient import TestClient


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _create_career(client: TestClient, headers: dict[str, str], **extra) -> dict:
    payload = {"name": f"Carrera {uuid4().hex[:8]}", "duration_years": 3} | extra
    res = client.post("/careers/", json=payload, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()


def _create_course(client: TestClient, headers: dict[str, str], career_id: int, **extra) -> dict:
    payload = {
        "code": f"C-{uuid4().hex[:6]}",
        "name": extra.pop("name", "Materia de prueba"),
        "year": 1,
        "term": "1",
        "weekly_hours": 4,
        "career_id": career_id,
    } | extra
    res = client.post("/courses/", json=payload, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()


def test_careers_crud_and_search(client: TestClient, admin_token: str):
    headers = _auth_headers(admin_token)
    token = uuid4().hex[:6]
    career = _create_career(client, headers, name=f"Tecnicatura {token}", description="Plan 2025")

    res = client.get("/careers/", params={"q": token}, headers=headers)
    assert res.status_code == 200
    assert [item["id"] for item in res.json()] == [career["id"]]

    res = client.patch(f"/careers/{career['id']}", json={"duration_years": 4}, headers=headers)
    assert res.status_code == 200, res.text
    assert res.json()["duration_years"] == 4
    assert res.json()["description"] == "Plan 2025"

    duplicate = client.post("/careers/", json={"name": career["name"]}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"].startswith("Registro duplicado")

    assert client.delete(f"/careers/{career['id']}", headers=headers).status_code == 200
    assert client.get(f"/careers/{career['id']}", headers=headers).status_code == 404


def test_career_delete_is_rejected_while_courses_depend_on_it(client: TestClient, admin_token: str):
    headers = _auth_headers(admin_token)
    career = _create_career(client, headers)
    course = _create_course(client, headers, career["id"])

    res = client.delete(f"/careers/{career['id']}", headers=headers)
    assert res.status_code == 409
    assert res.json()["detail"] == "No se puede eliminar: existen materias dependientes"
    assert client.get(f"/careers/{career['id']}", headers=headers).status_code == 200

    assert client.delete(f"/courses/{course['id']}", headers=headers).status_code == 200
    assert client.delete(f"/careers/{career['id']}", headers=headers).status_code == 200


def test_career_delete_is_rejected_while_students_depend_on_it(client: TestClient, admin_token: str):
    headers = _auth_headers(admin_token)
    career = _create_career(client, headers)
    student = client.post(
        "/students/",
        json={
            "first_name": "Lucía",
            "last_name": "Benítez",
            "national_id": uuid4().hex[:8],
            "email": "lucia@example.com",
            "career_id": career["id"],
        },
        headers=headers,
    )
    assert student.status_code == 200, student.text

    res = client.delete(f"/careers/{career['id']}", headers=headers)
    assert res.status_code == 409
    assert res.json()["detail"] == "No se puede eliminar: existen estudiantes dependientes"

    assert client.delete(f"/students/{student.json()['id']}", headers=headers).status_code == 200
    assert client.delete(f"/careers/{career['id']}", headers=headers).status_code == 200


def test_updates_keep_catalog_bounds(client: TestClient, admin_token: str):
    headers = _auth_headers(admin_token)
    career = _create_career(client, headers)
    course = _create_course(client, headers, career["id"])

    for body in ({"year": 0}, {"weekly_hours": -4}, {"code": ""}, {"name": ""}):
        res = client.put(f"/courses/{course['id']}", json=body, headers=headers)
        assert res.status_code == 422, body

    listing = client.get("/courses/", params={"career_id": career["id"]}, headers=headers)
    assert listing.status_code == 200
    assert listing.json()[0]["year"] == 1
    assert listing.json()[0]["weekly_hours"] == 4

    for body in ({"duration_years": -1}, {"duration_years": 0}, {"name": ""}):
        assert client.put(f"/careers/{career['id']}", json=body, headers=headers).status_code == 422
        assert client.patch(f"/careers/{career['id']}", json=body, headers=headers).status_code == 422
    assert client.get(f"/careers/{career['id']}", headers=headers).json()["duration_years"] == 3


def test_course_prerequisite_ids_are_validated(client: TestClient, admin_token: str):
    headers = _auth_headers(admin_token)
    career = _create_career(client, headers)
    base = _create_course(client, headers, career["id"])
    alt = _create_course(client, headers, career["id"])

    advanced = _create_course(client, headers, career["id"], year=2, prerequisite_course_ids=[base["id"], base["id"]])
    assert advanced["prerequisite_course_ids"] == [base["id"]]

    res = client.put(f"/courses/{advanced['id']}", json={"prerequisite_course_ids": [base["id"], alt["id"]]}, headers=headers)
    assert res.status_code == 200, res.text
    assert set(res.json()["prerequisite_course_ids"]) == {base["id"], alt["id"]}

    res = client.put(f"/courses/{advanced['id']}", json={"name": "Avanzada Revisada"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["name"] == "Avanzada Revisada"
    assert set(res.json()["prerequisite_course_ids"]) == {base["id"], alt["id"]}

    res = client.put(f"/courses/{advanced['id']}", json={"prerequisite_course_ids": [999999]}, headers=headers)
    assert res.status_code == 404

    res = client.put(f"/courses/{advanced['id']}", json={"prerequisite_course_ids": [advanced["id"]]}, headers=headers)
    assert res.status_code == 400

    # base requerida por advanced: hacer que base requiera advanced cierra un ciclo
    res = client.put(f"/courses/{base['id']}", json={"prerequisite_course_ids": [advanced["id"]]}, headers=headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "La correlatividad generaría un ciclo"

    res = client.put(f"/courses/{advanced['id']}", json={"prerequisite_course_ids": []}, headers=headers)
    assert res.status_code == 200
    assert res.json()["prerequisite_course_ids"] == []


def test_prerequisite_edges_endpoint(client: TestClient, coordinator_token: str):
    headers = _auth_headers(coordinator_token)
    career = _create_career(client, headers)
    first = _create_course(client, headers, career["id"])
    second = _create_course(client, headers, career["id"], year=2)
    third = _create_course(client, headers, career["id"], year=3)

    res = client.post("/prerequisites/", json={"course_id": second["id"], "required_course_id": first["id"]}, headers=headers)
    assert res.status_code == 200, res.text
    edge = res.json()
    assert edge["required_course"]["code"] == first["code"]

    res = client.post("/prerequisites/", json={"course_id": second["id"], "required_course_id": first["id"]}, headers=headers)
    assert res.status_code == 409

    res = client.post("/prerequisites/", json={"course_id": third["id"], "required_course_id": third["id"]}, headers=headers)
    assert res.status_code == 400

    res = client.post("/prerequisites/", json={"course_id": third["id"], "required_course_id": 999999}, headers=headers)
    assert res.status_code == 404

    res = client.post("/prerequisites/", json={"course_id": third["id"], "required_course_id": second["id"]}, headers=headers)
    assert res.status_code == 200
    # first -> third cerraría first <- second <- third
    res = client.post("/prerequisites/", json={"course_id": first["id"], "required_course_id": third["id"]}, headers=headers)
    assert res.status_code == 400

    listing = client.get("/prerequisites/", params={"career_id": career["id"]}, headers=headers)
    assert listing.status_code == 200
    assert len(listing.json()) == 2

    plan = client.get(f"/careers/{career['id']}/prerequisite-plan", headers=headers)
    assert plan.status_code == 200, plan.text
    blocks = plan.json()
    assert [block["year"] for block in blocks] == [1, 2, 3]
    assert blocks[1]["courses"][0]["required"][0]["id"] == first["id"]

    res = client.delete(f"/prerequisites/{edge['id']}", headers=headers)
    assert res.status_code == 200
    res = client.delete(f"/prerequisites/{edge['id']}", headers=headers)
    assert res.status_code == 404


def test_deleting_a_course_clears_its_edges_both_ways(client: TestClient, admin_token: str):
    headers = _auth_headers(admin_token)
    career = _create_career(client, headers)
    first = _create_course(client, headers, career["id"])
    middle = _create_course(client, headers, career["id"], year=2, prerequisite_course_ids=[first["id"]])
    last = _create_course(client, headers, career["id"], year=3, prerequisite_course_ids=[middle["id"]])

    res = client.delete(f"/courses/{middle['id']}", headers=headers)
    assert res.status_code == 200, res.text

    res = client.get(f"/courses/{last['id']}", headers=headers)
    assert res.json()["prerequisite_course_ids"] == []
    listing = client.get("/prerequisites/", params={"career_id": career["id"]}, headers=headers)
    assert listing.json() == []


def test_career_courses_grouped_by_year(client: TestClient, admin_token: str):
    headers = _auth_headers(admin_token)
    career = _create_career(client, headers)
    _create_course(client, headers, career["id"], name="Segundo", year=2)
    _create_course(client, headers, career["id"], name="Primero B", year=1, term="2")
    _create_course(client, headers, career["id"], name="Primero A", year=1)

    res = client.get(f"/careers/{career['id']}/courses", headers=headers)
    assert res.status_code == 200
    years = res.json()
    assert [year["year"] for year in years] == [1, 2]
    assert [course["name"] for course in years[0]["courses"]] == ["Primero A", "Primero B"]

    filtered = client.get("/courses/", params={"career_id": career["id"], "q": "primero"}, headers=headers)
    assert {course["name"] for course in filtered.json()} == {"Primero A", "Primero B"}


def test_teacher_cannot_modify_catalog(client: TestClient, teacher_token: str):
    headers = _auth_headers(teacher_token)
    assert client.get("/careers/", headers=headers).status_code == 200
    res = client.post("/careers/", json={"name": "No autorizada"}, headers=headers)
    assert res.status_code == 403
