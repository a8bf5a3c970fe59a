def test_new_user_gets_default_role(client):
    response = client.put("/user", json={"email": "ada@example.com", "name": "Ada"})
    assert response.status_code == 200
    result = response.json()
    assert result["upsertedCount"] == 1
    assert result["upsertedId"]

    user = client.get("/user/ada@example.com").json()
    assert user["email"] == "ada@example.com"
    assert user["role"] == "student"
    assert "status" not in user
    assert isinstance(user["_id"], str)
    assert "timestamp" in user


def test_unknown_user_is_null(client):
    response = client.get("/user/nobody@example.com")
    assert response.status_code == 200
    assert response.json() is None


def test_existing_user_is_returned_unchanged(client):
    client.put("/user", json={"email": "ada@example.com", "name": "Ada"})

    response = client.put("/user", json={"email": "ada@example.com", "name": "Someone Else"})
    assert response.status_code == 200
    user = response.json()
    assert user["email"] == "ada@example.com"
    assert user["name"] == "Ada"


def test_repeated_teacher_application_keeps_latest_payload(client):
    client.put("/user", json={"email": "ada@example.com"})

    for experience in ("beginner", "intermediate", "expert"):
        response = client.put("/user", json={
            "email": "ada@example.com",
            "status": "Pending",
            "teacherReqData": {"experience": experience, "title": "Python"},
        })
        assert response.status_code == 200
        assert response.json()["matchedCount"] == 1

    user = client.get("/user/ada@example.com").json()
    assert user["status"] == "Pending"
    assert user["teacherReqData"] == {"experience": "expert", "title": "Python"}


def test_teacher_requests_lists_applicants_only(client):
    client.put("/user", json={"email": "student@example.com"})
    client.put("/user", json={"email": "applicant@example.com"})
    client.put("/user", json={"email": "applicant@example.com", "status": "Pending", "teacherReqData": {}})

    emails = [u["email"] for u in client.get("/teacher-requests").json()]
    assert emails == ["applicant@example.com"]
    assert len(client.get("/users").json()) == 2


def test_teacher_approve(client):
    client.put("/user", json={"email": "ada@example.com"})
    client.put("/user", json={"email": "ada@example.com", "status": "Pending", "teacherReqData": {"title": "Math"}})
    user_id = client.get("/user/ada@example.com").json()["_id"]

    response = client.patch(f"/teacher-approve/{user_id}")
    assert response.status_code == 200
    assert response.json()["modifiedCount"] == 1

    user = client.get("/user/ada@example.com").json()
    assert user["role"] == "teacher"
    assert user["status"] == "Accepted"


def test_teacher_reject_keeps_role(client):
    client.put("/user", json={"email": "ada@example.com"})
    client.put("/user", json={"email": "ada@example.com", "status": "Pending"})
    user_id = client.get("/user/ada@example.com").json()["_id"]

    client.patch(f"/teacher-reject/{user_id}")

    user = client.get("/user/ada@example.com").json()
    assert user["status"] == "Rejected"
    assert user["role"] == "student"


def test_make_admin(client):
    client.put("/user", json={"email": "ada@example.com"})
    user_id = client.get("/user/ada@example.com").json()["_id"]

    response = client.patch(f"/user/{user_id}")
    assert response.json()["matchedCount"] == 1
    assert client.get("/user/ada@example.com").json()["role"] == "admin"


def test_unknown_user_id_matches_nothing(client):
    response = client.patch("/teacher-approve/64b7f0c2a1b2c3d4e5f60718")
    assert response.status_code == 200
    assert response.json()["matchedCount"] == 0


def test_malformed_user_id_is_bad_request(client):
    response = client.patch("/teacher-approve/not-an-id")
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "INVALID_ID"
    assert body["path"] == "/teacher-approve/not-an-id"
    assert body["method"] == "PATCH"


def test_upsert_requires_email(client):
    response = client.put("/user", json={"name": "Ada"})
    assert response.status_code == 422


def test_mixed_case_email_is_stored_as_sent(client):
    response = client.put("/user", json={"email": "Ada@Example.COM", "name": "Ada"})
    assert response.json()["upsertedCount"] == 1

    user = client.get("/user/Ada@Example.COM").json()
    assert user is not None
    assert user["email"] == "Ada@Example.COM"

    # a repeat login with the same address finds the stored user
    again = client.put("/user", json={"email": "Ada@Example.COM", "name": "Other"})
    assert again.json()["_id"] == user["_id"]


def test_upsert_rejects_empty_email(client):
    response = client.put("/user", json={"email": ""})
    assert response.status_code == 422
