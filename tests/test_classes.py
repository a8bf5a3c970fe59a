def test_create_class_defaults(client, make_class):
    class_id = make_class()

    cls = client.get(f"/classes/{class_id}").json()
    assert cls["_id"] == class_id
    assert cls["status"] == "Pending"
    assert cls["assignments"] == []
    assert cls["assignmentCount"] == 0
    assert cls["classId"] and cls["classId"] != class_id


def test_only_accepted_classes_are_listed(client, make_class):
    pending_id = make_class(name="Pending class")
    accepted_id = make_class(name="Accepted class")
    rejected_id = make_class(name="Rejected class")

    client.patch(f"/class-approve/{accepted_id}")
    client.patch(f"/class-reject/{rejected_id}", json={"feedback": "Needs a syllabus"})

    listed = [c["_id"] for c in client.get("/classes").json()]
    assert listed == [accepted_id]

    requests = {c["_id"] for c in client.get("/class-requests").json()}
    assert requests == {pending_id, accepted_id, rejected_id}

    catalog = {c["_id"] for c in client.get("/enrolledClasses").json()}
    assert catalog == {pending_id, accepted_id, rejected_id}

    rejected = client.get(f"/classes/{rejected_id}").json()
    assert rejected["status"] == "Rejected"
    assert rejected["feedback"] == "Needs a syllabus"


def test_approve_cannot_override_status_from_body(client, make_class):
    class_id = make_class()

    client.patch(f"/class-approve/{class_id}", json={"status": "Rejected", "feedback": "ok"})

    assert client.get(f"/classes/{class_id}").json()["status"] == "Accepted"


def test_teacher_classes(client, make_class):
    make_class(email="grace@example.com")
    make_class(email="grace@example.com")
    make_class(email="alan@example.com")

    classes = client.get("/teacher-classes/grace@example.com").json()
    assert len(classes) == 2
    assert all(c["email"] == "grace@example.com" for c in classes)


def test_update_class_overwrites_fields(client, make_class):
    class_id = make_class()

    response = client.put(f"/classes/{class_id}", json={
        "name": "Advanced Python",
        "price": 45,
        "seats": 30,
    })
    assert response.status_code == 200
    assert response.json()["matchedCount"] == 1

    cls = client.get(f"/classes/{class_id}").json()
    assert cls["name"] == "Advanced Python"
    assert cls["price"] == 45
    assert cls["seats"] == 30
    assert cls["email"] == "grace@example.com"


def test_add_assignment_keeps_count_in_step(client, make_class):
    class_id = make_class()

    for n in range(3):
        response = client.put(f"/add-assignment/{class_id}", json={
            "title": f"Homework {n}",
            "deadline": "2026-11-01",
        })
        assert response.status_code == 200
        assert response.json()["modifiedCount"] == 1

    cls = client.get(f"/classes/{class_id}").json()
    assert cls["assignmentCount"] == 3
    assert len(cls["assignments"]) == 3
    assert [a["title"] for a in cls["assignments"]] == ["Homework 0", "Homework 1", "Homework 2"]
    assert len({a["assignmentId"] for a in cls["assignments"]}) == 3


def test_delete_class(client, make_class):
    class_id = make_class()

    response = client.delete(f"/classes/{class_id}")
    assert response.status_code == 200
    assert response.json()["deletedCount"] == 1

    assert client.get(f"/classes/{class_id}").json() is None
    assert client.get(f"/enrolled-class/{class_id}").json() is None


def test_malformed_class_id_is_bad_request(client):
    for method, path in [
        ("GET", "/classes/xyz"),
        ("PUT", "/classes/xyz"),
        ("DELETE", "/classes/xyz"),
        ("PUT", "/add-assignment/xyz"),
        ("PATCH", "/class-approve/xyz"),
        ("GET", "/enrolled-class/xyz"),
    ]:
        kwargs = {"json": {}} if method in ("PUT", "PATCH") else {}
        response = client.request(method, path, **kwargs)
        assert response.status_code == 400, path
        assert response.json()["error"] == "INVALID_ID"
