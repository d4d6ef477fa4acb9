def _record(school, **overrides):
    record = {
        "studentId": "S1",
        "timetableId": 7,
        "date": "2024-09-06",
        "status": "PRESENT",
        "branchId": school.sci,
        "classId": school.grade_10a,
        "subjectId": school.physics,
        "academicYearId": school.year,
        "teacherId": school.john,
    }
    record.update(overrides)
    return record


def test_teacher_records_attendance(client, school, auth_headers):
    response = client.post("/api/attendance", json=_record(school), headers=auth_headers("teacher"))

    assert response.status_code == 201
    payload = response.json()
    assert payload["success"] is True
    assert payload["message"] == "Attendance recorded successfully"
    assert payload["data"]["studentId"] == "S1"
    assert payload["data"]["timetableId"] == 7
    assert payload["data"]["status"] == "PRESENT"


def test_students_cannot_record_attendance(client, school, auth_headers):
    response = client.post("/api/attendance", json=_record(school), headers=auth_headers("student"))

    assert response.status_code == 403


def test_duplicate_record_is_a_conflict(client, school, auth_headers):
    client.post("/api/attendance", json=_record(school), headers=auth_headers())

    response = client.post("/api/attendance", json=_record(school, status="LATE"), headers=auth_headers())

    assert response.status_code == 409
    assert response.json()["details"]["code"] == "DuplicateAttendance"


def test_invalid_status_is_unprocessable(client, school, auth_headers):
    response = client.post("/api/attendance", json=_record(school, status="HOLIDAY"), headers=auth_headers())

    assert response.status_code == 422


def test_bulk_upsert_present_then_late(client, school, auth_headers):
    first = client.put(
        "/api/attendance",
        json={"attendanceRecords": [_record(school)]},
        headers=auth_headers("teacher"),
    )
    second = client.put(
        "/api/attendance",
        json={"attendanceRecords": [_record(school, status="LATE")]},
        headers=auth_headers("teacher"),
    )

    assert first.status_code == second.status_code == 200
    assert second.json()["data"]["results"][0]["data"]["status"] == "LATE"

    listing = client.get("/api/attendance?studentId=S1", headers=auth_headers()).json()
    assert listing["data"]["pagination"]["totalCount"] == 1
    assert listing["data"]["attendance"][0]["status"] == "LATE"


def test_bulk_upsert_reports_each_item(client, school, auth_headers):
    response = client.put(
        "/api/attendance",
        json={
            "attendanceRecords": [
                _record(school, studentId="S1"),
                {"studentId": "S2", "date": "2024-09-06", "status": "PRESENT"},
                _record(school, studentId="S3", status="absent"),
            ]
        },
        headers=auth_headers(),
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Processed 3 attendance records"
    data = payload["data"]
    assert (data["processed"], data["successful"], data["failed"]) == (3, 2, 1)
    assert [item["status"] for item in data["results"]] == ["fulfilled", "rejected", "fulfilled"]
    assert "timetableId" in data["results"][1]["error"]
    assert data["results"][2]["data"]["status"] == "ABSENT"


def test_bulk_upsert_requires_records(client, school, auth_headers):
    response = client.put("/api/attendance", json={"attendanceRecords": []}, headers=auth_headers())

    assert response.status_code == 422


def test_list_attendance_filters_and_summary(client, school, auth_headers):
    client.put(
        "/api/attendance",
        json={
            "attendanceRecords": [
                _record(school, studentId="S1"),
                _record(school, studentId="S2", status="ABSENT"),
                _record(school, studentId="S1", date="2024-09-09", status="EXCUSED"),
            ]
        },
        headers=auth_headers(),
    )

    response = client.get(
        f"/api/attendance?classId={school.grade_10a}&date=2024-09-06&limit=1",
        headers=auth_headers("teacher"),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["attendance"]) == 1
    assert data["pagination"] == {
        "page": 1,
        "limit": 1,
        "totalCount": 2,
        "totalPages": 2,
        "hasNext": True,
        "hasPrev": False,
    }
    assert data["summary"] == {"present": 1, "absent": 1, "late": 0, "excused": 1, "total": 3}

    filtered = client.get("/api/attendance?status=ABSENT", headers=auth_headers()).json()["data"]
    assert [record["studentId"] for record in filtered["attendance"]] == ["S2"]
