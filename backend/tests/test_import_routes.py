from datetime import date
from io import BytesIO
import threading
import time

from openpyxl import load_workbook

from schoolday.services.conflict_service import ScopeKey
from schoolday.services.import_template import DATA_SHEET, XLSX_MEDIA_TYPE, build_template
from schoolday.services.scope_locks import scope_locks
from schoolday.services.time_window import TimeWindow

CSV_HEADER = "branch,class,academicYear,subject,teacher,date,startTime,endTime,roomNumber\n"
CSV_ROW = "SCI,Grade 10A,2024-2025,Physics,John Smith,2024-09-06,09:00,10:00,204\n"


def _upload(client, headers, content, *, file_name="week.csv", validate_only=None):
    data = {} if validate_only is None else {"validateOnly": str(validate_only).lower()}
    return client.post(
        "/api/timetable-bulk-upload",
        files={"file": (file_name, content, "text/csv")},
        data=data,
        headers=headers,
    )


def test_download_template(client, school, auth_headers):
    response = client.get("/api/timetable-bulk-upload/template", headers=auth_headers("scheduler"))

    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX_MEDIA_TYPE
    assert "timetable-bulk-upload-template-" in response.headers["content-disposition"]
    wb = load_workbook(BytesIO(response.content))
    assert DATA_SHEET in wb.sheetnames


def test_template_requires_scheduler_role(client, school, auth_headers):
    response = client.get("/api/timetable-bulk-upload/template", headers=auth_headers("teacher"))

    assert response.status_code == 403


def test_upload_commits_valid_rows(client, school, auth_headers):
    response = _upload(client, auth_headers(), (CSV_HEADER + CSV_ROW + CSV_ROW).encode())

    assert response.status_code == 201
    payload = response.json()
    assert payload["totalRows"] == 2
    assert payload["committedCount"] == 1
    assert payload["errorCount"] == 1
    assert payload["errors"][0]["row"] == 3
    assert payload["errors"][0]["code"] == "SchedulingConflict"
    assert payload["committed"][0]["date"] == "2024-09-06"
    assert payload["committed"][0]["dayOfWeek"] == "FRIDAY"
    assert payload["committed"][0]["source"] == "import"


def test_validate_only_upload_returns_ok(client, school, auth_headers):
    response = _upload(client, auth_headers(), (CSV_HEADER + CSV_ROW).encode(), validate_only=True)

    assert response.status_code == 200
    payload = response.json()
    assert payload["validateOnly"] is True
    assert payload["committedCount"] == 0
    assert payload["errors"] == []

    listing = client.get("/api/timetables", headers=auth_headers()).json()
    assert listing["total"] == 0


def test_upload_history_is_per_user(client, school, auth_headers):
    upload_id = _upload(client, auth_headers(subject="user-1"), (CSV_HEADER + CSV_ROW).encode()).json()["uploadId"]

    mine = client.get("/api/timetable-bulk-upload", headers=auth_headers(subject="user-1")).json()
    theirs = client.get("/api/timetable-bulk-upload", headers=auth_headers(subject="user-2")).json()

    assert [upload["id"] for upload in mine] == [upload_id]
    assert mine[0]["status"] == "COMPLETED"
    assert mine[0]["successRows"] == 1
    assert theirs == []

    detail = client.get(f"/api/timetable-bulk-upload/{upload_id}", headers=auth_headers())
    assert detail.status_code == 200
    assert detail.json()["fileName"] == "week.csv"

    missing = client.get("/api/timetable-bulk-upload/9999", headers=auth_headers())
    assert missing.status_code == 404


def test_unsupported_file_is_rejected(client, school, auth_headers):
    response = _upload(client, auth_headers(), b"hello", file_name="notes.txt")

    assert response.status_code == 400
    assert response.json()["details"]["code"] == "InvalidImportFile"


def test_xlsx_template_upload(client, school, auth_headers):
    response = client.post(
        "/api/timetable-bulk-upload",
        files={"file": ("template.xlsx", build_template(), XLSX_MEDIA_TYPE)},
        headers=auth_headers(),
    )

    assert response.status_code == 201
    assert response.json()["committedCount"] == 3


def test_upload_waiting_for_a_scope_lock_leaves_other_requests_served(client, school, auth_headers):
    window = TimeWindow.from_values("09:00", "10:00", full_date=date(2024, 9, 6))
    scope = ScopeKey.for_window(
        window,
        branch_id=school.sci,
        class_id=school.grade_10a,
        room_number="204",
        academic_year_id=school.year,
    )
    headers = auth_headers()
    responses = {}

    def upload():
        responses["upload"] = _upload(client, headers, (CSV_HEADER + CSV_ROW).encode())

    def live():
        responses["live"] = client.get("/api/health/live")

    uploader = threading.Thread(target=upload)
    with scope_locks().hold([scope]):
        uploader.start()
        time.sleep(0.3)
        checker = threading.Thread(target=live)
        checker.start()
        checker.join(timeout=2)

        assert not checker.is_alive()
        assert responses["live"].status_code == 200
        assert "upload" not in responses
    uploader.join(timeout=5)

    assert responses["upload"].status_code == 201
    assert responses["upload"].json()["committedCount"] == 1
