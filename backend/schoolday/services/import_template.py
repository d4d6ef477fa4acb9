from __future__ import annotations

import csv
from io import BytesIO, StringIO
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from schoolday.core.exceptions import ImportFileError

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DATA_SHEET = "Timetable Data"
INSTRUCTIONS_SHEET = "Field Instructions"
RULES_SHEET = "Validation Rules"

# Column names and order are what uploads are parsed against.
TEMPLATE_COLUMNS = (
    "branch",
    "class",
    "academicYear",
    "subject",
    "teacher",
    "date",
    "startTime",
    "endTime",
    "roomNumber",
    "buildingName",
    "status",
)
COLUMN_WIDTHS = (12, 15, 15, 20, 20, 12, 10, 10, 12, 15, 10)

SAMPLE_ROWS = (
    ("SCI", "Grade 10A", "2024-2025", "Physics", "John Smith", "2024-09-06", "09:00", "10:00", "204", "Science Block", "ACTIVE"),
    ("SCI", "Grade 10A", "2024-2025", "Chemistry", "Jane Doe", "2024-09-06", "10:15", "11:15", "205", "Science Block", "ACTIVE"),
    ("LIT", "Grade 9B", "2024-2025", "English Literature", "Alice Johnson", "2024-09-06", "11:30", "12:30", "101", "Main Building", "ACTIVE"),
)

FIELD_INSTRUCTIONS = (
    ("branch", "Branch short name (e.g., SCI) or full name", "Yes", "SCI, Science Branch"),
    ("class", "Class name as registered in system", "Yes", "Grade 10A, Class 9B"),
    ("academicYear", "Academic year name", "Yes", "2024-2025, 2023-24"),
    ("subject", "Subject name as registered in system", "Yes", "Physics, Mathematics"),
    ("teacher", "Teacher full name (First Last)", "Yes", "John Smith, Jane Doe"),
    ("date", "Class date in YYYY-MM-DD format", "Yes", "2024-09-06, 2024-12-25"),
    ("startTime", "Start time in HH:MM format (24-hour)", "Yes", "09:00, 14:30"),
    ("endTime", "End time in HH:MM format (24-hour)", "Yes", "10:00, 15:30"),
    ("roomNumber", "Room number or identifier", "Yes", "204, Lab-1, A-101"),
    ("buildingName", "Building name (optional)", "No", "Science Block, Main Building"),
    ("status", "Timetable status (optional, defaults to ACTIVE)", "No", "ACTIVE, INACTIVE"),
)


def validation_rules(max_rows: int) -> tuple[tuple[str, str], ...]:
    return (
        ("Date Range", "Dates must be within the selected academic year range"),
        ("Time Format", "Use 24-hour format (HH:MM). End time must be after start time"),
        ("No Conflicts", "No overlapping times for the same class and room on the same date, in the file or in the system"),
        ("Valid References", "Branch, class, academic year, subject, and teacher must exist in system"),
        ("Teacher Assignment", "Teacher must belong to the specified branch"),
        ("Class Assignment", "Class must belong to the specified branch and academic year"),
        ("File Format", "Supported formats: .xlsx, .csv"),
        ("Maximum Rows", f"Maximum {max_rows} rows per upload for performance"),
    )


def _write_sheet(ws, headers, rows, widths) -> None:
    ws.append(list(headers))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append(list(row))
    for col_num, width in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(col_num)].width = width


def build_template(max_rows: int = 1000) -> bytes:
    """Render the three-sheet upload template as xlsx bytes."""
    wb = Workbook()
    data = wb.active
    data.title = DATA_SHEET
    _write_sheet(data, TEMPLATE_COLUMNS, SAMPLE_ROWS, COLUMN_WIDTHS)

    instructions = wb.create_sheet(INSTRUCTIONS_SHEET)
    _write_sheet(instructions, ("Field", "Description", "Required", "Example"), FIELD_INSTRUCTIONS, (15, 40, 10, 25))

    rules = wb.create_sheet(RULES_SHEET)
    _write_sheet(rules, ("Rule", "Description"), validation_rules(max_rows), (20, 60))
    for row in rules.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = Alignment(wrap_text=True)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _map_headers(header_row) -> list[str | None]:
    known = {column.lower(): column for column in TEMPLATE_COLUMNS}
    headers = [known.get(str(value).strip().lower()) if value is not None else None for value in header_row]
    if not any(headers):
        raise ImportFileError(f"Header row must name the template columns: {', '.join(TEMPLATE_COLUMNS)}")
    return headers


def _is_blank(values) -> bool:
    return all(value is None or (isinstance(value, str) and not value.strip()) for value in values)


def _to_rows(header_row, body) -> list[dict[str, object]]:
    headers = _map_headers(header_row)
    parsed: list[tuple[dict[str, object], bool]] = []
    for values in body:
        row: dict[str, object] = {}
        for name, value in zip(headers, values):
            if name is not None:
                row[name] = value
        parsed.append((row, _is_blank(values)))
    # Trailing blank lines are formatting, not data.
    while parsed and parsed[-1][1]:
        parsed.pop()
    return [row for row, _ in parsed]


def parse_xlsx(content: bytes) -> list[dict[str, object]]:
    try:
        wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as exc:
        raise ImportFileError("File is not a readable .xlsx workbook") from exc
    try:
        ws = wb[DATA_SHEET] if DATA_SHEET in wb.sheetnames else wb.active
        values = ws.iter_rows(values_only=True)
        header_row = next(values, None)
        if header_row is None:
            raise ImportFileError("File is empty or has no valid data")
        return _to_rows(header_row, values)
    finally:
        wb.close()


def parse_csv(content: bytes) -> list[dict[str, object]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ImportFileError("CSV file must be UTF-8 encoded") from exc
    reader = csv.reader(StringIO(text))
    header_row = next(reader, None)
    if header_row is None:
        raise ImportFileError("File is empty or has no valid data")
    return _to_rows(header_row, reader)


def parse_upload(file_name: str | None, content: bytes) -> list[dict[str, object]]:
    """Read an uploaded template into row dicts keyed by template column."""
    name = (file_name or "").lower()
    if name.endswith(".xlsx"):
        rows = parse_xlsx(content)
    elif name.endswith(".csv"):
        rows = parse_csv(content)
    else:
        raise ImportFileError("Invalid file type. Please upload an Excel (.xlsx) or CSV file")
    if not rows:
        raise ImportFileError("File is empty or has no valid data")
    return rows
