"""Sheet column layout and the row <-> Submission codec.

Row 1 of the sheet holds ``HEADERS``; data starts at row 2. Columns, by index:

    0 submission_id          7 drawing_link            14 reviewed_by
    1 timestamp              8 programming_narrative   15 reviewed_at
    2 job_name               9 fixtures_operable       16 closed_at
    3 site_address          10 wiring_notes            17 internal_notes
    4 contact_name          11 dmx_access_available    18 purchase_order
    5 contact_email         12 additional_notes        19 scheduled_on
    6 contact_phone         13 status                  20 completed_on
"""
from typing import Any, List, Sequence

from .models import DEFAULT_STATUS, Submission, SubmissionStatus

COLUMNS = [
    "submission_id",
    "timestamp",
    "job_name",
    "site_address",
    "contact_name",
    "contact_email",
    "contact_phone",
    "drawing_link",
    "programming_narrative",
    "fixtures_operable",
    "wiring_notes",
    "dmx_access_available",
    "additional_notes",
    "status",
    "reviewed_by",
    "reviewed_at",
    "closed_at",
    "internal_notes",
    "purchase_order",
    "scheduled_on",
    "completed_on",
]

HEADERS = [
    "Submission ID",
    "Timestamp",
    "Job name",
    "Site address",
    "Contact name",
    "Contact email",
    "Contact phone",
    "Drawing link",
    "Programming narrative",
    "Fixtures operable",
    "Wiring notes",
    "DMX access available",
    "Additional notes",
    "Status",
    "Reviewed By",
    "Reviewed At",
    "Closed At",
    "Internal Notes",
    "Purchase Order",
    "Scheduled On",
    "Completed On",
]

COL = {name: index for index, name in enumerate(COLUMNS)}
ROW_WIDTH = len(COLUMNS)
HEADER_ROWS = 1
FIRST_DATA_ROW = HEADER_ROWS + 1
LEGACY_ID_PREFIX = "legacy-"


def row_position(index: int) -> int:
    """Sheet row number of the data row at ``index`` (0-based, header excluded)."""
    return index + FIRST_DATA_ROW


def legacy_id(position: int) -> str:
    return f"{LEGACY_ID_PREFIX}{position}"


def cell(cells: Sequence[Any], index: int) -> str:
    if index >= len(cells) or cells[index] is None:
        return ""
    return str(cells[index]).strip()


def parse_status(raw: str) -> SubmissionStatus:
    try:
        return SubmissionStatus(raw.strip().lower())
    except ValueError:
        return DEFAULT_STATUS


def decode_row(cells: Sequence[Any], position: int) -> Submission:
    values = {name: cell(cells, index) for index, name in enumerate(COLUMNS)}
    values["submission_id"] = values["submission_id"] or legacy_id(position)
    values["status"] = parse_status(values["status"])
    return Submission(**values)


def encode_submission(submission: Submission) -> List[str]:
    values = submission.model_dump()
    values["status"] = submission.status.value
    return ["" if values[name] is None else str(values[name]) for name in COLUMNS]


def pad_row(cells: Sequence[Any]) -> List[str]:
    """String copy of a raw row, padded out to the full column width."""
    padded = ["" if value is None else str(value) for value in cells]
    while len(padded) < ROW_WIDTH:
        padded.append("")
    return padded


def matches_id(cells: Sequence[Any], position: int, sub_id: str) -> bool:
    stored = cell(cells, COL["submission_id"])
    if stored:
        return stored == sub_id
    return legacy_id(position) == sub_id
