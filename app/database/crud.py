import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog

from . import models
from .db import SheetsTable
from .errors import InvalidTransition, SubmissionNotFound
from .schema import COL, COLUMNS, ROW_WIDTH, decode_row, encode_submission, matches_id, pad_row, row_position

log = structlog.get_logger()

Status = models.SubmissionStatus

ALLOWED_TRANSITIONS: Dict[Status, Tuple[Status, ...]] = {
    Status.NEW: (Status.REVIEWED, Status.CLOSED),
    Status.REVIEWED: (Status.CLOSED,),
    Status.CLOSED: (),
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def can_transition(current: Status, target: Status) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, ())


def _data_rows(table: SheetsTable) -> List[List[Any]]:
    rows = table.read_rows()
    return rows[1:] if len(rows) > 1 else []


def create_submission(
    table: SheetsTable,
    *,
    form: models.SubmissionForm,
    now: Optional[str] = None,
) -> models.Submission:
    submission = models.Submission(
        submission_id=str(uuid.uuid4()),
        timestamp=now or utc_now_iso(),
        job_name=form.job_name,
        site_address=form.site_address,
        contact_name=form.contact_name,
        contact_email=form.contact_email,
        contact_phone=form.contact_phone,
        drawing_link=form.drawing_link or "",
        programming_narrative=form.programming_narrative or "",
        fixtures_operable="Yes" if form.fixtures_operable == "yes" else "No",
        wiring_notes=form.wiring_notes or "",
        dmx_access_available="Yes" if form.dmx_access_available else "No",
        additional_notes=form.additional_notes or "",
        status=models.DEFAULT_STATUS,
        purchase_order=form.purchase_order,
    )
    table.append_row(encode_submission(submission))
    log.info("submission_created", id=submission.submission_id)
    return submission


def find_submission(table: SheetsTable, *, sub_id: str) -> Tuple[models.Submission, int, List[Any]]:
    """Locate a submission by id, including position-derived ``legacy-N`` ids.

    Returns the decoded record, its sheet row number and the raw cells.
    """
    for index, cells in enumerate(_data_rows(table)):
        position = row_position(index)
        if matches_id(cells, position, sub_id):
            return decode_row(cells, position), position, cells
    raise SubmissionNotFound(sub_id)


def get_submission(table: SheetsTable, *, sub_id: str) -> Optional[models.Submission]:
    try:
        submission, _, _ = find_submission(table, sub_id=sub_id)
    except SubmissionNotFound:
        return None
    return submission


def list_submissions(table: SheetsTable, *, status: Optional[Status] = None) -> List[models.Submission]:
    submissions = [decode_row(cells, row_position(index)) for index, cells in enumerate(_data_rows(table))]
    if status is not None:
        submissions = [s for s in submissions if s.status == status]
    return submissions


def update_submission(
    table: SheetsTable,
    *,
    sub_id: str,
    status: Optional[Union[Status, str]] = None,
    reviewed_by: Optional[str] = None,
    internal_notes: Optional[str] = None,
    now: Optional[str] = None,
) -> models.Submission:
    """Apply a status change and/or annotations to one row and write it back.

    Requesting the current status is a no-op. Entering ``reviewed`` stamps
    ``reviewed_at``; entering ``closed`` stamps ``closed_at`` and ``completed_on``.
    Nothing is written when the request changes no cell.
    """
    current, position, cells = find_submission(table, sub_id=sub_id)
    target = Status(status) if status is not None else None
    changes_status = target is not None and target != current.status

    if changes_status and not can_transition(current.status, target):
        allowed = [s.value for s in ALLOWED_TRANSITIONS[current.status]]
        log.warning("invalid_transition", id=sub_id, current=current.status.value, target=target.value)
        raise InvalidTransition(current.status.value, target.value, allowed)

    stamp = now or utc_now_iso()
    original = pad_row(cells)
    updated = list(original)

    if changes_status:
        updated[COL["status"]] = target.value
        if target == Status.REVIEWED:
            updated[COL["reviewed_at"]] = stamp
        elif target == Status.CLOSED:
            updated[COL["closed_at"]] = stamp
            updated[COL["completed_on"]] = stamp
        if reviewed_by is not None:
            updated[COL["reviewed_by"]] = reviewed_by

    if reviewed_by is not None and not updated[COL["reviewed_by"]].strip():
        updated[COL["reviewed_by"]] = reviewed_by
    if internal_notes is not None:
        updated[COL["internal_notes"]] = internal_notes

    changed = [COLUMNS[i] for i in range(ROW_WIDTH) if updated[i] != original[i]]
    result = decode_row(updated, position)
    if changed:
        table.write_row(position, updated)
        log.info(
            "submission_updated",
            id=sub_id,
            position=position,
            status_from=current.status.value,
            status_to=result.status.value,
            fields=changed,
        )
    return result
