from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from app.backend.deps import require_admin
from app.backend.security import log_audit_event
from app.database import crud, models
from app.database.db import SheetsTable, get_table
from app.database.errors import SubmissionNotFound


def parse_status(value: Any) -> Optional[models.SubmissionStatus]:
    """Known status values, case-insensitive; anything else means 'no status given'."""
    if value is None:
        return None
    try:
        return models.SubmissionStatus(str(value).strip().lower())
    except ValueError:
        return None


class SubmissionList(BaseModel):
    submissions: List[models.Submission]


class SubmissionUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: Optional[models.SubmissionStatus] = None
    reviewed_by: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Optional[models.SubmissionStatus]:
        return parse_status(v)

    @field_validator("reviewed_by", "internal_notes", mode="before")
    @classmethod
    def ignore_non_text(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) else None


router = APIRouter(prefix="/api/submissions", tags=["submissions"], dependencies=[Depends(require_admin)])


@router.get("", response_model=SubmissionList)
def list_submissions(status: Optional[str] = None, table: SheetsTable = Depends(get_table)) -> SubmissionList:
    submissions = crud.list_submissions(table, status=parse_status(status))
    return SubmissionList(submissions=submissions)


@router.get("/{submission_id}", response_model=models.Submission)
def get_submission(submission_id: str, table: SheetsTable = Depends(get_table)) -> models.Submission:
    submission = crud.get_submission(table, sub_id=submission_id)
    if not submission:
        raise SubmissionNotFound(submission_id)
    return submission


@router.patch("/{submission_id}", response_model=models.Submission)
def update_submission(
    submission_id: str,
    payload: SubmissionUpdate,
    table: SheetsTable = Depends(get_table),
) -> models.Submission:
    """Move a submission along new -> reviewed -> closed and/or annotate it."""
    submission = crud.update_submission(
        table,
        sub_id=submission_id,
        status=payload.status,
        reviewed_by=payload.reviewed_by,
        internal_notes=payload.internal_notes,
    )

    log_audit_event(
        event_type="submission_update_requested",
        submission_id=submission.submission_id,
        metadata={
            "requested_status": payload.status.value if payload.status else None,
            "status": submission.status.value,
            "annotated": payload.reviewed_by is not None or payload.internal_notes is not None,
        },
    )
    return submission
