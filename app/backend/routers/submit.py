import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from app.backend.deps import get_rate_limiter
from app.backend.security import RateLimiter, client_identity, log_audit_event
from app.database import crud, models
from app.database.db import SheetsTable, get_table
from app.database.errors import IntakeValidationError, RateLimited

REQUIRED_FIELDS = [
    "jobName",
    "siteAddress",
    "purchaseOrder",
    "contactName",
    "contactEmail",
    "contactPhone",
]
OPTIONAL_TEXT_FIELDS = [
    "drawingLink",
    "programmingNarrative",
    "wiringNotes",
    "additionalNotes",
]
FIXTURES_OPERABLE_CHOICES = {"yes", "no"}


class SubmitResponse(BaseModel):
    ok: bool = True
    submission_id: str = Field(..., alias="submissionId")


router = APIRouter(prefix="/api", tags=["submit"])


def parse_submission_payload(body: Any) -> models.SubmissionForm:
    """Validate a raw intake body. Raises IntakeValidationError naming the first bad field."""
    if not isinstance(body, dict):
        raise IntakeValidationError("body", "Request body must be a JSON object.")

    data: Dict[str, Any] = {}
    for field in REQUIRED_FIELDS:
        value = body.get(field)
        if not isinstance(value, str) or not value.strip():
            raise IntakeValidationError(field)
        data[field] = value.strip()

    fixtures_operable = body.get("fixturesOperable")
    if not isinstance(fixtures_operable, str) or fixtures_operable not in FIXTURES_OPERABLE_CHOICES:
        raise IntakeValidationError("fixturesOperable", 'Field "fixturesOperable" must be "yes" or "no".')
    data["fixturesOperable"] = fixtures_operable

    for field in OPTIONAL_TEXT_FIELDS:
        value = body.get(field)
        if isinstance(value, str):
            data[field] = value.strip()

    dmx = body.get("dmxAccessAvailable")
    data["dmxAccessAvailable"] = dmx if isinstance(dmx, bool) else False
    return models.SubmissionForm(**data)


@router.post("/submit", response_model=SubmitResponse)
async def submit_form(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    table: SheetsTable = Depends(get_table),
) -> SubmitResponse:
    """Accept a commissioning submission from the public form and append it to the sheet."""
    client_id = client_identity(request)
    if not limiter.check(client_id):
        raise RateLimited()

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise IntakeValidationError("body", "Request body must be a JSON object.")

    form = parse_submission_payload(body)
    record = await run_in_threadpool(crud.create_submission, table, form=form)

    log_audit_event(
        event_type="submission_created",
        submission_id=record.submission_id,
        client_id=client_id,
        metadata={
            "job_name": record.job_name,
            "purchase_order": record.purchase_order,
            "fixtures_operable": record.fixtures_operable,
        },
    )
    return SubmitResponse(submissionId=record.submission_id)
