from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SubmissionStatus(str, Enum):
    NEW = "new"
    REVIEWED = "reviewed"
    CLOSED = "closed"


DEFAULT_STATUS = SubmissionStatus.NEW


class Submission(BaseModel):
    """One commissioning submission, as stored in a single sheet row.

    Every attribute is a string cell except ``status``. Yes/No answers stay as
    the literal strings ``"Yes"`` / ``"No"``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    submission_id: str
    timestamp: str = ""
    job_name: str = ""
    site_address: str = ""
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    drawing_link: str = ""
    programming_narrative: str = ""
    fixtures_operable: str = ""
    wiring_notes: str = ""
    dmx_access_available: str = ""
    additional_notes: str = ""
    status: SubmissionStatus = DEFAULT_STATUS
    reviewed_by: str = ""
    reviewed_at: str = ""
    closed_at: str = ""
    internal_notes: str = ""
    purchase_order: str = ""
    scheduled_on: str = ""
    completed_on: str = ""


class SubmissionForm(BaseModel):
    """Validated intake payload, before an identity is minted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_name: str
    site_address: str
    purchase_order: str
    contact_name: str
    contact_email: str
    contact_phone: str
    fixtures_operable: str
    drawing_link: Optional[str] = None
    programming_narrative: Optional[str] = None
    wiring_notes: Optional[str] = None
    dmx_access_available: bool = False
    additional_notes: Optional[str] = None
