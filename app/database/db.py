import os
from functools import lru_cache
from typing import Any, List, Sequence

import structlog
from dotenv import load_dotenv
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import BackendError

load_dotenv()

log = structlog.get_logger()

REQUIRED_ENV = [
    "GOOGLE_SERVICE_ACCOUNT_EMAIL",
    "GOOGLE_SERVICE_ACCOUNT_KEY",
    "GOOGLE_SHEETS_ID",
]

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
VALUE_INPUT_OPTION = "USER_ENTERED"
FIRST_COLUMN = "A"
LAST_COLUMN = "U"

KEY_FORMAT_HINT = (
    "Google service account key is misformatted. Re-save GOOGLE_SERVICE_ACCOUNT_KEY "
    'as the full PEM key and preserve "\\n" line breaks.'
)
_KEY_ERROR_MARKERS = (
    "DECODER routines::unsupported",
    "error:1E08010C",
    "Could not deserialize key data",
    "No key could be detected",
)


def validate_sheets_env() -> None:
    missing = [key for key in REQUIRED_ENV if not os.getenv(key)]
    if missing:
        raise BackendError(f"Missing environment variables: {', '.join(missing)}", status_code=500)


def normalize_private_key(raw: str) -> str:
    """Env files usually carry the PEM key on one line with literal ``\\n`` escapes."""
    return raw.replace("\\n", "\n")


def describe_backend_failure(exc: Exception) -> str:
    message = str(exc) or exc.__class__.__name__
    if any(marker in message for marker in _KEY_ERROR_MARKERS):
        return KEY_FORMAT_HINT
    return message


def build_credentials(client_email: str, private_key: str) -> service_account.Credentials:
    info = {
        "type": "service_account",
        "client_email": client_email,
        "private_key": normalize_private_key(private_key),
        "token_uri": TOKEN_URI,
    }
    try:
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    except (ValueError, GoogleAuthError) as exc:
        log.error("sheets_credentials_invalid", error=str(exc))
        raise BackendError(KEY_FORMAT_HINT, status_code=500) from exc


class SheetsTable:
    """Row-level access to one tab of a Google Sheet.

    Only three primitives are exposed: read every row, append a row after the
    last populated one, and overwrite the row at a 1-based position.
    """

    def __init__(self, service: Any, spreadsheet_id: str, sheet_name: str = "Sheet1") -> None:
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name

    def _range(self, cells: str) -> str:
        return f"{self.sheet_name}!{cells}"

    def _execute(self, request: Any, operation: str) -> dict:
        try:
            return request.execute() or {}
        except (HttpError, GoogleAuthError, ValueError) as exc:
            log.error("sheets_request_failed", operation=operation, error=str(exc))
            raise BackendError(describe_backend_failure(exc)) from exc

    def read_rows(self) -> List[List[Any]]:
        """All rows of the tab including the header row, cells as the API returns them."""
        request = self.service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(f"{FIRST_COLUMN}:{LAST_COLUMN}"),
        )
        return self._execute(request, "read").get("values", [])

    def append_row(self, cells: Sequence[str]) -> None:
        request = self.service.spreadsheets().values().append(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(f"{FIRST_COLUMN}1"),
            valueInputOption=VALUE_INPUT_OPTION,
            body={"values": [list(cells)]},
        )
        self._execute(request, "append")

    def write_row(self, position: int, cells: Sequence[str]) -> None:
        request = self.service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(f"{FIRST_COLUMN}{position}:{LAST_COLUMN}{position}"),
            valueInputOption=VALUE_INPUT_OPTION,
            body={"values": [list(cells)]},
        )
        self._execute(request, "write")


@lru_cache(maxsize=1)
def get_sheets_table() -> SheetsTable:
    validate_sheets_env()
    credentials = build_credentials(
        os.environ["GOOGLE_SERVICE_ACCOUNT_EMAIL"],
        os.environ["GOOGLE_SERVICE_ACCOUNT_KEY"],
    )
    service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
    return SheetsTable(
        service,
        os.environ["GOOGLE_SHEETS_ID"],
        sheet_name=os.getenv("GOOGLE_SHEET_NAME", "Sheet1"),
    )


def get_table() -> SheetsTable:
    return get_sheets_table()
