import os
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.backend.routers import submissions, submit
from app.backend.security import AdminPolicy, RateLimiter
from app.database.errors import SubmissionError

structlog.configure(processors=[structlog.processors.TimeStamper(fmt="iso"), structlog.processors.JSONRenderer()])
log = structlog.get_logger()

app = FastAPI(title="Commissioning Intake", version="0.1.0")

allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    os.getenv("FRONTEND_ORIGIN", "http://localhost:3000"),
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.rate_limiter = RateLimiter()
app.state.admin_policy = AdminPolicy.from_env()


@app.exception_handler(SubmissionError)
async def submission_error_handler(request: Request, exc: SubmissionError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    loc = errors[0].get("loc", ()) if errors else ()
    if loc and loc[0] == "body":
        message = "Request body must be a JSON object."
    else:
        message = f"Invalid request parameter: {'.'.join(str(part) for part in loc[1:]) or 'unknown'}."
    log.info("request_rejected", path=request.url.path, error_type=errors[0].get("type") if errors else None)
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error("unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": "Unknown error occurred"})


@app.on_event("startup")
def on_startup() -> None:
    log.info("startup_complete", admin_auth_enforced=app.state.admin_policy.is_enforced)


@app.get("/health")
def healthcheck() -> dict[str, Any]:
    return {"status": "ok"}


app.include_router(submit.router)
app.include_router(submissions.router)
