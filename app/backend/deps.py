from typing import Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from app.backend.security import ADMIN_KEY_HEADER, AdminPolicy, RateLimiter

ADMIN_KEY = APIKeyHeader(name=ADMIN_KEY_HEADER, auto_error=False)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_admin_policy(request: Request) -> AdminPolicy:
    return request.app.state.admin_policy


def require_admin(
    api_key: Optional[str] = Depends(ADMIN_KEY),
    policy: AdminPolicy = Depends(get_admin_policy),
) -> bool:
    policy.authorize(api_key)
    return True
