import os
from typing import NoReturn

from fastapi import HTTPException, status


def env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def raise_backend_unavailable(exc: Exception, *, fallback_detail: str) -> NoReturn:
    detail = str(exc) if isinstance(exc, RuntimeError) else fallback_detail
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail) from exc
