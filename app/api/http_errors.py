from __future__ import annotations

from collections.abc import Mapping

from fastapi import HTTPException


def service_error(
    exc: Exception,
    *,
    code_statuses: Mapping[str, int] | None = None,
    detail_overrides: Mapping[str, str] | None = None,
    default_status: int = 400,
    default_detail: str | None = None,
) -> HTTPException:
    """Map a service-layer ValueError/PermissionError onto an HTTPException.

    Services raise short codes ("not_found") or plain sentences; codes are
    looked up in ``code_statuses``, PermissionError falls back to 403.
    """
    raw_detail = str(exc)

    if code_statuses and raw_detail in code_statuses:
        detail = (
            detail_overrides[raw_detail]
            if detail_overrides and raw_detail in detail_overrides
            else raw_detail
        )
        return HTTPException(status_code=code_statuses[raw_detail], detail=detail)

    if isinstance(exc, PermissionError):
        return HTTPException(status_code=403, detail=raw_detail or "Forbidden")

    return HTTPException(
        status_code=default_status,
        detail=default_detail if default_detail is not None else raw_detail,
    )
