from __future__ import annotations

from datetime import date, datetime, timezone

from fastapi import HTTPException, Request

from erpmini.services.report_service import DateRange, resolve_filter_range

BRANCH_HEADER = 'X-Branch-ID'
DATE_FORMAT = '%Y-%m-%d'


def get_branch_id(request: Request) -> int:
    raw = (request.headers.get(BRANCH_HEADER) or '').strip()
    try:
        branch_id = int(raw)
    except ValueError:
        branch_id = 0
    if branch_id <= 0:
        raise HTTPException(status_code=400, detail=f"Branch ID not found. Include '{BRANCH_HEADER}' header")
    return branch_id


def parse_date_param(value: str | None, *, field: str) -> date | None:
    raw = (value or '').strip()
    if not raw:
        return None
    try:
        return datetime.strptime(raw, DATE_FORMAT).date()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f'Invalid {field}, expected YYYY-MM-DD') from exc


def get_client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    if request.client:
        return request.client.host
    return None


def get_date_range(start_date: str | None = None, end_date: str | None = None) -> DateRange:
    """Query-string date filter; either bound missing falls back to the current month."""
    return resolve_filter_range(
        parse_date_param(start_date, field='start_date'),
        parse_date_param(end_date, field='end_date'),
        today(),
    )


def today() -> date:
    return datetime.now(tz=timezone.utc).date()
