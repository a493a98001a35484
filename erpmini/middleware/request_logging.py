import time

from fastapi import FastAPI, Request
from starlette.responses import Response

from erpmini.dependencies import get_client_ip
from erpmini.logging_config import get_logger

logger = get_logger(__name__)


def install_request_logging(app: FastAPI) -> None:
    @app.middleware('http')
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response: Response = await call_next(request)
        logger.info(
            'request handled',
            extra={
                'method': request.method,
                'path': request.url.path,
                'status_code': response.status_code,
                'duration_ms': round((time.perf_counter() - started) * 1000, 2),
                'client_ip': get_client_ip(request),
                'branch_id': request.headers.get('x-branch-id'),
            },
        )
        return response
