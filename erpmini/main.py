from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from erpmini.config import settings
from erpmini.logging_config import configure_logging
from erpmini.middleware.errors import install_error_handlers
from erpmini.middleware.request_logging import install_request_logging
from erpmini.routers import accounts, customers, hr, orders, products, purchases, reports, suppliers
from erpmini.schemas import ErrorResponse, MessageResponse

API_PREFIX = '/api/v1'
ERROR_RESPONSES = {code: {'model': ErrorResponse} for code in (400, 404, 409, 422)}

configure_logging(level=settings.log_level, json_lines=settings.log_json)

app = FastAPI(title=settings.app_name, version=settings.app_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_methods=['*'],
    allow_headers=['*'],
)
install_request_logging(app)
install_error_handlers(app)

health = APIRouter(tags=['health'])


@health.get('/ping', response_model=MessageResponse)
def ping() -> MessageResponse:
    return MessageResponse(message='pong')


app.include_router(health, prefix=API_PREFIX)
app.include_router(orders.router, prefix=API_PREFIX, responses=ERROR_RESPONSES)
app.include_router(products.router, prefix=API_PREFIX, responses=ERROR_RESPONSES)
app.include_router(purchases.router, prefix=API_PREFIX, responses=ERROR_RESPONSES)
app.include_router(customers.router, prefix=API_PREFIX, responses=ERROR_RESPONSES)
app.include_router(suppliers.router, prefix=API_PREFIX, responses=ERROR_RESPONSES)
app.include_router(accounts.router, prefix=API_PREFIX, responses=ERROR_RESPONSES)
app.include_router(reports.router, prefix=API_PREFIX, responses=ERROR_RESPONSES)
app.include_router(hr.router, prefix=API_PREFIX, responses=ERROR_RESPONSES)
