import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from scheduler.core import config
from scheduler.core.errors import SchedulingError, StoreError, ValidationError
from scheduler.database import Base, engine, ensure_availability_schema, ensure_booking_schema
from scheduler.routes import (
    availability_routes,
    booking_routes,
    event_type_routes,
    public_routes,
    user_routes,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

logger = logging.getLogger(__name__)

config.validate_runtime_config()

app = FastAPI(title='Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_availability_schema()
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(SchedulingError)
def handle_scheduling_error(request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={'error': exc.message})


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors or any(error.get('type') == 'missing' for error in errors):
        message = ValidationError.default_message
    else:
        message = str(errors[0].get('msg', ValidationError.default_message)).removeprefix('Value error, ')
    return JSONResponse(status_code=ValidationError.status_code, content={'error': message})


@app.exception_handler(SQLAlchemyError)
def handle_store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error('Unhandled store error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=StoreError.status_code, content={'error': StoreError.default_message})


@app.get('/')
def root():
    return {'status': 'Scheduling API Running'}


app.include_router(user_routes.router, prefix='/user')
app.include_router(event_type_routes.router, prefix='/event-types')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(booking_routes.router, prefix='/bookings')
app.include_router(public_routes.router)
