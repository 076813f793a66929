import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.logging import setup_logging
from exceptions import (
    ValidationError,
    database_exception_handler,
    invalid_query_exception_handler,
    validation_exception_handler,
    vehicle_not_found_exception_handler,
)
from routers import admin, health, metrics, rentals, vehicles
from services.exceptions import DatabaseQueryError, InvalidQueryParametersError, VehicleNotFoundError

setup_logging()

logger = logging.getLogger(__name__)


app = FastAPI(title="Rental Ops API")

# Register exception handlers
app.add_exception_handler(ValidationError, validation_exception_handler)
app.add_exception_handler(InvalidQueryParametersError, invalid_query_exception_handler)
app.add_exception_handler(VehicleNotFoundError, vehicle_not_found_exception_handler)
app.add_exception_handler(DatabaseQueryError, database_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],   # Allows POST, GET, OPTIONS, etc
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(vehicles.router)
app.include_router(rentals.router)
app.include_router(admin.router)


@app.get("/", tags=["root"])
def hello():
    return {"message": "Rental Ops API"}
