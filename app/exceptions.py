from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from services.exceptions import DatabaseQueryError, InvalidQueryParametersError, VehicleNotFoundError


class ValidationError(HTTPException):
    def __init__(self, message: str, field: str = None):
        detail = {"error": "validation_error", "message": message}
        if field:
            detail["field"] = field
        super().__init__(status_code=422, detail=detail)


async def validation_exception_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation Error",
            "message": exc.detail.get("message", "Validation error"),
            "field": exc.detail.get("field"),
        },
    )


async def invalid_query_exception_handler(request: Request, exc: InvalidQueryParametersError):
    return JSONResponse(
        status_code=422,
        content={"error": "Validation Error", "message": str(exc), "field": None},
    )


async def vehicle_not_found_exception_handler(request: Request, exc: VehicleNotFoundError):
    return JSONResponse(
        status_code=404,
        content={"error": "Not Found", "message": str(exc)},
    )


async def database_exception_handler(request: Request, exc: DatabaseQueryError):
    return JSONResponse(
        status_code=503,
        content={"error": "Service Unavailable", "message": "The rental store could not be queried."},
    )
