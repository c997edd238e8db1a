"""Response envelopes shared by every route.

Success: {data, timestamp, source, message?, dataStatus?}
Error:   {error, timestamp, source, details?}
"""
from datetime import datetime, timezone
from typing import Any, Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from config import settings

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,X-Amz-Date,Authorization,X-Api-Key,X-Amz-Security-Token",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_response(status_code: int, data: Any, message: Optional[str] = None, data_status: Optional[str] = None) -> JSONResponse:
    body = {"data": jsonable_encoder(data), "timestamp": _timestamp(), "source": settings.API_SOURCE}
    if message:
        body["message"] = message
    if data_status:
        body["dataStatus"] = data_status
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


def create_error_response(status_code: int, error: str, details: Any = None) -> JSONResponse:
    body = {"error": error, "timestamp": _timestamp(), "source": settings.API_SOURCE}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)
