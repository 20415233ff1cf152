from typing import Any, Generic, Optional, TypeVar

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Uniform response wrapper returned by every post endpoint"""
    success: bool
    message: str
    data: Optional[T] = None


def envelope(success: bool, message: str, data: Any = None) -> Envelope:
    return Envelope(success=success, message=message, data=data)


def error_response(status_code: int, message: str) -> JSONResponse:
    body = envelope(False, message, None)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
