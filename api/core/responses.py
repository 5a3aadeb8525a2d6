"""
Response envelope shared by every route.
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success(data: Any) -> dict:
    return {"data": data, "status": "success"}


def message(text: str) -> dict:
    return {"message": text, "status": "success"}


def error(status_code: int, text: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"message": text, "status": "error"}),
    )
