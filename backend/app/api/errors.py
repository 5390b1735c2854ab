"""
Error envelope shared by all routers:

    {"detail": {"error": {"code": "NIGHT_NOT_FOUND", "message": "..."}}}
"""
from fastapi import HTTPException


def error_detail(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


def api_error(status_code: int, code: str, exc: Exception | str) -> HTTPException:
    return HTTPException(status_code=status_code, detail=error_detail(code, str(exc)))
