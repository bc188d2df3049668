from fastapi import status
from fastapi.responses import JSONResponse

from src.libs.result import Error


class ClientError(Exception):
    def __init__(self, base_error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.base_error = base_error
        self.status_code = status_code
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: Error):
        self.base_error = base_error
        super().__init__(base_error.message)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """Every error leaves the API as {"error": {"code", "message"}}"""
    return JSONResponse(
        status_code=status_code, content={"error": {"code": code, "message": message}}
    )
