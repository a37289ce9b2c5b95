from fastapi.responses import JSONResponse


def error_response(status_code: int, error: str, **extra) -> JSONResponse:
    """Failure envelope shared by every exception handler"""
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})
