from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class StudyKitError(Exception):
    status_code = 500

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__


class ExtractionError(StudyKitError):
    """PDF could not be parsed or carried no usable text."""
    status_code = 422


class GenerationError(StudyKitError):
    """LLM call or response parsing failed for one artifact."""
    status_code = 502

    def __init__(self, operation: str, detail: str = ""):
        super().__init__(f"{operation}: {detail}" if detail else operation)
        self.operation = operation


class ValidationError(StudyKitError):
    status_code = 400

    def __init__(self, detail: str, status_code: int | None = None):
        super().__init__(detail)
        if status_code is not None:
            self.status_code = status_code


class AuthorizationError(StudyKitError):
    status_code = 403


class NotFoundError(StudyKitError):
    status_code = 404


class InvalidStatusTransition(StudyKitError):
    status_code = 409

    def __init__(self, current: str, requested: str):
        super().__init__(f"cannot move document from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


async def _studykit_error_handler(request: Request, exc: StudyKitError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StudyKitError, _studykit_error_handler)
