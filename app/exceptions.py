from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class AppException(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ValidationException(AppException):
    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenException(AppException):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundException(AppException):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str = "Entity"):
        super().__init__(f"{entity} not found")


class ConflictException(AppException):
    status_code = status.HTTP_409_CONFLICT


def get_user_exception():
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    return credentials_exception


def get_forbidden_exception():
    return ForbiddenException("You are not authorized to perform this function")


def to_object_id(value, entity: str = "Entity") -> ObjectId:
    """Parse a path/body id, treating malformed ids as unknown entities."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFoundException(entity)


async def app_exception_handler(request: Request, exc: AppException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
