from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

from fastapi import HTTPException, status

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    # store update matched zero documents after the read said the target exists
    CONFLICT = "conflict"
    # store update matched but changed nothing
    NO_CHANGE = "no_change"


_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_404_NOT_FOUND,
    ErrorKind.NO_CHANGE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    message: str = ""


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self.kind]


Result = Union[Ok[T], Err]


def unwrap(result: "Result[T]") -> Ok[T]:
    """Turn an Err into the matching HTTPException; hand back the Ok untouched."""
    if isinstance(result, Err):
        raise HTTPException(status_code=result.status_code, detail=result.message)
    return result
