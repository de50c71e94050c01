"""Uniform response envelopes."""

from typing import Any, Generic, List, TypeVar

from pydantic import Field, model_validator

from vidtube.models.base import CamelModel

T = TypeVar("T")


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope: ``{statusCode, data, message, success}``.

    ``success`` is derived from ``status_code`` and cannot disagree with it.
    """

    status_code: int = 200
    data: T
    message: str = "Success"
    success: bool = True

    @model_validator(mode="after")
    def success_follows_status(self) -> "ApiResponse":
        self.success = self.status_code < 400
        return self


class ErrorResponse(CamelModel):
    """Failure envelope: ``{statusCode, message, success: false, errors}``."""

    status_code: int
    message: str
    success: bool = False
    errors: List[Any] = Field(default_factory=list)
