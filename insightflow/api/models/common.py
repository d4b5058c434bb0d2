"""Shared API model pieces."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, PlainSerializer

# ISO 8601 with Z suffix
DateTimeWithZ = Annotated[
    datetime,
    PlainSerializer(
        lambda v: v.isoformat().replace("+00:00", "Z") if v else None, return_type=str
    ),
]


class ProblemResponse(BaseModel):
    """RFC 7807 problem document."""

    type: str = Field(..., description="Error type URI")
    title: str = Field(..., description="Short summary")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human-readable explanation")
    instance: str = Field(..., description="Request URL")
    retryable: bool | None = Field(
        default=None, description="Set for completion service failures"
    )
