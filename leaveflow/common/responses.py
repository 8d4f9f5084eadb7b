"""Response envelope shared by every endpoint: ``{success, message, data}``."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import BaseModel, PlainSerializer

T = TypeVar("T")

# Decimal day counts travel as JSON numbers, not strings.
JsonDecimal = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
