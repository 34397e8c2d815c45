"""
Pydantic schemas for submitted forms.
"""

from __future__ import annotations

import datetime
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from hobbyboard.errors import ValidationError

USER_REQUIRED_MESSAGE = "Username and password are required."
USER_TOO_LONG_MESSAGE = "Username and password must be 255 characters or fewer."
HOBBY_REQUIRED_MESSAGE = "Hobby description and date learned are required."
HOBBY_TOO_LONG_MESSAGE = "Hobby description must be 50 characters or fewer."
HOBBY_BAD_DATE_MESSAGE = "Date learned must be a valid date (YYYY-MM-DD)."


class UserForm(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)

    @classmethod
    def from_form(cls, username: Optional[str], password: Optional[str]) -> "UserForm":
        if not username or not password:
            raise ValidationError(USER_REQUIRED_MESSAGE)
        try:
            return cls(username=username, password=password)
        except PydanticValidationError as exc:
            raise ValidationError(USER_TOO_LONG_MESSAGE) from exc


class HobbyForm(BaseModel):
    hobby_description: str = Field(..., min_length=1, max_length=50)
    date_learned: datetime.date

    @classmethod
    def from_form(
        cls, hobby_description: Optional[str], date_learned: Optional[str]
    ) -> "HobbyForm":
        description = (hobby_description or "").strip()
        if not description or not date_learned:
            raise ValidationError(HOBBY_REQUIRED_MESSAGE)
        try:
            return cls(hobby_description=description, date_learned=date_learned)
        except PydanticValidationError as exc:
            fields = {err["loc"][0] for err in exc.errors() if err.get("loc")}
            if "hobby_description" in fields:
                raise ValidationError(HOBBY_TOO_LONG_MESSAGE) from exc
            raise ValidationError(HOBBY_BAD_DATE_MESSAGE) from exc
