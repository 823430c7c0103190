from __future__ import annotations

from typing import Any

from pydantic import BaseModel, EmailStr, Field, ValidationError, model_validator
from pydantic_core import PydanticCustomError

from tracker.errors import ValidationFailed

__all__ = ["SignInForm", "SignUpForm", "validate_sign_in", "validate_sign_up"]

_MESSAGES = {
    ("email", "value_error"): "Invalid email address",
    ("password", "string_too_short"): "Password must be at least 6 characters",
}


class SignInForm(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class SignUpForm(SignInForm):
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self) -> "SignUpForm":
        if self.password != self.confirm_password:
            raise PydanticCustomError("password_mismatch", "Passwords don't match")
        return self


def validate_sign_in(candidate: Any) -> SignInForm:
    try:
        return SignInForm.model_validate(candidate)
    except ValidationError as exc:
        raise ValidationFailed.from_pydantic(exc, _MESSAGES) from exc


def validate_sign_up(candidate: Any) -> SignUpForm:
    try:
        return SignUpForm.model_validate(candidate)
    except ValidationError as exc:
        issues = ValidationFailed.from_pydantic(exc, _MESSAGES).issues
        # model-level errors carry no location; pin the mismatch to the confirmation field
        raise ValidationFailed(
            issue._replace(path="confirm_password") if not issue.path else issue
            for issue in issues
        ) from exc
