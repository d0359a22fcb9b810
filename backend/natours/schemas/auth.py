from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from natours.models import UserRole

PASSWORD_MIN_LENGTH = 8


class _PasswordPair(BaseModel):
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    password_confirm: str = Field(validation_alias=AliasChoices("password_confirm", "passwordConfirm"))

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Passwords are not the same!")
        return self


class SignupPayload(_PasswordPair):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please tell us your name")
        return value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Jonas Schmedtmann",
                "email": "hello@jonas.io",
                "password": "pass1234",
                "password_confirm": "pass1234",
            }
        }
    )


class LoginPayload(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ForgotPasswordPayload(BaseModel):
    email: str = Field(min_length=1)


class ResetPasswordPayload(_PasswordPair):
    pass


class UpdatePasswordPayload(_PasswordPair):
    password_current: str = Field(
        min_length=1,
        validation_alias=AliasChoices("password_current", "passwordCurrent"),
    )


class UserOut(BaseModel):
    """Public view of a user. Hash and reset fields are never part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    photo: Optional[str] = None
    role: UserRole
