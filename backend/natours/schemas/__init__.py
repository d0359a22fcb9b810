from .auth import (
    ForgotPasswordPayload,
    LoginPayload,
    ResetPasswordPayload,
    SignupPayload,
    UpdatePasswordPayload,
    UserOut,
)
from .tour import TourCreate, TourUpdate

__all__ = [
    "ForgotPasswordPayload",
    "LoginPayload",
    "ResetPasswordPayload",
    "SignupPayload",
    "UpdatePasswordPayload",
    "UserOut",
    "TourCreate",
    "TourUpdate",
]
