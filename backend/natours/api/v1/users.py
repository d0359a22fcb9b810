from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import logging

from natours.api.deps import get_current_user, get_db, get_settings, restrict_to
from natours.core.config import Settings
from natours.core.errors import AppError, ErrorKind
from natours.models import User, UserRole
from natours.schemas import (
    ForgotPasswordPayload,
    LoginPayload,
    ResetPasswordPayload,
    SignupPayload,
    UpdatePasswordPayload,
    UserOut,
)
from natours.services import auth_service
from natours.services import email as email_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


def _user_payload(user: User) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


# ============= Authentication =============

@router.post("/signup", status_code=201)
def signup(
    payload: SignupPayload,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user, token = auth_service.signup(db, settings, payload)
    return {"status": "success", "token": token, "data": {"user": _user_payload(user)}}


@router.post("/login")
def login(
    payload: LoginPayload,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    token = auth_service.login(db, settings, payload)
    return {"status": "success", "token": token}


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordPayload,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user, token = auth_service.forgot_password(db, settings, payload.email)

    reset_url = f"{str(request.base_url).rstrip('/')}/api/v1/users/reset-password/{token}"
    message = (
        "Forgot your password? Submit a PATCH request with your new password and "
        f"password_confirm to: {reset_url}\n"
        "If you didn't forget your password, please ignore this email!"
    )

    try:
        email_service.send_email(
            settings,
            recipient=user.email,
            subject=f"Your password reset token (valid for {settings.PASSWORD_RESET_EXPIRES_MINUTES} min)",
            body=message,
        )
    except OSError as e:
        logger.error(f"❌ Could not deliver reset email to user {user.id}: {e}")
        auth_service.clear_password_reset(db, user)
        raise AppError(ErrorKind.INTERNAL, "There was an error sending the email. Try again later!")

    return {"status": "success", "message": "Token sent to email!"}


@router.patch("/reset-password/{token}")
def reset_password(
    token: str,
    payload: ResetPasswordPayload,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user, new_token = auth_service.reset_password(db, settings, token, payload)
    return {"status": "success", "token": new_token}


@router.patch("/update-my-password")
def update_my_password(
    payload: UpdatePasswordPayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    token = auth_service.update_password(db, settings, user, payload)
    return {"status": "success", "token": token}


# ============= Administration =============

@router.get("", dependencies=[Depends(restrict_to(UserRole.ADMIN))])
def get_all_users(db: Session = Depends(get_db)):
    users = db.query(User).order_by(User.created_at.desc()).all()
    return {
        "status": "success",
        "results": len(users),
        "data": {"users": [_user_payload(u) for u in users]},
    }


@router.get("/{user_id}", dependencies=[Depends(restrict_to(UserRole.ADMIN))])
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if user is None:
        raise AppError.not_found("No user found with that ID")
    return {"status": "success", "data": {"user": _user_payload(user)}}
