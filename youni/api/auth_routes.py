from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from youni.auth.email_otp import consume_otp, generate_and_send_otp
from youni.auth.jwt_handler import create_access_token, verify_access_token
from youni.database.connection import get_db
from youni.database.models import User

router = APIRouter(prefix="/auth", tags=["auth"])

# auto_error=False: a missing header is a 401 like any other bad token.
bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Auth dependency
# ---------------------------------------------------------------------------

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the Bearer session token to an active User."""
    user_id = verify_access_token(credentials.credentials) if credentials else None
    if user_id is None:
        raise _unauthorized("Unauthorized")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive.")
    return user


def _ensure_active(user: User) -> None:
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account has been deactivated.",
        )


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------

class OTPRequestBody(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None


class OTPVerifyBody(BaseModel):
    email: EmailStr
    code: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/request-otp",
    response_model=MessageResponse,
    summary="Email a sign-in code",
    description=(
        "Creates the student account on first use (optionally with a display "
        "name), then e-mails a one-time code that replaces any earlier one."
    ),
)
def request_otp(body: OTPRequestBody, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email).first()

    if user is None:
        user = User(email=body.email, full_name=body.full_name)
        db.add(user)
        db.commit()
        db.refresh(user)
    elif body.full_name and not user.full_name:
        user.full_name = body.full_name
        db.commit()

    _ensure_active(user)

    if not generate_and_send_otp(db, user):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to send OTP email. Please try again later.",
        )
    return {"message": "OTP sent. Please check your email."}


@router.post(
    "/verify-otp",
    response_model=TokenResponse,
    summary="Trade a sign-in code for a session token",
)
def verify_otp_and_login(body: OTPVerifyBody, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account found for this email.",
        )
    _ensure_active(user)

    if not consume_otp(db, user.id, body.code):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired OTP.",
        )
    return {"access_token": create_access_token(user.id), "token_type": "bearer"}


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Tokens are stateless; the client discards its copy.",
)
def logout():
    return {"message": "Logged out successfully. Please discard your token."}
