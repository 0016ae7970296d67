from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Body, Depends, Path, Request, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from goal_tracker.auth import (
    Identity,
    create_access_token,
    get_current_identity,
    get_current_user,
    get_password_hash,
    revoke_token,
    verify_password,
)
from goal_tracker.config import Settings, get_settings, logger
from goal_tracker.errors import BadRequest, NotFound, Unauthorized, UserAlreadyExists
from goal_tracker.mailer import send_reset_email
from goal_tracker.models import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    UpdatePasswordRequest,
    User,
    UserCreate,
    UserLogin,
    UserResponse,
    UserWithToken,
    get_session,
)
from goal_tracker.reset_tokens import consume_reset_token, issue_reset_token

router = APIRouter(prefix="/api/users", tags=["Users"])


def find_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()


def user_with_token(user: User, settings: Settings) -> UserWithToken:
    return UserWithToken(
        id=user.id,
        name=user.name,
        email=user.email,
        last_login=user.last_login,
        created_at=user.created_at,
        token=create_access_token(user.id, settings),
    )


@router.post("/signup",
          summary="Sign up",
          description="Creates a new user account and returns it with an access token.",
          status_code=status.HTTP_201_CREATED,
          response_model=UserWithToken)
def signup(user_data: UserCreate = Body(..., description="User registration data"),
           session: Session = Depends(get_session),
           settings: Settings = Depends(get_settings)):
    """
    Create a new user account with password authentication.
    """
    if not user_data.name or not user_data.email or not user_data.password:
        raise BadRequest("Please fill in all fields")

    # Check if user already exists
    existing_user = find_user_by_email(session, user_data.email)
    if existing_user:
        raise UserAlreadyExists(f"{user_data.email} already exists")

    user = User(
        name=user_data.name,
        email=user_data.email,
        password_hash=get_password_hash(user_data.password)
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race with another signup for the same email
        session.rollback()
        raise UserAlreadyExists(f"{user_data.email} already exists")
    session.refresh(user)
    logger.info(f"Created user {user.id}")

    return user_with_token(user, settings)


@router.post("/login",
          summary="Login user",
          description="Authenticate user with email and password, returns the user and a JWT token.",
          response_model=UserWithToken)
def login(login_data: UserLogin = Body(..., description="User login credentials"),
          session: Session = Depends(get_session),
          settings: Settings = Depends(get_settings)):
    """
    Authenticate user and return JWT access token.
    """
    if not login_data.email or not login_data.password:
        raise BadRequest("Please fill in all fields")

    user = find_user_by_email(session, login_data.email)
    if not user:
        raise BadRequest("User with this email does not exist")
    if not verify_password(login_data.password, user.password_hash):
        raise Unauthorized("Password is incorrect")

    # Update last login
    user.last_login = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)

    return user_with_token(user, settings)


@router.get("/me",
         summary="Get current user",
         description="Get information about the currently authenticated user.",
         response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse(
        id=current_user.id,
        name=current_user.name,
        email=current_user.email,
        last_login=current_user.last_login,
        created_at=current_user.created_at
    )


@router.get("/logout",
         summary="Logout user",
         description="Revokes the access token used for this request.")
def logout(identity: Identity = Depends(get_current_identity),
           session: Session = Depends(get_session)):
    revoke_token(session, identity)
    return {"success": True, "message": "Logout successful"}


@router.post("/forgotpassword",
          summary="Forgot password",
          description="Issues a password reset token and sends the reset link to the user.")
def forgot_password(request: Request,
                    body: ForgotPasswordRequest = Body(...),
                    session: Session = Depends(get_session),
                    settings: Settings = Depends(get_settings)):
    """
    Issue a new reset token for the user, replacing any previous one.

    The reset link is returned in the response body. When ``SEND_EMAILS`` is
    enabled it is also mailed to the user, and a delivery failure results in
    a 500 even though the token has already been stored.
    """
    if not body.email:
        raise BadRequest("Please fill in all fields")

    user = find_user_by_email(session, body.email)
    if not user:
        raise NotFound("User with this email does not exist")

    raw_token = issue_reset_token(session, user.id)
    reset_url = str(request.url_for("reset_password", token=raw_token))

    if settings.SEND_EMAILS:
        send_reset_email(settings, user.email, user.name, reset_url)
        return {"success": True, "data": "Email sent", "link": reset_url}
    return {"success": True, "data": "Reset link created", "link": reset_url}


@router.post("/resetpassword/{token}",
          summary="Reset password",
          description="Sets a new password using a reset token from the reset link.",
          name="reset_password")
def reset_password(token: str = Path(..., description="Raw reset token from the reset link"),
                   body: ResetPasswordRequest = Body(...),
                   session: Session = Depends(get_session),
                   settings: Settings = Depends(get_settings)):
    if not body.password:
        raise BadRequest("Please fill in all fields")

    try:
        user_id = consume_reset_token(session, token, settings.RESET_TOKEN_EXPIRE_SECONDS)
    except NotFound:
        raise BadRequest("Invalid token")

    user = session.get(User, user_id)
    if not user:
        raise BadRequest("Invalid token")

    user.password_hash = get_password_hash(body.password)
    session.add(user)
    session.commit()
    logger.info(f"Password reset for user {user.id}")

    return {"success": True, "message": "Password reset successful"}


@router.post("/updatepassword",
          summary="Update password",
          description="Changes the password of the authenticated user after checking the old one.")
def update_password(body: UpdatePasswordRequest = Body(...),
                    current_user: User = Depends(get_current_user),
                    session: Session = Depends(get_session)):
    if not body.oldpassword or not body.newpassword:
        raise BadRequest("Please fill in all fields")

    # Re-read the stored hash before comparing
    session.refresh(current_user)
    if not verify_password(body.oldpassword, current_user.password_hash):
        raise Unauthorized("Old password is incorrect")

    current_user.password_hash = get_password_hash(body.newpassword)
    session.add(current_user)
    session.commit()
    logger.info(f"Password updated for user {current_user.id}")

    return {"success": True, "message": "Password updated"}
