"""
API v1 routes.

Defines REST endpoints for registration, email verification, login and
password management. Route functions are plain ``def`` so FastAPI runs
them in its threadpool; the DNS, deliverability and SMTP calls they make
block.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.api.dependencies import (
    NOT_AUTHORIZED,
    SESSION_COOKIE,
    get_authentication_service,
    get_current_account,
    get_registration_service,
)
from src.api.models import (
    AccountResponse,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
    UpdatePasswordRequest,
    VerifyCodeRequest,
)
from src.config.settings import Settings, get_settings
from src.domain.authentication import AuthenticationService
from src.domain.exceptions import (
    AlreadyVerified,
    EmailAlreadyRegistered,
    InvalidCredentials,
    NotificationError,
    NotificationFailed,
    TokenInvalidOrExpired,
    ValidationRejected,
)
from src.domain.ports import Account, RegistrationStage
from src.domain.registration import RegistrationService

router = APIRouter(prefix="/auth", tags=["v1"])

EMAIL_NOT_SENT = "Email could not be sent"
INVALID_TOKEN = "Invalid or expired token"


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    """Attach the session token as an HTTP-only cookie, secure in production."""
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=settings.jwt_cookie_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


@router.post(
    "/register",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Email rejected by validation"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        502: {"model": ErrorResponse, "description": "Verification email could not be sent"},
        422: {"description": "Validation error"},
    },
    summary="Register a new account",
    description="Validate the email, create an unverified account and send a "
    "verification link. In development mode the account is verified immediately.",
)
def register(
    request_data: RegisterRequest,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
    settings: Settings = Depends(get_settings),
) -> SessionResponse:
    try:
        outcome = service.register(
            request_data.name,
            request_data.email,
            request_data.password,
            request_data.account_kind,
        )
    except ValidationRejected as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason) from None
    except EmailAlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Email already registered"
        ) from None
    except NotificationFailed:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=EMAIL_NOT_SENT) from None

    if outcome.stage == RegistrationStage.DEV_BYPASS_VERIFIED:
        message = "User registered and auto-verified (Development Mode)"
    else:
        message = "User registered! Please check your email to verify your account"

    set_session_cookie(response, outcome.session_token, settings)
    return SessionResponse(
        message=message,
        token=outcome.session_token,
        user=AccountResponse.from_account(outcome.account),
    )


@router.post(
    "/login",
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    response: Response,
    service: AuthenticationService = Depends(get_authentication_service),
    settings: Settings = Depends(get_settings),
) -> SessionResponse:
    try:
        session = service.login(request_data.email, request_data.password)
    except InvalidCredentials:
        # Same answer for unknown email and wrong password
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        ) from None

    set_session_cookie(response, session.session_token, settings)
    return SessionResponse(
        message="Logged in",
        token=session.session_token,
        user=AccountResponse.from_account(session.account),
    )


@router.get(
    "/me",
    response_model=AccountResponse,
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid session"}},
    summary="Get the current account",
)
def me(account: Account = Depends(get_current_account)) -> AccountResponse:
    return AccountResponse.from_account(account)


@router.get(
    "/verify-email/{token}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": INVALID_TOKEN}},
    summary="Verify email with the emailed link token",
)
def verify_email_link(
    token: str,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    try:
        service.verify_email(token)
    except TokenInvalidOrExpired:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_TOKEN) from None
    return MessageResponse(message="Email verified successfully")


@router.post(
    "/verify-email",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": INVALID_TOKEN}},
    summary="Verify email with a 6-digit code",
)
def verify_email_code(
    request_data: VerifyCodeRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    try:
        service.verify_email_code(request_data.email, request_data.code)
    except TokenInvalidOrExpired:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_TOKEN) from None
    return MessageResponse(message="Email verified successfully")


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Email already verified"},
        401: {"model": ErrorResponse, "description": "Missing or invalid session"},
        502: {"model": ErrorResponse, "description": EMAIL_NOT_SENT},
    },
    summary="Send a new 6-digit verification code",
)
def resend_verification(
    account: Account = Depends(get_current_account),
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    try:
        service.resend_verification(account.id)
    except AlreadyVerified:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email already verified"
        ) from None
    except TokenInvalidOrExpired:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHORIZED) from None
    except NotificationFailed:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=EMAIL_NOT_SENT) from None
    return MessageResponse(message="Verification email sent")


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    responses={502: {"model": ErrorResponse, "description": EMAIL_NOT_SENT}},
    summary="Request a password reset link",
)
def forgot_password(
    request_data: ForgotPasswordRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> MessageResponse:
    try:
        service.request_password_reset(request_data.email)
    except NotificationError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=EMAIL_NOT_SENT) from None
    return MessageResponse(
        message="If the email is registered, a password reset link has been sent"
    )


@router.put(
    "/reset-password/{token}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": INVALID_TOKEN}},
    summary="Set a new password with a reset token",
)
def reset_password(
    token: str,
    request_data: ResetPasswordRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> MessageResponse:
    try:
        service.reset_password(token, request_data.password)
    except TokenInvalidOrExpired:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_TOKEN) from None
    return MessageResponse(message="Password reset successful")


@router.put(
    "/update-password",
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse, "description": "Current password is incorrect"}},
    summary="Change password for the current account",
)
def update_password(
    request_data: UpdatePasswordRequest,
    response: Response,
    account: Account = Depends(get_current_account),
    service: AuthenticationService = Depends(get_authentication_service),
    settings: Settings = Depends(get_settings),
) -> SessionResponse:
    try:
        session = service.update_password(
            account.id, request_data.current_password, request_data.new_password
        )
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect"
        ) from None

    set_session_cookie(response, session.session_token, settings)
    return SessionResponse(
        message="Password updated",
        token=session.session_token,
        user=AccountResponse.from_account(session.account),
    )


@router.get("/logout", response_model=MessageResponse, summary="Clear the session cookie")
def logout(response: Response) -> MessageResponse:
    response.set_cookie(key=SESSION_COOKIE, value="none", max_age=10, httponly=True)
    return MessageResponse(message="User logged out successfully")
