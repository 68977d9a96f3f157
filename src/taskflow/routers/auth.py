from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from ..auth import LoginController
from ..schemas import CaptchaFailure, CaptchaToken, Credentials, LoginStatusOut, ModeRequest

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)

# Outcome status -> HTTP status for rejected submissions
_REJECTED = {
    "blocked": status.HTTP_409_CONFLICT,
    "invalid": status.HTTP_400_BAD_REQUEST,
    "captcha_required": status.HTTP_400_BAD_REQUEST,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    "error": status.HTTP_401_UNAUTHORIZED,
}


class SubmitOut(BaseModel):
    status: str
    message: Optional[str] = None
    access_token: Optional[str] = None


def get_login(request: Request) -> LoginController:
    """
    Dependency returning the app's login controller.
    """
    return request.app.state.login


def _status(login: LoginController) -> LoginStatusOut:
    return LoginStatusOut(
        mode=login.mode,
        show_form=login.show_form,
        loading=login.loading,
        submit_enabled=login.submit_enabled,
        has_captcha_token=login.captcha.valid,
        error=login.error,
        success_message=login.success_message,
    )


# PUBLIC_INTERFACE
@router.get("/status", response_model=LoginStatusOut, summary="Login Form Status")
def get_status(login: LoginController = Depends(get_login)) -> LoginStatusOut:
    """
    Current form state, including whether the submit control is enabled.
    """
    return _status(login)


# PUBLIC_INTERFACE
@router.post("/captcha/verify", response_model=LoginStatusOut, summary="Captcha Solved")
def captcha_verify(payload: CaptchaToken, login: LoginController = Depends(get_login)) -> LoginStatusOut:
    login.captcha_verified(payload.token)
    return _status(login)


# PUBLIC_INTERFACE
@router.post("/captcha/expire", response_model=LoginStatusOut, summary="Captcha Expired")
def captcha_expire(login: LoginController = Depends(get_login)) -> LoginStatusOut:
    login.captcha_expired()
    return _status(login)


# PUBLIC_INTERFACE
@router.post("/captcha/error", response_model=LoginStatusOut, summary="Captcha Error")
def captcha_error(payload: CaptchaFailure, login: LoginController = Depends(get_login)) -> LoginStatusOut:
    login.captcha_failed(payload.message)
    return _status(login)


# PUBLIC_INTERFACE
@router.post("/mode", response_model=LoginStatusOut, summary="Switch Form Mode")
def switch_mode(payload: ModeRequest, login: LoginController = Depends(get_login)) -> LoginStatusOut:
    login.switch_mode(payload.mode)
    return _status(login)


# PUBLIC_INTERFACE
@router.post("/open", response_model=LoginStatusOut, summary="Show Form")
def open_form(login: LoginController = Depends(get_login)) -> LoginStatusOut:
    login.open_form()
    return _status(login)


# PUBLIC_INTERFACE
@router.post("/cancel", response_model=LoginStatusOut, summary="Cancel Form")
def cancel(login: LoginController = Depends(get_login)) -> LoginStatusOut:
    login.cancel()
    return _status(login)


# PUBLIC_INTERFACE
@router.post(
    "/submit",
    response_model=SubmitOut,
    summary="Submit Login Form",
    description="Sign in or sign up, depending on the current form mode.",
    responses={
        400: {"description": "Missing credentials or captcha"},
        401: {"description": "Rejected by the auth backend"},
        409: {"description": "A submission is in flight or the form is cooling down"},
        429: {"description": "Too many attempts for this email"},
    },
)
async def submit(payload: Credentials, login: LoginController = Depends(get_login)) -> SubmitOut:
    outcome = await login.submit(payload.email, payload.password)
    if not outcome.ok:
        raise HTTPException(status_code=_REJECTED[outcome.status], detail=outcome.message)
    token = login.session.access_token if outcome.status == "signed_in" and login.session else None
    return SubmitOut(status=outcome.status, message=outcome.message, access_token=token)
