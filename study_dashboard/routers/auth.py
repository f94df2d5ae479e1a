"""Login, registration and logout."""

from fastapi import APIRouter, Depends, Form, Request, status

from study_dashboard import intents
from study_dashboard.controller import AppController, AuthError
from study_dashboard.deps import get_controller, redirect_home
from study_dashboard.routers.views import render_view

router = APIRouter()


def _auth_failed(request: Request, controller: AppController, mode: str, email: str, exc: AuthError):
    return render_view(
        request,
        controller,
        status_code=status.HTTP_400_BAD_REQUEST,
        error=str(exc),
        mode=mode,
        form={"email": email},
    )


@router.post("/login")
async def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    controller: AppController = Depends(get_controller),
):
    try:
        controller.dispatch(intents.Login(email=email, password=password))
    except AuthError as exc:
        return _auth_failed(request, controller, "login", email, exc)
    return redirect_home()


@router.post("/register")
async def register(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    controller: AppController = Depends(get_controller),
):
    if password != confirm_password:
        return _auth_failed(request, controller, "register", email, AuthError("Passwords do not match."))
    try:
        controller.dispatch(intents.Register(email=email, password=password))
    except AuthError as exc:
        return _auth_failed(request, controller, "register", email, exc)
    return redirect_home()


@router.post("/logout")
async def logout(controller: AppController = Depends(get_controller)):
    controller.dispatch(intents.Logout())
    return redirect_home()
