"""Shared FastAPI dependencies: the client's controller and the content service."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from study_dashboard.auth_utils import create_client_id
from study_dashboard.controller import AppController, ControllerRegistry
from study_dashboard.logging_config import client_id_var
from study_dashboard.services.content_service import ContentService

CLIENT_ID_KEY = "client_id"


async def get_registry(request: Request) -> ControllerRegistry:
    return request.app.state.registry


async def get_content_service(request: Request) -> ContentService:
    return request.app.state.content_service


async def get_controller(request: Request, registry: ControllerRegistry = Depends(get_registry)) -> AppController:
    """Return the controller of the browser that sent the request.

    A browser without a client id in its session cookie gets a new one,
    and with it a new, empty store namespace.
    """
    client_id = request.session.get(CLIENT_ID_KEY)
    if not client_id:
        client_id = create_client_id()
        request.session[CLIENT_ID_KEY] = client_id
    client_id_var.set(client_id)
    return registry.get(client_id)


async def require_login(controller: AppController = Depends(get_controller)) -> AppController:
    """Ensure that a user is logged in; otherwise go back to the auth view."""
    if controller.state.current_user is None:
        raise HTTPException(status_code=303, headers={"Location": "/"})
    return controller


async def require_admin(controller: AppController = Depends(require_login)) -> AppController:
    if not controller.state.current_user.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden")
    return controller


def redirect_home() -> RedirectResponse:
    """Post/redirect/get back to the single page."""
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
