"""The single page and the navigation intents shared by several views."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from study_dashboard import intents
from study_dashboard.controller import AppController
from study_dashboard.deps import get_controller, redirect_home, require_login
from study_dashboard.templating import templates

router = APIRouter()

VIEW_TEMPLATES = {
    "auth": "views/auth.html",
    "dashboard": "views/dashboard.html",
    "module": "views/module_detail.html",
    "exam": "views/exam.html",
    "review": "views/review.html",
    "editProfile": "views/edit_profile.html",
    "studentDetail": "views/student_detail.html",
    "editModule": "views/edit_module.html",
}


def render_view(request: Request, controller: AppController, status_code: int = 200, **extra):
    """Render whatever view the controller currently names."""
    view = controller.view_name
    if view is None:
        # Not ready yet, or a view whose selection is missing
        return HTMLResponse("", status_code=status_code)

    context = {
        "state": controller.state,
        "user": controller.state.current_user,
        "view": view,
        "error": None,
        **extra,
    }
    return templates.TemplateResponse(request, VIEW_TEMPLATES[view], context, status_code=status_code)


@router.get("/")
async def index(request: Request, controller: AppController = Depends(get_controller)):
    return render_view(request, controller)


@router.post("/dashboard")
async def go_to_dashboard(controller: AppController = Depends(require_login)):
    controller.dispatch(intents.GoToDashboard())
    return redirect_home()


@router.post("/profile/edit")
async def go_to_edit_profile(controller: AppController = Depends(require_login)):
    controller.dispatch(intents.EditProfile())
    return redirect_home()


@router.get("/health")
async def health_check():
    return {"status": "healthy"}
