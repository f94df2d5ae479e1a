"""Admin panel actions: students, promotion and announcements."""

from fastapi import APIRouter, Depends, Form

from study_dashboard import intents
from study_dashboard.controller import AppController
from study_dashboard.deps import redirect_home, require_admin

router = APIRouter()


@router.post("/students/select")
async def select_student(email: str = Form(...), controller: AppController = Depends(require_admin)):
    controller.dispatch(intents.SelectStudent(email=email))
    return redirect_home()


@router.post("/promote")
async def promote_user(email: str = Form(...), controller: AppController = Depends(require_admin)):
    # Denied and not-found outcomes are logged by the controller, not shown
    controller.dispatch(intents.PromoteUser(email=email))
    return redirect_home()


@router.post("/announcements")
async def save_announcement(content: str = Form(""), controller: AppController = Depends(require_admin)):
    controller.dispatch(intents.SaveAnnouncement(content=content))
    return redirect_home()


@router.post("/announcements/delete")
async def delete_announcement(announcement_id: str = Form(...), controller: AppController = Depends(require_admin)):
    controller.dispatch(intents.DeleteAnnouncement(announcement_id=announcement_id))
    return redirect_home()
