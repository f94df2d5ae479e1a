"""Profile editing."""

import base64
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status

from study_dashboard import intents
from study_dashboard.config import settings
from study_dashboard.controller import AppController
from study_dashboard.deps import redirect_home, require_login
from study_dashboard.routers.views import render_view
from study_dashboard.utils import sanitize_text, validate_file_size

router = APIRouter()


def _clean(value: str) -> Optional[str]:
    return sanitize_text(value) or None


@router.post("")
async def update_profile(
    request: Request,
    first_name: str = Form(""),
    last_name: str = Form(""),
    birth_date: str = Form(""),
    nationality: str = Form(""),
    profile_picture: Optional[UploadFile] = File(None),
    controller: AppController = Depends(require_login),
):
    user = controller.state.current_user
    picture = user.profile_picture

    if profile_picture is not None and profile_picture.filename:
        content = await profile_picture.read()
        content_type = profile_picture.content_type or ""
        error = None
        if not content_type.startswith("image/"):
            error = "The profile picture must be an image."
        elif not validate_file_size(len(content), settings.MAX_MATERIAL_BYTES):
            error = f"The file {profile_picture.filename} is too large."
        if error:
            return render_view(request, controller, status_code=status.HTTP_400_BAD_REQUEST, error=error)
        picture = f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"

    updated = user.model_copy(
        update={
            "first_name": _clean(first_name),
            "last_name": _clean(last_name),
            "birth_date": birth_date.strip() or None,
            "nationality": _clean(nationality),
            "profile_picture": picture,
        }
    )
    controller.dispatch(intents.UpdateProfile(user=updated))
    return redirect_home()
