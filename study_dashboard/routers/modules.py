"""Study modules: detail view, generated summary, editor and deletion."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse

from study_dashboard import intents
from study_dashboard.controller import AppController
from study_dashboard.deps import get_content_service, redirect_home, require_admin, require_login
from study_dashboard.icons import DEFAULT_ICON
from study_dashboard.services.content_format import segment_content
from study_dashboard.services.content_service import ContentService, ContentServiceError
from study_dashboard.services.module_editor import DraftValidationError
from study_dashboard.templating import templates
from study_dashboard.utils import sanitize_text

router = APIRouter()

REMOVE_PREFIX = "remove:"


@router.post("/select")
async def select_module(module_id: int = Form(...), controller: AppController = Depends(require_login)):
    controller.dispatch(intents.SelectModule(module_id=module_id))
    return redirect_home()


@router.get("/content", response_class=HTMLResponse)
async def module_content(
    request: Request,
    controller: AppController = Depends(require_login),
    content_service: ContentService = Depends(get_content_service),
):
    """Generated summary of the selected module, as an HTML fragment.

    The module page requests this right after it loads; there is no retry.
    """
    module = controller.state.selected_module
    if module is None:
        return HTMLResponse("")

    error = None
    blocks = []
    try:
        text = await content_service.generate_module_content(module.title)
    except ContentServiceError as exc:
        error = str(exc)
    else:
        blocks = segment_content(sanitize_text(text))

    return templates.TemplateResponse(
        request, "partials/module_content.html", {"blocks": blocks, "error": error}
    )


@router.post("/edit")
async def edit_module(module_id: Optional[int] = Form(None), controller: AppController = Depends(require_admin)):
    controller.dispatch(intents.EditModule(module_id=module_id))
    return redirect_home()


@router.post("/editor")
async def module_editor(
    action: str = Form("save"),
    title: str = Form(""),
    description: str = Form(""),
    icon_name: str = Form(DEFAULT_ICON),
    video_url: str = Form(""),
    files: Optional[List[UploadFile]] = File(None),
    controller: AppController = Depends(require_admin),
):
    """Every editor button posts the whole form; ``action`` says which one:
    ``upload``, ``remove:<index>`` or ``save``."""
    draft = controller.state.module_draft
    if draft is None:
        return redirect_home()

    draft.update_fields(title, description, icon_name, video_url)
    rejected = await draft.add_files(files or [])

    if action.startswith(REMOVE_PREFIX):
        try:
            draft.remove_material(int(action[len(REMOVE_PREFIX):]))
        except ValueError:
            pass
    elif action == "save" and not rejected:
        try:
            module = draft.build(controller.now_ms())
        except DraftValidationError as exc:
            draft.errors = [str(exc)]
        else:
            controller.dispatch(intents.SaveModule(module=module))

    return redirect_home()


@router.post("/delete")
async def delete_module(
    module_id: int = Form(...),
    confirmed: str = Form(""),
    controller: AppController = Depends(require_admin),
):
    # The page asks for confirmation before it sets confirmed=yes
    controller.dispatch(intents.DeleteModule(module_id=module_id, confirmed=confirmed == "yes"))
    return redirect_home()
