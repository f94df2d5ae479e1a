"""Exam simulation: open the view, generate questions, submit answers."""

from fastapi import APIRouter, Depends, Request, status

from study_dashboard import intents
from study_dashboard.controller import AppController
from study_dashboard.deps import get_content_service, redirect_home, require_login
from study_dashboard.routers.views import render_view
from study_dashboard.services.content_service import ContentService
from study_dashboard.services.exam_simulator import ExamNotReadyError

router = APIRouter()


@router.post("/open")
async def open_exam(controller: AppController = Depends(require_login)):
    controller.dispatch(intents.StartExam())
    return redirect_home()


@router.post("/begin")
async def begin_exam(
    controller: AppController = Depends(require_login),
    content_service: ContentService = Depends(get_content_service),
):
    exam = controller.state.exam
    if exam is not None:
        await exam.begin(content_service)
    return redirect_home()


@router.post("/submit")
async def submit_exam(request: Request, controller: AppController = Depends(require_login)):
    """Record the chosen options (fields ``q<index>`` = option index) and
    hand the scored attempt to the controller."""
    exam = controller.state.exam
    if exam is None:
        return redirect_home()

    form = await request.form()
    for index, question in enumerate(exam.questions):
        choice = form.get(f"q{index}")
        if choice is None:
            continue
        try:
            option_index = int(choice)
            if option_index < 0:
                continue
            exam.select_answer(index, question.options[option_index])
        except (TypeError, ValueError, IndexError):
            continue

    try:
        attempt = exam.submit()
    except ExamNotReadyError as exc:
        return render_view(request, controller, status_code=status.HTTP_400_BAD_REQUEST, error=str(exc))

    controller.dispatch(intents.CompleteExam(attempt=attempt))
    return redirect_home()


@router.post("/review")
async def go_to_review(controller: AppController = Depends(require_login)):
    controller.dispatch(intents.GoToReview())
    return redirect_home()
