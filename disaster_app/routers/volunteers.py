import logging
from typing import List

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from ..db import SessionDep
from ..models import ROLE_USER, ROLE_VOLUNTEER, User, Volunteer, VolunteerTask
from ..schemas import VolunteerCreate, VolunteerTaskCreate
from ..sessions import USER_ROLE, session_store
from ..templating import render
from ..validation import FORM_ERRORS, add_error, errors_from_validation, read_form
from .auth import CurrentSessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["volunteers"])

ALREADY_VOLUNTEER = "You are already registered as a volunteer."


def _volunteer_choices(session: SessionDep) -> List[dict]:
    stmt = (
        select(Volunteer, User.full_name)
        .join(User, User.id == Volunteer.user_id)
        .order_by(Volunteer.id)
    )
    rows = session.exec(stmt).all()
    return [
        {"id": volunteer.id, "name": full_name, "skills": volunteer.skills}
        for volunteer, full_name in rows
    ]


def _render_signup(request: Request, current: dict, form_data: dict, errors: dict, status_code: int = 200):
    return render(
        request,
        "volunteer_signup.html",
        current,
        status_code=status_code,
        form_data=form_data,
        user_id=current["user_id"],
        errors=errors,
    )


@router.get("/volunteers/new", response_class=HTMLResponse)
def volunteer_signup_page(request: Request, current: CurrentSessionDep):
    return _render_signup(request, current, {"user_id": current["user_id"]}, {})


@router.post("/volunteers/new")
async def volunteer_signup(
    request: Request,
    session: SessionDep,
    current: CurrentSessionDep,
):
    """
    Turn the logged-in user into a volunteer.

    The profile is always attached to the session's user. A user can hold
    only one volunteer profile.
    """
    user_id = current["user_id"]
    form = await request.form()
    form_data = read_form(form, ("skills", "availability"))

    try:
        volunteer_in = VolunteerCreate(**form_data)
    except ValidationError as exc:
        return _render_signup(
            request, current, form_data, errors_from_validation(exc), status.HTTP_400_BAD_REQUEST
        )

    existing = session.exec(
        select(Volunteer).where(Volunteer.user_id == user_id)
    ).first()
    if existing:
        logger.info("User %s tried to register as a volunteer twice", user_id)
        return _render_signup(
            request,
            current,
            form_data,
            add_error({}, FORM_ERRORS, ALREADY_VOLUNTEER),
            status.HTTP_400_BAD_REQUEST,
        )

    volunteer = Volunteer(
        user_id=user_id,
        skills=volunteer_in.skills,
        availability=volunteer_in.availability,
    )
    session.add(volunteer)

    # Plain users become volunteers; admins keep their role
    user = session.get(User, user_id)
    promoted = user is not None and user.role == ROLE_USER
    if promoted:
        user.role = ROLE_VOLUNTEER
        session.add(user)

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        return _render_signup(
            request,
            current,
            form_data,
            add_error({}, FORM_ERRORS, ALREADY_VOLUNTEER),
            status.HTTP_400_BAD_REQUEST,
        )
    session.refresh(volunteer)

    if promoted:
        session_store.update(current["token"], **{USER_ROLE: ROLE_VOLUNTEER})
    logger.info("User %s registered as volunteer %s", user_id, volunteer.id)
    return RedirectResponse(url="/user", status_code=303)


@router.get("/volunteer-tasks/new", response_class=HTMLResponse)
def volunteer_task_page(
    request: Request,
    session: SessionDep,
    current: CurrentSessionDep,
):
    return render(
        request,
        "volunteer_task.html",
        current,
        form_data={"status": "Open"},
        volunteers=_volunteer_choices(session),
        errors={},
    )


@router.post("/volunteer-tasks/new")
async def create_volunteer_task(
    request: Request,
    session: SessionDep,
    current: CurrentSessionDep,
):
    """
    Create a volunteer task. An assignee of 0 (or none) leaves it unassigned.
    """
    form = await request.form()
    form_data = read_form(form, ("name", "description", "status", "assigned_to"))

    errors = {}
    try:
        task_in = VolunteerTaskCreate(**form_data)
    except ValidationError as exc:
        errors = errors_from_validation(exc)
    else:
        if task_in.assigned_to is not None and session.get(Volunteer, task_in.assigned_to) is None:
            add_error(errors, "assigned_to", "No volunteer with that id.")

    if errors:
        return render(
            request,
            "volunteer_task.html",
            current,
            status_code=status.HTTP_400_BAD_REQUEST,
            form_data=form_data,
            volunteers=_volunteer_choices(session),
            errors=errors,
        )

    task = VolunteerTask(
        name=task_in.name,
        description=task_in.description,
        status=task_in.status,
        assigned_to=task_in.assigned_to,
    )
    session.add(task)
    session.commit()
    session.refresh(task)

    logger.info("Volunteer task %s created by user %s", task.id, current["user_id"])
    return RedirectResponse(url="/volunteer", status_code=303)


@router.post("/volunteer-tasks/{task_id}/complete")
def complete_volunteer_task(
    task_id: int,
    session: SessionDep,
    current: CurrentSessionDep,
):
    task = session.get(VolunteerTask, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")

    volunteer = session.exec(
        select(Volunteer).where(Volunteer.user_id == current["user_id"])
    ).first()
    if volunteer is None or task.assigned_to != volunteer.id:
        raise HTTPException(
            status_code=403,
            detail="You can only complete tasks assigned to you.",
        )

    task.status = "Completed"
    session.add(task)
    session.commit()

    logger.info("Volunteer %s completed task %s", volunteer.id, task.id)
    return RedirectResponse(url="/volunteer", status_code=303)
