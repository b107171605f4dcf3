# routers/pages.py
import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlmodel import select

from ..db import SessionDep
from ..models import Donation, Incident, User, Volunteer, VolunteerTask
from ..schemas import DonationStatusUpdate
from ..templating import render
from .auth import AdminSessionDep, CurrentSessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])


@router.get("/user", response_class=HTMLResponse)
def user_home(
    request: Request,
    session: SessionDep,
    current: CurrentSessionDep,
):
    """User dashboard: the incidents and donations this user logged."""
    incidents = session.exec(
        select(Incident)
        .where(Incident.reported_by == current["user_id"])
        .order_by(Incident.id.desc())
    ).all()
    donations = session.exec(
        select(Donation)
        .where(Donation.email == current["email"])
        .order_by(Donation.id.desc())
    ).all()

    return render(
        request,
        "user_home.html",
        current,
        incidents=incidents,
        donations=donations,
    )


@router.get("/volunteer", response_class=HTMLResponse)
def volunteer_home(
    request: Request,
    session: SessionDep,
    current: CurrentSessionDep,
):
    """
    Volunteer dashboard.
    Shows the open (not completed) tasks assigned to the current user.
    """
    volunteer = session.exec(
        select(Volunteer).where(Volunteer.user_id == current["user_id"])
    ).first()

    tasks = []
    if volunteer is not None:
        tasks = session.exec(
            select(VolunteerTask)
            .where(
                VolunteerTask.assigned_to == volunteer.id,
                VolunteerTask.status != "Completed",
            )
            .order_by(VolunteerTask.id)
        ).all()

    return render(
        request,
        "volunteer_home.html",
        current,
        volunteer=volunteer,
        tasks=tasks,
    )


@router.get("/admin", response_class=HTMLResponse)
def admin_home(
    request: Request,
    session: SessionDep,
    current: AdminSessionDep,
):
    """Admin dashboard page"""
    return render(
        request,
        "admin_home.html",
        current,
        users=session.exec(select(User).order_by(User.id)).all(),
        incidents=session.exec(select(Incident).order_by(Incident.id.desc())).all(),
        donations=session.exec(select(Donation).order_by(Donation.id.desc())).all(),
        volunteers=session.exec(select(Volunteer).order_by(Volunteer.id)).all(),
        tasks=session.exec(select(VolunteerTask).order_by(VolunteerTask.id)).all(),
    )


@router.post("/admin/donations/{donation_id}/status")
async def update_donation_status(
    donation_id: int,
    request: Request,
    session: SessionDep,
    current: AdminSessionDep,
):
    form = await request.form()
    raw_status = form.get("status")

    try:
        update = DonationStatusUpdate(status=raw_status if isinstance(raw_status, str) else "")
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid status value.")

    donation = session.get(Donation, donation_id)
    if donation is None:
        raise HTTPException(status_code=404, detail="Donation not found")

    donation.status = update.status
    session.add(donation)
    session.commit()

    logger.info(
        "Admin %s set donation %s to %s", current["user_id"], donation_id, update.status
    )
    return RedirectResponse(url="/admin", status_code=303)
