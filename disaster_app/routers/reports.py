import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError

from ..db import SessionDep
from ..models import Donation, Incident
from ..schemas import DonationCreate, IncidentCreate
from ..templating import render
from ..validation import errors_from_validation, read_form
from .auth import CurrentSessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])

INCIDENT_FIELDS = ("title", "description", "location")
DONATION_FIELDS = (
    "donor_name",
    "email",
    "resource_type",
    "quantity",
    "description",
    "contact_number",
    "pickup_address",
)


@router.get("/incidents/new", response_class=HTMLResponse)
def log_incident_page(request: Request, current: CurrentSessionDep):
    return render(request, "log_incident.html", current, form_data={}, errors={})


@router.post("/incidents/new")
async def log_incident(
    request: Request,
    session: SessionDep,
    current: CurrentSessionDep,
):
    """
    Record an incident reported by the logged-in user.
    """
    form = await request.form()
    form_data = read_form(form, INCIDENT_FIELDS)

    try:
        incident_in = IncidentCreate(**form_data)
    except ValidationError as exc:
        return render(
            request,
            "log_incident.html",
            current,
            status_code=400,
            form_data=form_data,
            errors=errors_from_validation(exc),
        )

    incident = Incident(
        title=incident_in.title,
        description=incident_in.description,
        location=incident_in.location,
        reported_by=current["user_id"],
    )
    session.add(incident)
    session.commit()
    session.refresh(incident)

    logger.info("Incident %s reported by user %s", incident.id, current["user_id"])
    return RedirectResponse(url="/user", status_code=303)


@router.get("/donations/new", response_class=HTMLResponse)
def log_donation_page(request: Request, current: CurrentSessionDep):
    # Pre-fill who is donating from the session
    form_data = {"donor_name": current["name"] or "", "email": current["email"]}
    return render(request, "log_donation.html", current, form_data=form_data, errors={})


@router.post("/donations/new")
async def log_donation(
    request: Request,
    session: SessionDep,
    current: CurrentSessionDep,
):
    """
    Record a donation offer. New donations always start out Pending.
    """
    form = await request.form()
    form_data = read_form(form, DONATION_FIELDS)

    try:
        donation_in = DonationCreate(**form_data)
    except ValidationError as exc:
        return render(
            request,
            "log_donation.html",
            current,
            status_code=400,
            form_data=form_data,
            errors=errors_from_validation(exc),
        )

    donation = Donation(**donation_in.model_dump(), status="Pending")
    session.add(donation)
    session.commit()
    session.refresh(donation)

    logger.info(
        "Donation %s logged: %s x %s from %s",
        donation.id,
        donation.quantity,
        donation.resource_type,
        donation.email,
    )
    return RedirectResponse(url="/user", status_code=303)
