import logging

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from .db import create_db_and_tables
from .logging_config import setup_logging
from .routers import auth, pages, reports, volunteers
from .routers.auth import LoginRequired, OptionalSessionDep, home_url
from .templating import render

logger = logging.getLogger(__name__)

app = FastAPI(title="Disaster Relief")


@app.on_event("startup")
def on_startup() -> None:
    setup_logging()
    create_db_and_tables()


@app.exception_handler(LoginRequired)
def redirect_to_login(request: Request, exc: LoginRequired):
    logger.info("Redirecting %s %s to login: %s", request.method, request.url.path, exc.reason)
    return RedirectResponse(url="/login", status_code=303)


@app.get("/", response_class=HTMLResponse)
def read_root(
    request: Request,
    current: OptionalSessionDep,
):
    # If logged in, redirect to the dashboard for the role
    if current is not None:
        return RedirectResponse(url=home_url(current["role"]), status_code=303)

    return render(request, "index.html")


app.include_router(auth.router)
app.include_router(reports.router)
app.include_router(volunteers.router)
app.include_router(pages.router)
