from typing import Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates

from . import config

templates = Jinja2Templates(directory=str(config.TEMPLATES_DIR))


def render(
    request: Request,
    name: str,
    current: Optional[dict] = None,
    status_code: int = 200,
    **context,
):
    """Render a page with the logged-in user (if any) available to the layout."""
    return templates.TemplateResponse(
        request,
        name,
        {
            "current_user": current,
            "current_role": current["role"] if current else None,
            **context,
        },
        status_code=status_code,
    )
