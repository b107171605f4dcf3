"""
Form reading and validation error reporting.

Pydantic does the checking; this module turns its errors into the
``{field: [message, ...]}`` mapping the form templates render. Messages are
looked up by ``(field, pydantic error type)`` and fall back to pydantic's own
text. Form-level errors that belong to no single field live under
``FORM_ERRORS``.
"""

from typing import Dict, Iterable, List

from pydantic import ValidationError

FORM_ERRORS = "__all__"

ErrorMap = Dict[str, List[str]]

ERROR_MESSAGES = {
    ("full_name", "missing"): "Full name is required.",
    ("full_name", "string_too_long"): "Full name must be at most 100 characters.",
    ("email", "missing"): "Email is required.",
    ("email", "value_error"): "Please enter a valid email address.",
    ("password", "missing"): "Password is required.",
    ("role", "literal_error"): "Please choose User or Volunteer.",
    ("title", "missing"): "Title is required.",
    ("description", "missing"): "Description is required.",
    ("location", "missing"): "Location is required.",
    ("donor_name", "missing"): "Donor name is required.",
    ("resource_type", "missing"): "Resource type is required.",
    ("quantity", "missing"): "Quantity is required.",
    ("quantity", "int_parsing"): "Quantity must be a whole number.",
    ("quantity", "greater_than_equal"): "Quantity cannot be negative.",
    ("quantity", "less_than_equal"): "Quantity is too large.",
    ("skills", "missing"): "Skills are required.",
    ("name", "missing"): "Task name is required.",
    ("status", "literal_error"): "Please choose a valid status.",
    ("status", "string_pattern_mismatch"): "Please choose a valid status.",
    ("assigned_to", "int_parsing"): "Assigned volunteer must be a volunteer id.",
    ("assigned_to", "less_than_equal"): "No volunteer with that id.",
}


def read_form(form, fields: Iterable[str], raw: Iterable[str] = ("password",)) -> dict:
    """
    Pull the named string fields out of submitted form data.

    Values are stripped (except fields listed in ``raw``) and blank values are
    left out, so pydantic reports them as missing or applies the default.
    """
    raw = set(raw)
    data = {}
    for field in fields:
        value = form.get(field)
        if not isinstance(value, str):
            continue
        if field not in raw:
            value = value.strip()
        if value:
            data[field] = value
    return data


def errors_from_validation(exc: ValidationError) -> ErrorMap:
    errors: ErrorMap = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else FORM_ERRORS
        message = ERROR_MESSAGES.get((field, error["type"]), error["msg"])
        add_error(errors, field, message)
    return errors


def add_error(errors: ErrorMap, field: str, message: str) -> ErrorMap:
    messages = errors.setdefault(field, [])
    if message not in messages:
        messages.append(message)
    return errors
