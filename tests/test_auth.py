"""
Tests for registration, login and logout.
"""
from datetime import datetime, timedelta, timezone

from sqlmodel import select

from disaster_app import config
from disaster_app.models import User
from disaster_app.sessions import USER_EMAIL, USER_ROLE, session_store, verify_session_token


def _session_values(client):
    """Values stored for the client's current session cookie, if any."""
    cookie = client.cookies.get(config.SESSION_COOKIE_NAME)
    if cookie is None:
        return None
    token = verify_session_token(cookie)
    return session_store.get(token) if token else None


# Register

def test_register_page_renders_empty_form(client):
    r = client.get("/register")
    assert r.status_code == 200
    assert r.template.name == "register.html"
    assert r.context["form_data"] == {}
    assert r.context["errors"] == {}


def test_register_creates_user_and_redirects_to_login(client, session):
    r = client.post("/register", data={
        "full_name": "John Doe",
        "email": "newuser@example.com",
        "password": "Password123!",
        "role": "User",
    })
    assert r.status_code == 303
    assert r.headers["location"] == "/login"

    user = session.exec(select(User).where(User.email == "newuser@example.com")).first()
    assert user is not None
    assert user.full_name == "John Doe"
    assert user.role == "User"
    assert user.created_at is not None
    # stored as a digest, never the plain password
    assert user.password_hash != "Password123!"
    assert len(user.password_hash) > 20


def test_register_defaults_role_to_user(client, session):
    r = client.post("/register", data={
        "full_name": "No Role",
        "email": "norole@example.com",
        "password": "Password123!",
    })
    assert r.status_code == 303
    user = session.exec(select(User).where(User.email == "norole@example.com")).one()
    assert user.role == "User"


def test_register_duplicate_email_reports_email_error(client, session, make_user):
    make_user("existing@example.com")

    r = client.post("/register", data={
        "full_name": "Another User",
        "email": "existing@example.com",
        "password": "Password123!",
        "role": "User",
    })
    assert r.status_code == 400
    assert r.template.name == "register.html"
    assert "email" in r.context["errors"]

    users = session.exec(select(User).where(User.email == "existing@example.com")).all()
    assert len(users) == 1


def test_register_invalid_fields_return_form_with_errors(client, session):
    r = client.post("/register", data={
        "full_name": "",
        "email": "invalid-email",
        "password": "",
        "role": "User",
    })
    assert r.status_code == 400
    errors = r.context["errors"]
    assert errors["full_name"] == ["Full name is required."]
    assert errors["email"] == ["Please enter a valid email address."]
    assert errors["password"] == ["Password is required."]
    assert session.exec(select(User)).all() == []


def test_register_does_not_echo_password_back(client):
    r = client.post("/register", data={
        "full_name": "",
        "email": "someone@example.com",
        "password": "do-not-echo-me",
    })
    assert r.status_code == 400
    assert "password" not in r.context["form_data"]
    assert "do-not-echo-me" not in r.text


def test_register_rejects_admin_role(client, session):
    r = client.post("/register", data={
        "full_name": "Sneaky",
        "email": "sneaky@example.com",
        "password": "Password123!",
        "role": "Admin",
    })
    assert r.status_code == 400
    assert "role" in r.context["errors"]
    assert session.exec(select(User)).all() == []


def test_register_page_redirects_logged_in_user(client, login_as):
    login_as(role="Volunteer")
    r = client.get("/register")
    assert r.status_code == 303
    assert r.headers["location"] == "/volunteer"


def test_register_records_creation_time(client, session):
    before = datetime.now(timezone.utc)
    client.post("/register", data={
        "full_name": "John Doe",
        "email": "newuser@example.com",
        "password": "Password123!",
    })

    session.expire_all()
    user = session.exec(select(User).where(User.email == "newuser@example.com")).one()
    created_at = user.created_at
    if created_at.tzinfo is None:
        # SQLite hands timestamps back without an offset; they are stored in UTC
        created_at = created_at.replace(tzinfo=timezone.utc)
    assert before - timedelta(seconds=5) <= created_at <= datetime.now(timezone.utc) + timedelta(seconds=5)


def test_register_then_login_with_mixed_case_email(client, session):
    r = client.post("/register", data={
        "full_name": "Ann Example",
        "email": "Ann@Example.COM",
        "password": "Password123!",
    })
    assert r.status_code == 303

    r = client.post("/login", data={"email": "Ann@Example.COM", "password": "Password123!"})
    assert r.status_code == 303
    assert r.headers["location"] == "/user"


def test_register_duplicate_email_differing_in_domain_case(client, session, make_user):
    make_user("ann@example.com")

    r = client.post("/register", data={
        "full_name": "Ann Again",
        "email": "ann@EXAMPLE.com",
        "password": "Password123!",
    })
    assert r.status_code == 400
    assert "email" in r.context["errors"]
    assert len(session.exec(select(User)).all()) == 1


# Login

def test_login_page_renders(client):
    r = client.get("/login")
    assert r.status_code == 200
    assert r.template.name == "login.html"
    assert r.context["error"] is None


def test_login_user_redirects_to_user_home(client, make_user):
    make_user("user@example.com", "Password123!", "User")

    r = client.post("/login", data={"email": "user@example.com", "password": "Password123!"})
    assert r.status_code == 303
    assert r.headers["location"] == "/user"

    values = _session_values(client)
    assert values[USER_EMAIL] == "user@example.com"
    assert values[USER_ROLE] == "User"


def test_login_volunteer_redirects_to_volunteer_home(client, make_user):
    make_user("volunteer@example.com", "Password123!", "Volunteer")

    r = client.post("/login", data={"email": "volunteer@example.com", "password": "Password123!"})
    assert r.status_code == 303
    assert r.headers["location"] == "/volunteer"
    assert _session_values(client)[USER_ROLE] == "Volunteer"


def test_login_admin_redirects_to_admin_home(client, make_user):
    make_user("admin@example.com", "Password123!", "Admin")

    r = client.post("/login", data={"email": "admin@example.com", "password": "Password123!"})
    assert r.status_code == 303
    assert r.headers["location"] == "/admin"
    assert _session_values(client)[USER_ROLE] == "Admin"


def test_login_sets_all_session_keys(client, make_user):
    user = make_user("user@example.com", "Password123!", "User", "John Doe")

    client.post("/login", data={"email": "user@example.com", "password": "Password123!"})

    assert _session_values(client) == {
        "UserEmail": "user@example.com",
        "UserRole": "User",
        "UserId": user.id,
        "UserName": "John Doe",
    }


def test_login_cookie_is_httponly(client, make_user):
    make_user("user@example.com", "Password123!")

    r = client.post("/login", data={"email": "user@example.com", "password": "Password123!"})
    cookie_header = r.headers["set-cookie"].lower()
    assert cookie_header.startswith(f"{config.SESSION_COOKIE_NAME}=")
    assert "httponly" in cookie_header
    assert "samesite=lax" in cookie_header


def test_login_unknown_email_returns_error(client, make_user):
    make_user("user@example.com", "Password123!")

    r = client.post("/login", data={"email": "wrong@example.com", "password": "Password123!"})
    assert r.status_code == 400
    assert r.template.name == "login.html"
    assert r.context["error"] == "Invalid login credentials"
    assert "set-cookie" not in r.headers
    assert len(session_store) == 0


def test_login_wrong_password_returns_error(client, make_user):
    make_user("user@example.com", "Password123!")

    r = client.post("/login", data={"email": "user@example.com", "password": "WrongPassword!"})
    assert r.status_code == 400
    assert r.context["error"] is not None
    assert "set-cookie" not in r.headers
    assert len(session_store) == 0


def test_login_missing_fields_returns_error(client):
    r = client.post("/login", data={"email": "", "password": ""})
    assert r.status_code == 400
    assert r.context["error"] == "Invalid login credentials"
    assert "email" in r.context["errors"]


def test_login_page_redirects_logged_in_admin(client, login_as):
    login_as(role="Admin")
    r = client.get("/login")
    assert r.status_code == 303
    assert r.headers["location"] == "/admin"


# Sessions and logout

def test_logout_ends_session(client, login_as):
    token = login_as()
    assert client.get("/user").status_code == 200

    r = client.post("/logout")
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    assert session_store.get(token) is None

    r = client.get("/user")
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_tampered_cookie_is_treated_as_logged_out(client, login_as):
    login_as()
    client.cookies.clear()
    client.cookies.set(config.SESSION_COOKIE_NAME, "forged-session-value", path="/")

    r = client.get("/user")
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_root_redirects_by_role(client, login_as):
    assert client.get("/").status_code == 200

    login_as(role="Volunteer")
    r = client.get("/")
    assert r.status_code == 303
    assert r.headers["location"] == "/volunteer"


def test_login_again_replaces_previous_session(client, make_user):
    make_user("user@example.com", "Password123!")

    client.post("/login", data={"email": "user@example.com", "password": "Password123!"})
    first = _session_values(client)
    client.post("/login", data={"email": "user@example.com", "password": "Password123!"})

    assert len(session_store) == 1
    assert _session_values(client) == first
