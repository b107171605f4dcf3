from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

ROLE_USER = "User"
ROLE_VOLUNTEER = "Volunteer"
ROLE_ADMIN = "Admin"
ROLES = (ROLE_USER, ROLE_VOLUNTEER, ROLE_ADMIN)

DONATION_STATUSES = ("Pending", "Received", "Distributed")
TASK_STATUSES = ("Open", "In Progress", "Completed")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    full_name: str = Field(max_length=100)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str = ROLE_USER
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Incident(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str
    location: str
    reported_by: int = Field(foreign_key="user.id", index=True)
    reported_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Donation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    donor_name: str
    email: str = Field(index=True)
    resource_type: str
    quantity: int = Field(ge=0)
    description: Optional[str] = None
    contact_number: Optional[str] = None
    pickup_address: Optional[str] = None
    status: str = "Pending"  # Pending | Received | Distributed
    donated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Volunteer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True)
    skills: str
    availability: Optional[str] = None
    joined_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class VolunteerTask(SQLModel, table=True):
    __tablename__ = "volunteer_task"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    status: str = "Open"  # Open | In Progress | Completed
    assigned_to: Optional[int] = Field(default=None, foreign_key="volunteer.id")
