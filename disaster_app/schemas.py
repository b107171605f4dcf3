from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

# Largest value an INTEGER column holds
INT32_MAX = 2**31 - 1


class RegisterForm(BaseModel):
    full_name: str = Field(max_length=100)
    email: EmailStr
    password: str
    # Admin accounts are created with the seed command, never self-registered
    role: Literal["User", "Volunteer"] = "User"


class LoginForm(BaseModel):
    # Normalised the same way as at registration so the lookup matches
    email: EmailStr
    password: str


class IncidentCreate(BaseModel):
    title: str = Field(max_length=200)
    description: str
    location: str = Field(max_length=200)


class DonationCreate(BaseModel):
    donor_name: str = Field(max_length=100)
    email: EmailStr
    resource_type: str = Field(max_length=100)
    quantity: int = Field(ge=0, le=INT32_MAX)
    description: Optional[str] = None
    contact_number: Optional[str] = Field(default=None, max_length=30)
    pickup_address: Optional[str] = None


class VolunteerCreate(BaseModel):
    skills: str
    availability: Optional[str] = None


class VolunteerTaskCreate(BaseModel):
    name: str = Field(max_length=200)
    description: Optional[str] = None
    status: Literal["Open", "In Progress", "Completed"] = "Open"
    assigned_to: Optional[int] = Field(default=None, le=INT32_MAX)

    @field_validator("assigned_to")
    @classmethod
    def zero_means_unassigned(cls, value: Optional[int]) -> Optional[int]:
        if value == 0:
            return None
        return value


class DonationStatusUpdate(BaseModel):
    status: str = Field(pattern="^(Pending|Received|Distributed)$")
