from pydantic import BaseModel, EmailStr, Field
from typing import Any, Dict, List, Optional, Union
from datetime import datetime

# User schemas
class User(BaseModel):
    id: int
    email: str
    name: str
    register_number: Optional[str] = None
    course: Optional[str] = None
    department: Optional[str] = None
    avatar_url: Optional[str] = None
    is_organiser: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AuthClientUser(BaseModel):
    """User object as returned by the Supabase auth client."""
    email: EmailStr
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    picture: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

class UserSync(BaseModel):
    user: AuthClientUser

# Event schemas
class ScheduleItem(BaseModel):
    time: str
    activity: str

class Event(BaseModel):
    event_id: str
    title: str
    description: Optional[str] = None
    event_date: Optional[str] = None
    end_date: Optional[str] = None
    event_time: Optional[str] = None
    category: Optional[str] = None
    organizing_dept: Optional[str] = None
    department_access: List[str] = Field(default_factory=list)
    fest: Optional[str] = None
    registration_deadline: Optional[str] = None
    venue: Optional[str] = None
    registration_fee: Optional[float] = None
    participants_per_team: Optional[int] = None
    organizer_email: Optional[str] = None
    organizer_phone: Optional[str] = None
    whatsapp_invite_link: Optional[str] = None
    claims_applicable: bool = False
    schedule: List[ScheduleItem] = Field(default_factory=list)
    rules: List[str] = Field(default_factory=list)
    prizes: List[str] = Field(default_factory=list)
    event_image_url: Optional[str] = None
    banner_url: Optional[str] = None
    pdf_url: Optional[str] = None
    total_participants: int = 0
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    class Config:
        from_attributes = True

# Fest schemas
class FestPayload(BaseModel):
    """Body of POST/PUT /fests. Every field is optional so updates can be partial."""
    title: Optional[str] = None
    opening_date: Optional[str] = None
    closing_date: Optional[str] = None
    detailed_description: Optional[str] = None
    department: Optional[List[str]] = None
    category: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[Union[str, int]] = None
    event_heads: Optional[List[EmailStr]] = None
    festImageUrl: Optional[str] = None
    organizing_dept: Optional[str] = None

class Fest(BaseModel):
    fest_id: str
    fest_title: str
    opening_date: Optional[str] = None
    closing_date: Optional[str] = None
    description: Optional[str] = None
    department_access: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    event_heads: List[str] = Field(default_factory=list)
    fest_image_url: Optional[str] = None
    organizing_dept: Optional[str] = None
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    class Config:
        from_attributes = True

# Registration schemas
class Teammate(BaseModel):
    registerNumber: Optional[Union[str, int]] = None

class RegistrationCreate(BaseModel):
    eventId: Optional[str] = None
    teamName: Optional[str] = None
    teammates: Optional[List[Teammate]] = None

class Registration(BaseModel):
    id: int
    event_id: str
    register_number: str
    teamname: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class Participant(BaseModel):
    id: int
    name: str
    register_number: Optional[str] = None
    course: Optional[str] = None
    department: Optional[str] = None
    email: str

    class Config:
        from_attributes = True

class RegisteredEvent(BaseModel):
    id: str
    name: str
    date: Optional[str] = None
    department: Optional[str] = None

# Authentication schemas
class TokenData(BaseModel):
    email: Optional[str] = None
