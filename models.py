from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Float, JSON, UniqueConstraint
from sqlalchemy.sql import func
from database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False, default="New User")
    register_number = Column(String, index=True, nullable=True)
    course = Column(String, nullable=True)
    department = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    is_organiser = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(String, unique=True, index=True, nullable=False)  # slug of the title
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    event_date = Column(String, nullable=False)  # Format: YYYY-MM-DD
    end_date = Column(String, nullable=True)
    event_time = Column(String, nullable=True)  # Format: HH:MM:SS
    category = Column(String, nullable=False)
    organizing_dept = Column(String, nullable=False)
    department_access = Column(JSON, nullable=False, default=list)
    fest = Column(String, index=True, nullable=True)  # fest_id of the owning fest
    registration_deadline = Column(String, nullable=False)
    venue = Column(String, nullable=False)
    registration_fee = Column(Float, nullable=True)
    participants_per_team = Column(Integer, nullable=True)
    organizer_email = Column(String, nullable=False)
    organizer_phone = Column(String, nullable=True)
    whatsapp_invite_link = Column(String, nullable=True)
    claims_applicable = Column(Boolean, nullable=False, default=False)
    schedule = Column(JSON, nullable=False, default=list)
    rules = Column(JSON, nullable=False, default=list)
    prizes = Column(JSON, nullable=False, default=list)
    event_image_url = Column(String, nullable=True)
    banner_url = Column(String, nullable=True)
    pdf_url = Column(String, nullable=True)
    total_participants = Column(Integer, nullable=False, default=0)
    created_by = Column(String, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(String, nullable=True)

class Fest(Base):
    __tablename__ = "fest"

    id = Column(Integer, primary_key=True, index=True)
    fest_id = Column(String, unique=True, index=True, nullable=False)
    fest_title = Column(String, nullable=False)
    opening_date = Column(String, nullable=False)
    closing_date = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    department_access = Column(JSON, nullable=False, default=list)
    category = Column(String, nullable=False)
    contact_email = Column(String, nullable=False)
    contact_phone = Column(String, nullable=False)
    event_heads = Column(JSON, nullable=False, default=list)
    fest_image_url = Column(String, nullable=True)
    organizing_dept = Column(String, nullable=False)
    created_by = Column(String, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(String, nullable=True)

class Registration(Base):
    __tablename__ = "event_registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "register_number", name="uq_registration_event_student"),
    )

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(String, index=True, nullable=False)
    register_number = Column(String, index=True, nullable=False)
    teamname = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
