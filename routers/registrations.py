from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional
from database import get_db
from errors import ValidationError
from schemas import Participant, RegisteredEvent, Registration as RegistrationSchema, RegistrationCreate
from services import registration_service

router = APIRouter()

@router.get("/registrations")
def get_registrations(event_id: Optional[str] = None, db: Session = Depends(get_db)):
    """List the students registered for an event"""
    if not event_id or not event_id.strip():
        raise ValidationError("Missing or invalid event_id parameter")
    users = registration_service.list_participants(db, event_id)
    return {"users": [Participant.model_validate(user) for user in users]}

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(request: RegistrationCreate, db: Session = Depends(get_db)):
    """Register a student or a team for an event"""
    registrations = registration_service.register_team(db, request)
    return {
        "message": "Registration successful!",
        "data": [RegistrationSchema.model_validate(r) for r in registrations],
    }

@router.get("/registrations/{register_number}")
def get_registered_event_ids(register_number: str, db: Session = Depends(get_db)):
    """Event IDs a student is registered for"""
    register_number = registration_service.validate_register_number(register_number)
    return {"registeredEventIds": registration_service.registered_event_ids(db, register_number)}

@router.get("/registrations/user/{register_number}/events")
def get_registered_events(register_number: str, db: Session = Depends(get_db)):
    """Summary of the events a student is registered for"""
    register_number = registration_service.validate_register_number(register_number)
    events = registration_service.registered_events(db, register_number)
    return {
        "events": [
            RegisteredEvent(
                id=event.event_id,
                name=event.title,
                date=event.event_date,
                department=event.organizing_dept,
            )
            for event in events
        ]
    }
