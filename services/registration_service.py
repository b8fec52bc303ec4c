"""Event registrations by students, individually or as a team."""

import logging
import re
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from errors import ValidationError
from models import Event, Registration, User
from schemas import RegistrationCreate
from services.common import commit_or_raise
from services.event_service import get_event

logger = logging.getLogger(__name__)

REGISTER_NUMBER = re.compile(r"^\d{7}$")


def validate_register_number(value) -> str:
    register_number = "" if value is None else str(value)
    if not REGISTER_NUMBER.match(register_number):
        raise ValidationError(
            f"Invalid or missing register number: {value}. Must be a 7-digit string."
        )
    return register_number


def registration_closed(event: Event, now: Optional[datetime] = None) -> bool:
    """Whether the registration deadline of an event has passed.

    Deadlines are stored either as a plain date, which stays open for the
    whole day, or as an ISO timestamp. Unparseable deadlines never close
    registration.
    """
    deadline = event.registration_deadline
    if not deadline:
        return False
    now = now or datetime.now(timezone.utc)
    try:
        if len(deadline) == 10:
            return date.fromisoformat(deadline) < now.date()
        parsed = datetime.fromisoformat(deadline.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable registration deadline {deadline!r} for event {event.event_id}")
        return False
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed < now


def register_team(db: Session, request: RegistrationCreate) -> List[Registration]:
    if not request.eventId or not request.teammates:
        raise ValidationError("Missing required fields: eventId and teammates array.")

    register_numbers = [validate_register_number(t.registerNumber) for t in request.teammates]
    if len(set(register_numbers)) != len(register_numbers):
        raise ValidationError("The same register number appears more than once in the team.")

    event = get_event(db, request.eventId)
    if registration_closed(event):
        raise ValidationError("Registration for this event is closed.")
    if event.participants_per_team and len(register_numbers) > event.participants_per_team:
        raise ValidationError(
            f"Team size exceeds the limit of {event.participants_per_team} participant(s)."
        )

    registrations = [
        Registration(event_id=event.event_id, register_number=number, teamname=request.teamName or None)
        for number in register_numbers
    ]
    db.add_all(registrations)
    commit_or_raise(
        db,
        conflict_message="One or more members are already registered for this event. Please check the registration numbers.",
        invalid_message="Failed to record registration.",
    )
    for registration in registrations:
        db.refresh(registration)
    logger.info(f"Registered {len(registrations)} participant(s) for event '{event.event_id}'")
    return registrations


def list_participants(db: Session, event_id: str) -> List[User]:
    register_numbers = [
        number
        for (number,) in db.query(Registration.register_number)
        .filter(Registration.event_id == event_id)
        .distinct()
    ]
    if not register_numbers:
        return []
    return db.query(User).filter(User.register_number.in_(register_numbers)).all()


def registered_event_ids(db: Session, register_number: str) -> List[str]:
    return [
        event_id
        for (event_id,) in db.query(Registration.event_id).filter(
            Registration.register_number == register_number
        )
    ]


def registered_events(db: Session, register_number: str) -> List[Event]:
    event_ids = registered_event_ids(db, register_number)
    if not event_ids:
        return []
    return db.query(Event).filter(Event.event_id.in_(event_ids)).all()
