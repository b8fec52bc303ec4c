"""Event mutation pipeline.

Routers parse the multipart request and authenticate the caller; everything
from validation to persistence and file handling happens here:

- validate and coerce the form fields before any side effect
- upload new files inside a FileLifecycleManager
- write the row, rolling uploads back if the write fails
- remove replaced or cleared files only once the write is committed
"""

import logging
from datetime import timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import settings
from dependencies import require_owner
from errors import NotFoundError, ValidationError
from models import Event, Fest, Registration, User
from parsers import (
    empty_to_none,
    is_blank,
    normalize_time,
    parse_bool_flag,
    parse_fest_reference,
    parse_optional_float,
    parse_optional_int,
    parse_phone,
    parse_schedule,
    parse_string_list,
    slugify,
)
from services.common import commit_or_raise, utcnow
from storage import (
    EVENT_FILE_SLOTS,
    FileLifecycleManager,
    ObjectStorage,
    UploadedFile,
    purge_files,
    validate_upload,
)

logger = logging.getLogger(__name__)

REQUIRED_EVENT_COLUMNS = (
    "event_id",
    "title",
    "event_date",
    "category",
    "organizing_dept",
    "department_access",
    "registration_deadline",
    "venue",
    "organizer_email",
)


def _parse_fee(value: Any) -> Optional[float]:
    fee = parse_optional_float(value, "registration fee")
    if fee is not None and fee < 0:
        raise ValidationError("Registration fee cannot be negative.")
    return fee


def _parse_team_size(value: Any) -> Optional[int]:
    size = parse_optional_int(value, "max participants")
    if size is not None and size < 1:
        raise ValidationError("Max participants must be at least 1.")
    return size


def _parse_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _departments(value: Any) -> List[str]:
    return parse_string_list(value, "department")


def _rules(value: Any) -> List[str]:
    return parse_string_list(value, "rules")


def _prizes(value: Any) -> List[str]:
    return parse_string_list(value, "prizes")


# form field -> (column, coercion)
EVENT_FORM_FIELDS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "eventTitle": ("title", _parse_text),
    "detailedDescription": ("description", _parse_text),
    "eventDate": ("event_date", empty_to_none),
    "endDate": ("end_date", empty_to_none),
    "eventTime": ("event_time", normalize_time),
    "category": ("category", empty_to_none),
    "organizingDept": ("organizing_dept", empty_to_none),
    "department": ("department_access", _departments),
    "festEvent": ("fest", parse_fest_reference),
    "registrationDeadline": ("registration_deadline", empty_to_none),
    "location": ("venue", empty_to_none),
    "registrationFee": ("registration_fee", _parse_fee),
    "maxParticipants": ("participants_per_team", _parse_team_size),
    "contactEmail": ("organizer_email", empty_to_none),
    "contactPhone": ("organizer_phone", parse_phone),
    "whatsappLink": ("whatsapp_invite_link", empty_to_none),
    "provideClaims": ("claims_applicable", parse_bool_flag),
    "scheduleItems": ("schedule", parse_schedule),
    "rules": ("rules", _rules),
    "prizes": ("prizes", _prizes),
}


def coerce_event_fields(form: Mapping[str, Any], partial: bool) -> Dict[str, Any]:
    """Map form fields to column values.

    With ``partial`` only the fields present in the form are returned, so an
    update never touches columns the client did not send.
    """
    values = {}
    for form_key, (column, coerce) in EVENT_FORM_FIELDS.items():
        if partial and form_key not in form:
            continue
        values[column] = coerce(form.get(form_key))
    return values


def event_files(event: Event) -> List[Tuple[Optional[str], str]]:
    return [(getattr(event, slot.column), slot.bucket) for slot in EVENT_FILE_SLOTS]


def _validate_uploads(files: Mapping[str, UploadedFile]) -> None:
    for slot in EVENT_FILE_SLOTS:
        upload = files.get(slot.form_key)
        if upload is not None:
            validate_upload(slot, upload, settings.MAX_UPLOAD_BYTES)


def _check_fest_exists(db: Session, fest_id: Optional[str]) -> None:
    if fest_id is None:
        return
    if db.query(Fest.id).filter(Fest.fest_id == fest_id).first() is None:
        raise ValidationError(f"Fest '{fest_id}' does not exist.")


def list_events(db: Session) -> List[Event]:
    return db.query(Event).order_by(Event.created_at.desc(), Event.id.desc()).all()


def get_event(db: Session, event_id: str) -> Event:
    """Return an event by its slug.

    Raises:
        NotFoundError: If no event has this slug.
    """
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if event is None:
        raise NotFoundError(f"Event with ID '{event_id}' not found.")
    return event


def create_event(
    db: Session,
    storage: ObjectStorage,
    user: User,
    form: Mapping[str, Any],
    files: Mapping[str, UploadedFile],
) -> Event:
    title = form.get("eventTitle")
    if is_blank(title):
        raise ValidationError("Event title is required to generate an event ID.")
    event_id = slugify(title)
    if not event_id:
        raise ValidationError("Valid event title required to generate a unique event ID.")

    payload = coerce_event_fields(form, partial=False)
    payload.update(event_id=event_id, total_participants=0, created_by=user.email)
    for column in REQUIRED_EVENT_COLUMNS:
        if is_blank(payload.get(column)):
            raise ValidationError(f"Missing required event field: {column}.")
    _check_fest_exists(db, payload["fest"])
    _validate_uploads(files)

    with FileLifecycleManager(storage, event_id) as lifecycle:
        for slot in EVENT_FILE_SLOTS:
            upload = files.get(slot.form_key)
            payload[slot.column] = lifecycle.upload(slot.bucket, upload) if upload else None

        event = Event(**payload)
        db.add(event)
        commit_or_raise(
            db,
            conflict_message=f"Event creation failed: An event with a similar title (ID: {event_id}) might already exist.",
            invalid_message="Invalid data format for one of the event fields.",
        )

    db.refresh(event)
    logger.info(f"Event '{event_id}' created by {user.email} with {len(files)} file(s)")
    return event


def update_event(
    db: Session,
    storage: ObjectStorage,
    user: User,
    event_id: str,
    form: Mapping[str, Any],
    files: Mapping[str, UploadedFile],
) -> Tuple[Event, bool]:
    """Apply a partial update. Returns the event and whether anything changed."""
    event = get_event(db, event_id)
    require_owner(event, user, "update this event")

    values = coerce_event_fields(form, partial=True)
    for column in REQUIRED_EVENT_COLUMNS:
        if column in values and is_blank(values[column]):
            raise ValidationError(f"Missing required event field: {column}.")

    changes = {column: value for column, value in values.items() if value != getattr(event, column)}

    if "eventTitle" in form:
        new_slug = slugify(form["eventTitle"])
        if not new_slug:
            raise ValidationError("Valid event title required to generate a unique event ID.")
        if new_slug != event.event_id:
            changes["event_id"] = new_slug

    if "fest" in changes:
        _check_fest_exists(db, changes["fest"])
    _validate_uploads(files)

    removals = set()
    for slot in EVENT_FILE_SLOTS:
        if parse_bool_flag(form.get(slot.remove_flag)):
            removals.add(slot.form_key)
        elif slot.existing_url_field in form and is_blank(form[slot.existing_url_field]):
            removals.add(slot.form_key)

    old_slug = event.event_id
    new_slug = changes.get("event_id", old_slug)

    with FileLifecycleManager(storage, new_slug) as lifecycle:
        for slot in EVENT_FILE_SLOTS:
            current_url = getattr(event, slot.column)
            upload = files.get(slot.form_key)
            if upload is not None:
                changes[slot.column] = lifecycle.upload(slot.bucket, upload)
                lifecycle.discard(current_url, slot.bucket)
            elif slot.form_key in removals and current_url:
                changes[slot.column] = None
                lifecycle.discard(current_url, slot.bucket)

        if not changes:
            logger.info(f"No changes detected for event '{event_id}'")
            return event, False

        for column, value in changes.items():
            setattr(event, column, value)
        event.updated_at = utcnow()
        event.updated_by = user.email

        if new_slug != old_slug:
            # registrations reference events by slug
            db.query(Registration).filter(Registration.event_id == old_slug).update(
                {Registration.event_id: new_slug}, synchronize_session=False
            )

        commit_or_raise(
            db,
            conflict_message=f"Failed to update event: The new event ID (slug) '{new_slug}' likely conflicts with an existing event.",
            invalid_message="Invalid data format for one of the event fields.",
        )

    db.refresh(event)
    logger.info(f"Event '{old_slug}' updated by {user.email}: {sorted(changes)}")
    return event, True


def delete_event(db: Session, storage: ObjectStorage, user: User, event_id: str) -> None:
    event = get_event(db, event_id)
    require_owner(event, user, "delete this event")

    files = event_files(event)
    db.delete(event)
    commit_or_raise(
        db,
        conflict_message="Event could not be deleted.",
        invalid_message="Event could not be deleted.",
    )

    purge_files(storage, files)

    try:
        removed = db.query(Registration).filter(Registration.event_id == event_id).delete(
            synchronize_session=False
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Event deleted, but failed to delete registrations for event {event_id}: {e}")
    else:
        logger.info(f"Event '{event_id}' deleted by {user.email} with {removed} registration(s)")


def close_registration(db: Session, user: User, event_id: str) -> Event:
    """Close registration by moving the deadline just into the past."""
    event = get_event(db, event_id)
    require_owner(event, user, "close registration for this event")

    now = utcnow()
    event.registration_deadline = (now - timedelta(seconds=1)).isoformat()
    event.updated_at = now
    event.updated_by = user.email
    commit_or_raise(
        db,
        conflict_message="Failed to close registration.",
        invalid_message="Failed to close registration.",
    )
    db.refresh(event)
    logger.info(f"Registration closed for event '{event_id}' by {user.email}")
    return event


def delete_event_rows(db: Session, event_ids: List[str]) -> int:
    """Delete events and their registrations without committing.

    A failure to delete registrations is logged and the events are deleted
    anyway.
    """
    if not event_ids:
        return 0
    try:
        with db.begin_nested():
            db.query(Registration).filter(Registration.event_id.in_(event_ids)).delete(
                synchronize_session=False
            )
    except SQLAlchemyError as e:
        logger.warning(f"Failed to delete registrations for events {event_ids}: {e}")
    return db.query(Event).filter(Event.event_id.in_(event_ids)).delete(synchronize_session=False)
