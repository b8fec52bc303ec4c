"""Fest mutation pipeline.

Fest images are uploaded by the client straight to the ``fest-images`` bucket,
so this pipeline only receives their URLs. It still owns their removal when a
fest's image is replaced or the fest is deleted. Deleting a fest cascades to
every event that belongs to it.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from dependencies import require_owner
from errors import NotFoundError, ValidationError
from models import Event, Fest, User
from parsers import empty_to_none, is_blank, parse_phone, slugify
from schemas import FestPayload
from services.common import commit_or_raise, utcnow
from services.event_service import delete_event_rows, event_files
from storage import FEST_IMAGES_BUCKET, FileLifecycleManager, ObjectStorage, purge_files

logger = logging.getLogger(__name__)

MAX_EVENT_HEADS = 5

# payload field -> required-field label
REQUIRED_FEST_FIELDS = (
    ("title", "title"),
    ("opening_date", "opening_date"),
    ("closing_date", "closing_date"),
    ("detailed_description", "detailed_description"),
    ("department", "department (for department_access)"),
    ("category", "category"),
    ("contact_email", "contact_email"),
    ("contact_phone", "contact_phone"),
    ("festImageUrl", "festImageUrl"),
    ("organizing_dept", "organizing_dept"),
)
# the image may be cleared by an update, the other required fields may not
UPDATABLE_REQUIRED_FIELDS = frozenset(field for field, _ in REQUIRED_FEST_FIELDS) - {"festImageUrl"}


def _list_or_empty(value: Optional[List[Any]]) -> List[Any]:
    return list(value) if value else []


def _event_heads(value: Optional[List[str]]) -> List[str]:
    heads = _list_or_empty(value)
    if len(heads) > MAX_EVENT_HEADS:
        raise ValidationError(f"A fest can have at most {MAX_EVENT_HEADS} event heads.")
    return heads


# payload field -> (column, coercion)
FEST_FIELDS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "title": ("fest_title", lambda value: value),
    "opening_date": ("opening_date", empty_to_none),
    "closing_date": ("closing_date", empty_to_none),
    "detailed_description": ("description", lambda value: value),
    "department": ("department_access", _list_or_empty),
    "category": ("category", lambda value: value),
    "contact_email": ("contact_email", lambda value: value),
    "contact_phone": ("contact_phone", parse_phone),
    "event_heads": ("event_heads", _event_heads),
    "festImageUrl": ("fest_image_url", empty_to_none),
    "organizing_dept": ("organizing_dept", lambda value: value),
}


def list_fests(db: Session) -> List[Fest]:
    return db.query(Fest).order_by(Fest.opening_date.asc(), Fest.id.asc()).all()


def get_fest(db: Session, fest_id: str) -> Fest:
    fest = db.query(Fest).filter(Fest.fest_id == fest_id).first()
    if fest is None:
        raise NotFoundError(f"Fest with ID (slug) '{fest_id}' not found.")
    return fest


def create_fest(db: Session, user: User, payload: FestPayload) -> Fest:
    missing = [label for field, label in REQUIRED_FEST_FIELDS if is_blank(getattr(payload, field))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}.")

    fest_id = slugify(payload.title)
    if not fest_id:
        raise ValidationError("Valid fest title required to generate a unique fest ID.")

    values = {column: coerce(getattr(payload, field)) for field, (column, coerce) in FEST_FIELDS.items()}
    fest = Fest(fest_id=fest_id, created_by=user.email, **values)
    db.add(fest)
    commit_or_raise(
        db,
        conflict_message=f"Fest creation failed: A fest with a similar title (ID: {fest_id}) might already exist.",
        invalid_message="Fest creation failed: Invalid data.",
    )
    db.refresh(fest)
    logger.info(f"Fest '{fest_id}' created by {user.email}")
    return fest


def update_fest(
    db: Session,
    storage: ObjectStorage,
    user: User,
    fest_id: str,
    payload: FestPayload,
) -> Tuple[Fest, bool]:
    fest = get_fest(db, fest_id)
    require_owner(fest, user, "update this fest")

    present = payload.model_fields_set
    changes = {}
    for field, (column, coerce) in FEST_FIELDS.items():
        if field not in present:
            continue
        value = coerce(getattr(payload, field))
        if field in UPDATABLE_REQUIRED_FIELDS and is_blank(value):
            raise ValidationError(f"Missing required fields: {field}.")
        if value != getattr(fest, column):
            changes[column] = value

    if "title" in present:
        new_slug = slugify(payload.title)
        if not new_slug:
            raise ValidationError("Valid fest title required to generate a unique fest ID.")
        if new_slug != fest.fest_id:
            changes["fest_id"] = new_slug

    if not changes:
        logger.info(f"No changes detected for fest '{fest_id}'")
        return fest, False

    old_slug = fest.fest_id
    new_slug = changes.get("fest_id", old_slug)

    with FileLifecycleManager(storage, new_slug) as lifecycle:
        if "fest_image_url" in changes:
            lifecycle.discard(fest.fest_image_url, FEST_IMAGES_BUCKET)

        for column, value in changes.items():
            setattr(fest, column, value)
        fest.updated_at = utcnow()
        fest.updated_by = user.email

        if new_slug != old_slug:
            # events reference their fest by slug
            db.query(Event).filter(Event.fest == old_slug).update(
                {Event.fest: new_slug}, synchronize_session=False
            )

        commit_or_raise(
            db,
            conflict_message=f"Failed to update fest: The new fest ID (slug) '{new_slug}' likely conflicts with an existing fest.",
            invalid_message="Error updating fest: Invalid data.",
        )

    db.refresh(fest)
    logger.info(f"Fest '{old_slug}' updated by {user.email}: {sorted(changes)}")
    return fest, True


def delete_fest(db: Session, storage: ObjectStorage, user: User, fest_id: str) -> int:
    """Delete a fest with its events, their registrations and all files.

    Returns the number of events deleted with the fest.
    """
    fest = get_fest(db, fest_id)
    require_owner(fest, user, "delete this fest")

    events = db.query(Event).filter(Event.fest == fest.fest_id).all()
    files = [file for event in events for file in event_files(event)]
    files.append((fest.fest_image_url, FEST_IMAGES_BUCKET))

    deleted_events = delete_event_rows(db, [event.event_id for event in events])
    db.delete(fest)
    commit_or_raise(
        db,
        conflict_message="Fest could not be deleted.",
        invalid_message="Fest could not be deleted.",
    )

    attempted = purge_files(storage, files)
    logger.info(
        f"Fest '{fest_id}' deleted by {user.email} with {deleted_events} event(s); "
        f"{attempted} file(s) removed from storage"
    )
    return deleted_events
