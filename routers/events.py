from fastapi import APIRouter, Depends, Request, status
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile
from typing import Dict, Tuple
import logging
from database import get_db
from dependencies import get_current_organiser
from errors import ValidationError
from models import User
from schemas import Event as EventSchema
from services import event_service
from storage import EVENT_FILE_SLOTS, ObjectStorage, UploadedFile, get_storage

logger = logging.getLogger(__name__)

FILE_FIELDS = {slot.form_key for slot in EVENT_FILE_SLOTS}

router = APIRouter()

async def read_event_form(request: Request) -> Tuple[Dict[str, str], Dict[str, UploadedFile]]:
    """Split a multipart event form into text fields and uploaded files."""
    form = await request.form()
    fields: Dict[str, str] = {}
    files: Dict[str, UploadedFile] = {}
    try:
        for key, value in form.multi_items():
            if not isinstance(value, UploadFile):
                fields[key] = value
                continue
            if key not in FILE_FIELDS:
                raise ValidationError(f"Invalid file field: {key}.")
            # browsers submit an empty part for untouched file inputs
            if not value.filename:
                continue
            if key in files:
                raise ValidationError(f"Only one file is allowed for {key}.")
            files[key] = UploadedFile(
                field_name=key,
                filename=value.filename,
                content_type=value.content_type or "application/octet-stream",
                data=await value.read(),
            )
    finally:
        await form.close()
    return fields, files

@router.get("")
def get_events(db: Session = Depends(get_db)):
    """Get all events, newest first"""
    events = event_service.list_events(db)
    return {"events": [EventSchema.model_validate(event) for event in events]}

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_event(
    request: Request,
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    current_user: User = Depends(get_current_organiser)
):
    """Create a new event (organisers only)"""
    fields, files = await read_event_form(request)
    logger.info(f"Create event request from {current_user.email} with files {sorted(files)}")

    event = await run_in_threadpool(event_service.create_event, db, storage, current_user, fields, files)
    return {"event": EventSchema.model_validate(event), "message": "Event created successfully"}

@router.get("/{event_id}")
def get_event(event_id: str, db: Session = Depends(get_db)):
    """Get a specific event by its slug"""
    event = event_service.get_event(db, event_id)
    return {"event": EventSchema.model_validate(event)}

@router.put("/{event_id}")
async def update_event(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    current_user: User = Depends(get_current_organiser)
):
    """Update an existing event (creator only)"""
    fields, files = await read_event_form(request)

    event, changed = await run_in_threadpool(
        event_service.update_event, db, storage, current_user, event_id, fields, files
    )
    message = "Event updated successfully!" if changed else "No changes detected to update."
    return {"event": EventSchema.model_validate(event), "message": message}

@router.delete("/{event_id}")
def delete_event(
    event_id: str,
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    current_user: User = Depends(get_current_organiser)
):
    """Delete an event, its files and its registrations (creator only)"""
    event_service.delete_event(db, storage, current_user, event_id)
    return {"message": "Event and associated registrations deleted successfully."}

@router.post("/{event_id}/close")
def close_registration(
    event_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_organiser)
):
    """Close registration for an event (creator only)"""
    event = event_service.close_registration(db, current_user, event_id)
    return {"event": EventSchema.model_validate(event), "message": "Registration closed successfully."}
