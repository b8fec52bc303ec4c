from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from database import get_db
from dependencies import get_current_organiser
from models import User
from schemas import Fest as FestSchema, FestPayload
from services import fest_service
from storage import ObjectStorage, get_storage

router = APIRouter()

@router.get("")
def get_fests(db: Session = Depends(get_db)):
    """Get all fests"""
    fests = fest_service.list_fests(db)
    return {"fests": [FestSchema.model_validate(fest) for fest in fests]}

@router.post("", status_code=status.HTTP_201_CREATED)
def create_fest(
    payload: FestPayload,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_organiser)
):
    """Create a new fest (organisers only)"""
    fest = fest_service.create_fest(db, current_user, payload)
    return {"fest": FestSchema.model_validate(fest), "message": "Fest created successfully."}

@router.get("/{fest_id}")
def get_fest(fest_id: str, db: Session = Depends(get_db)):
    """Get a specific fest by its slug"""
    fest = fest_service.get_fest(db, fest_id)
    return {"fest": FestSchema.model_validate(fest)}

@router.put("/{fest_id}")
def update_fest(
    fest_id: str,
    payload: FestPayload,
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    current_user: User = Depends(get_current_organiser)
):
    """Update a fest (creator only)"""
    fest, changed = fest_service.update_fest(db, storage, current_user, fest_id, payload)
    message = "Fest updated successfully." if changed else "No changes detected to update."
    return {"fest": FestSchema.model_validate(fest), "message": message}

@router.delete("/{fest_id}")
def delete_fest(
    fest_id: str,
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    current_user: User = Depends(get_current_organiser)
):
    """Delete a fest with all its events, registrations and files (creator only)"""
    deleted_events = fest_service.delete_fest(db, storage, current_user, fest_id)
    return {
        "message": "Fest and all associated events and registrations deleted successfully.",
        "deletedEvents": deleted_events,
    }
