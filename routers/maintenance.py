from dataclasses import asdict
from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
import hmac
from cleanup import run_cleanup
from database import get_db, settings
from dependencies import security
from errors import UnauthorizedError
from storage import ObjectStorage, get_storage

router = APIRouter()

@router.post("/cleanup")
def trigger_cleanup(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage)
):
    """Run the daily cleanup; for schedulers holding the cron secret"""
    token = credentials.credentials if credentials else ""
    if not settings.CRON_SECRET or not hmac.compare_digest(token, settings.CRON_SECRET):
        raise UnauthorizedError("Unauthorized")
    result = run_cleanup(db, storage)
    return {"message": "Cleanup completed.", **asdict(result)}
