"""
Campus building list used by the alert form.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.models import User
from auth.dependencies import get_db_session, get_current_user
from services.location_service import LocationService


router = APIRouter(prefix="/api/locations", tags=["locations"])


@router.get("")
async def list_locations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    return [LocationService.to_dict(loc) for loc in LocationService.list_locations(db)]
