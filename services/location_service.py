"""
Campus building reference data.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from database.models import Location


class LocationService:

    @staticmethod
    def list_locations(db: Session) -> List[Location]:
        return db.query(Location).order_by(Location.building_name.asc()).all()

    @staticmethod
    def create_location(
        db: Session,
        building_name: str,
        building_code: Optional[str] = None,
        latitude: Optional[str] = None,
        longitude: Optional[str] = None,
        address: Optional[str] = None
    ) -> Location:
        location = Location(
            building_name=building_name,
            building_code=building_code,
            latitude=latitude,
            longitude=longitude,
            address=address,
        )
        db.add(location)
        db.commit()
        db.refresh(location)
        return location

    @staticmethod
    def to_dict(location: Location) -> Dict[str, Any]:
        return {
            "id": location.id,
            "buildingName": location.building_name,
            "buildingCode": location.building_code,
            "latitude": location.latitude,
            "longitude": location.longitude,
            "address": location.address,
            "createdAt": location.created_at.isoformat(),
        }
