#!/usr/bin/env python3
"""
Seed the database with demo accounts and campus buildings.

Existing accounts (matched by email) are left untouched; locations are only
added to an empty table.
"""
import sys
from pathlib import Path

# Add parent directory to the system path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import Database
from database.models import UserRole, Department
from services.auth_service import AuthService
from services.location_service import LocationService
import config

DEMO_USERS = [
    # Students
    ("student1@campus.edu", "student123", UserRole.STUDENT, Department.NONE, "Student One"),
    ("student2@campus.edu", "student123", UserRole.STUDENT, Department.NONE, "Student Two"),
    ("student3@campus.edu", "student123", UserRole.STUDENT, Department.NONE, "Student Three"),
    # Staff
    ("medical.staff@campus.edu", "medical123", UserRole.STAFF, Department.MEDICAL, "Medical Staff"),
    ("security.staff@campus.edu", "security123", UserRole.STAFF, Department.SECURITY, "Security Staff"),
    ("guidance.staff@campus.edu", "guidance123", UserRole.STAFF, Department.GUIDANCE, "Guidance Staff"),
    # Admin
    ("admin@campus.edu", "admin123", UserRole.ADMIN, Department.NONE, "System Administrator"),
]

DEMO_LOCATIONS = [
    {"building_name": "Main Library", "building_code": "LIB", "latitude": "40.7128", "longitude": "-74.0060"},
    {"building_name": "Student Union", "building_code": "SU", "latitude": "40.7131", "longitude": "-74.0052"},
    {"building_name": "Science Hall", "building_code": "SCI", "latitude": "40.7122", "longitude": "-74.0071"},
    {"building_name": "Health Center", "building_code": "HC", "latitude": "40.7135", "longitude": "-74.0066"},
    {"building_name": "North Residence Hall", "building_code": "NRH", "latitude": "40.7140", "longitude": "-74.0049"},
]


def seed():
    config.db = Database(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW
    )
    config.db.create_tables()

    print("Seeding database with default accounts...")
    with config.db.get_session() as db:
        for email, password, role, department, full_name in DEMO_USERS:
            if AuthService.get_user_by_email(db, email):
                print(f"• Skipped {email} (already exists)")
                continue
            AuthService.create_user(
                db=db,
                email=email,
                password=password,
                role=role,
                department=department,
                full_name=full_name,
            )
            print(f"✓ Created {role.value}: {email}")

        if LocationService.list_locations(db):
            print("• Skipped locations (already present)")
        else:
            for location in DEMO_LOCATIONS:
                LocationService.create_location(db, **location)
            print(f"✓ Created {len(DEMO_LOCATIONS)} campus locations")

    print("Seed complete!")


if __name__ == "__main__":
    seed()
