#!/usr/bin/env python3
"""
Script to create an admin user.
"""
import sys
from getpass import getpass
from pathlib import Path

# Add parent directory to the system path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import Database
from database.models import UserRole, Department
from services.auth_service import AuthService
from core.exceptions import CampusSafetyError
import config


def create_admin():
    """Create an admin user."""
    config.db = Database(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW
    )
    config.db.create_tables()

    print("Creating admin user...")
    print("=" * 50)

    email = input("Email: ").strip()
    password = getpass("Password: ").strip()
    full_name = input("Full name (optional): ").strip() or None

    if not email or not password:
        print("Error: Email and password are required")
        sys.exit(1)

    try:
        with config.db.get_session() as db:
            user = AuthService.create_user(
                db=db,
                email=email,
                password=password,
                role=UserRole.ADMIN,
                department=Department.NONE,
                full_name=full_name,
            )
            print(f"\n✓ Admin user created successfully!")
            print(f"  Email: {user.email}")
            print(f"  Role: {user.role.value}")
    except CampusSafetyError as e:
        print(f"\n✗ Error: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    create_admin()
