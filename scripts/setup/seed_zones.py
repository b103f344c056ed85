# scripts/setup/seed_zones.py
"""
Seed sample zones, users and vehicles for local development.
Existing rows (matched by zone number / email / plate) are left alone.
Usage: python scripts/setup/seed_zones.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import SessionLocal, create_tables
from app.models.parking_zone import ParkingZone, LocationType
from app.models.user import User, UserRole
from app.models.vehicle import Vehicle
from app.services.pricing import rate_for_location_type
from app.services.restrictions import sample_restrictions
from app.utils.time_utils import utcnow

ZONES = [
    # (number, name, type, max hours, address, restricted)
    ("A-101", "Chapel Street",        LocationType.STREET, 2,  "1000 Chapel St",   True),
    ("A-102", "College Street",       LocationType.METER,  3,  "200 College St",   True),
    ("G-201", "Temple Street Garage", LocationType.GARAGE, 24, "270 Crown St",     False),
    ("L-301", "Union Station Lot",    LocationType.LOT,    12, "50 Union Ave",     False),
]

USERS = [
    ("driver@example.com",  "Demo Driver",       "+12035550100", UserRole.USER),
    ("officer@example.com", "Enforcement Officer", "+12035550101", UserRole.ENFORCEMENT),
    ("admin@example.com",   "Admin",             "+12035550102", UserRole.ADMIN),
]


def main():
    create_tables()
    db = SessionLocal()
    now = utcnow()
    try:
        for number, name, location_type, max_hours, address, restricted in ZONES:
            if db.query(ParkingZone).filter(ParkingZone.zone_number == number).first():
                print(f"   • Zone {number} already exists")
                continue
            db.add(ParkingZone(
                zone_number=number,
                zone_name=name,
                location_type=location_type,
                rate_per_hour=rate_for_location_type(location_type),
                max_duration_hours=max_hours,
                address=address,
                restrictions_json=sample_restrictions().model_dump() if restricted else None,
                is_active=True,
                created_at=now,
                updated_at=now,
            ))
            print(f"   ✓ Zone {number} ({name})")

        for email, name, phone, role in USERS:
            if db.query(User).filter(User.email == email).first():
                continue
            db.add(User(email=email, name=name, phone=phone, role=role, created_at=now))
            print(f"   ✓ User {email} ({role})")
        db.commit()

        driver = db.query(User).filter(User.email == "driver@example.com").first()
        if not db.query(Vehicle).filter(Vehicle.license_plate == "ABC1234", Vehicle.state == "CT").first():
            db.add(Vehicle(user_id=driver.id, license_plate="ABC1234", state="CT",
                           nickname="Daily driver", created_at=now))
            print("   ✓ Vehicle ABC1234/CT")
        db.commit()
        print(f"\n🎉 Seed complete. Use header X-User-Id: {driver.id} to act as the demo driver.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
