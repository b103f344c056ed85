# Parking backend — Database Models
# Import all models here for SQLAlchemy discovery

from app.models.user import User                      # noqa
from app.models.vehicle import Vehicle                # noqa
from app.models.parking_zone import ParkingZone       # noqa
from app.models.parking_session import ParkingSession # noqa
from app.models.transaction import Transaction        # noqa
