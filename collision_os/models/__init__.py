# CollisionOS database models
# Import all models here for SQLAlchemy discovery

from collision_os.models.fleet_vehicle import FleetVehicle             # noqa
from collision_os.models.loaner_reservation import LoanerReservation   # noqa
from collision_os.models.vendor import Vendor                          # noqa
from collision_os.models.part import Part                              # noqa
from collision_os.models.status_event import StatusEvent               # noqa
