# collision_os/models/fleet_vehicle.py
"""
Loaner fleet table.
One row per courtesy vehicle. `status` only changes through the transition
validator; removal is a move to out_of_service, rows are never deleted.
Counters (total_miles, total_rentals) accumulate on every check-in.
"""

from sqlalchemy import Column, Integer, String, DateTime, Date, Text
from collision_os.database import Base


class FleetVehicle(Base):
    __tablename__ = "fleet_vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_number = Column(String(20), unique=True, nullable=False, index=True)   # LC-001
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    license_plate = Column(String(20), unique=True, nullable=False, index=True)
    vin = Column(String(17))
    color = Column(String(50))
    vehicle_type = Column(String(50), nullable=False, default="sedan", index=True)
    features = Column(Text)                       # comma-separated: "bluetooth,awd"
    location = Column(String(100))

    status = Column(String(30), nullable=False, default="available", index=True)
    status_changed_at = Column(DateTime)
    status_changed_by = Column(String(100))

    current_odometer = Column(Integer, default=0, nullable=False)
    fuel_level = Column(Integer, default=100)
    total_miles = Column(Integer, default=0, nullable=False)
    total_rentals = Column(Integer, default=0, nullable=False)

    current_renter_id = Column(String(100))
    current_rental_start = Column(DateTime)
    reservation_start_date = Column(Date)
    reservation_end_date = Column(Date)

    last_service_date = Column(DateTime)
    next_service_date = Column(DateTime)
    last_damage_date = Column(DateTime)
    damage_notes = Column(Text)
    maintenance_notes = Column(Text)
    damage_reported_by = Column(String(100))

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime)
    created_by = Column(String(100))
    updated_by = Column(String(100))

    def __repr__(self):
        return f"<FleetVehicle {self.vehicle_number} {self.year} {self.make} {self.model} status={self.status}>"
