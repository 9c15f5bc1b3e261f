# collision_os/models/loaner_reservation.py
"""
Loaner reservations (assignments).
Holds the half-open window [pickup_date, expected_return_date) plus the
checkout and return snapshots captured when the vehicle changes hands.
Only confirmed/active rows block the vehicle for overlapping windows.
"""

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Numeric, ForeignKey
from sqlalchemy.orm import relationship, synonym
from collision_os.database import Base


class LoanerReservation(Base):
    __tablename__ = "loaner_reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    confirmation_number = Column(String(20), unique=True, index=True)
    customer_id = Column(String(100), nullable=False, index=True)
    repair_order_id = Column(String(100), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("fleet_vehicles.id"), nullable=False, index=True)

    pickup_date = Column(Date, nullable=False)
    expected_return_date = Column(Date, nullable=False)       # exclusive
    duration_days = Column(Integer)
    vehicle_preferences = Column(Text)                        # JSON
    reservation_notes = Column(Text)

    status = Column(String(20), nullable=False, default="confirmed", index=True)
    status_changed_at = Column(DateTime)
    status_changed_by = Column(String(100))

    # Checkout snapshot
    checkout_at = Column(DateTime, index=True)
    checkout_odometer = Column(Integer)
    checkout_fuel_level = Column(Integer)
    checkout_condition_notes = Column(Text)
    checkout_notes = Column(Text)
    customer_signature = Column(Text)
    checkout_inspected_by = Column(String(100))

    # Return snapshot
    return_at = Column(DateTime, index=True)
    return_odometer = Column(Integer)
    return_fuel_level = Column(Integer)
    return_condition_notes = Column(Text)
    damage_assessment_notes = Column(Text)
    additional_charges_amount = Column(Numeric(10, 2))
    return_notes = Column(Text)
    return_inspected_by = Column(String(100))
    miles_driven = Column(Integer)

    cancelled_at = Column(DateTime)
    cancelled_by = Column(String(100))
    cancellation_reason = Column(Text)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime)
    created_by = Column(String(100))
    updated_by = Column(String(100))

    vehicle = relationship("FleetVehicle", lazy="joined")

    # Availability resolver reads assignments by unit_id
    unit_id = synonym("vehicle_id")

    def __repr__(self):
        return (f"<LoanerReservation {self.id} vehicle={self.vehicle_id} "
                f"[{self.pickup_date}, {self.expected_return_date}) status={self.status}>")
