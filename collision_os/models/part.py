# collision_os/models/part.py
"""
Part lines per repair order.
Moves through needed → sourcing → ordered → backordered/received → installed → returned/cancelled.
Each status records who moved it there and when (sourced_by/sourcing_date, ...).
"""

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from collision_os.database import Base


class Part(Base):
    __tablename__ = "parts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    repair_order_id = Column(String(100), nullable=False, index=True)
    part_number = Column(String(100), nullable=False, index=True)
    part_description = Column(Text)
    quantity = Column(Integer, default=1, nullable=False)
    unit_cost = Column(Numeric(10, 2), default=0, nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), index=True)
    priority = Column(String(20), default="normal")        # low | normal | high | urgent

    status = Column(String(20), nullable=False, default="needed", index=True)
    status_changed_at = Column(DateTime)
    status_changed_by = Column(String(100))
    sourcing_notes = Column(Text)
    expected_delivery_date = Column(Date)

    sourced_by = Column(String(100))
    sourcing_date = Column(DateTime)
    ordered_by = Column(String(100))
    order_date = Column(DateTime)
    received_by = Column(String(100))
    received_date = Column(DateTime)
    installed_by = Column(String(100))
    installation_date = Column(DateTime)
    returned_by = Column(String(100))
    return_date = Column(DateTime)

    created_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime)
    created_by = Column(String(100))
    updated_by = Column(String(100))

    vendor = relationship("Vendor", lazy="joined")

    def __repr__(self):
        return f"<Part {self.id} {self.part_number} ro={self.repair_order_id} status={self.status}>"
