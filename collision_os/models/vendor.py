# collision_os/models/vendor.py
"""Parts vendors. discount_percentage drives cost price in margin calculations."""

from sqlalchemy import Column, Integer, String, DateTime, Numeric
from collision_os.database import Base


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    vendor_code = Column(String(50), unique=True, nullable=False, index=True)
    discount_percentage = Column(Numeric(5, 2), default=0, nullable=False)
    markup_percentage = Column(Numeric(5, 2), default=0, nullable=False)
    typical_delivery_days = Column(Integer, default=3)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Vendor {self.vendor_code} discount={self.discount_percentage}%>"
