from sqlalchemy import Column, Integer, Float, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base, TimestampMixin


class SavingsRecord(Base, TimestampMixin):
    """
    Estimated fuel savings of an optimized delivery versus its baseline.

    ``cost_saved`` stays null until a fuel price is supplied, either at
    creation time or through a later backfill.
    """
    __tablename__ = "savings_record"

    id = Column(Integer, primary_key=True, index=True)
    delivery_id = Column(Integer, ForeignKey("delivery.id", ondelete="CASCADE"), nullable=False, unique=True)
    owner_id = Column(Integer, nullable=False, index=True)
    optimized_distance_meters = Column(Float, nullable=False)
    baseline_distance_meters = Column(Float, nullable=False)
    fuel_saved_liters = Column(Float, nullable=False)
    fuel_price_per_liter = Column(Float, nullable=True)
    cost_saved = Column(Float, nullable=True)

    delivery = relationship("Delivery", back_populates="savings_record")
