import enum
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Boolean, Text, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base, TimestampMixin


class DeliveryStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class Delivery(Base, TimestampMixin):
    __tablename__ = "delivery"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, nullable=False, index=True)
    status = Column(Enum(DeliveryStatus), nullable=False, default=DeliveryStatus.pending, index=True)
    origin_lat = Column(Float, nullable=False)
    origin_lng = Column(Float, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    total_distance_meters = Column(Float, nullable=False)
    total_duration_seconds = Column(Float, nullable=False)
    baseline_distance_meters = Column(Float, nullable=False)
    degraded = Column(Boolean, nullable=False, default=False)

    destinations = relationship(
        "Destination",
        back_populates="delivery",
        cascade="all, delete-orphan",
        order_by="Destination.visit_order",
    )
    savings_record = relationship(
        "SavingsRecord",
        back_populates="delivery",
        cascade="all, delete-orphan",
        uselist=False,
    )


class Destination(Base, TimestampMixin):
    __tablename__ = "delivery_destination"
    __table_args__ = (
        UniqueConstraint("delivery_id", "visit_order", name="uq_destination_delivery_visit_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    delivery_id = Column(Integer, ForeignKey("delivery.id", ondelete="CASCADE"), nullable=False, index=True)
    address = Column(Text, nullable=False)  # encoded by app.core.field_codec
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    visit_order = Column(Integer, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    delivery = relationship("Delivery", back_populates="destinations")
