from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import Select, select, desc, func
from app.crud.base import CRUDBase
from app.models.delivery import Delivery, DeliveryStatus


class CRUDDelivery(CRUDBase[Delivery]):
    """
    CRUD operations for Delivery model.
    """

    def locking_select(self, *, id: int, owner_id: int) -> Select:
        """SELECT ... FOR UPDATE on one delivery of an owner."""
        return (
            select(Delivery)
            .where(Delivery.id == id, Delivery.owner_id == owner_id)
            .with_for_update()
        )

    def get_for_update(self, db: Session, *, id: int, owner_id: int) -> Optional[Delivery]:
        """
        Fetch a delivery and lock its row until the current transaction ends.

        Concurrent lifecycle operations on the same delivery queue behind the
        lock, so their read-check-write sequences never interleave.
        """
        result = db.execute(self.locking_select(id=id, owner_id=owner_id))
        return result.scalar_one_or_none()

    def get_with_details(self, db: Session, *, id: int, owner_id: int) -> Optional[Delivery]:
        """Fetch a delivery with destinations and savings eagerly loaded."""
        stmt = (
            select(Delivery)
            .where(Delivery.id == id, Delivery.owner_id == owner_id)
            .options(selectinload(Delivery.destinations), selectinload(Delivery.savings_record))
        )
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def get_multi(
        self,
        db: Session,
        *,
        skip: int = 0,
        limit: int = 100,
        owner_id: int,
        status: Optional[DeliveryStatus] = None
    ) -> List[Delivery]:
        """
        Get deliveries newest first, with optional status filtering.
        """
        stmt = (
            select(Delivery)
            .where(Delivery.owner_id == owner_id)
            .options(selectinload(Delivery.destinations), selectinload(Delivery.savings_record))
        )

        if status:
            stmt = stmt.where(Delivery.status == status)

        stmt = stmt.order_by(desc(Delivery.created_at), desc(Delivery.id)).offset(skip).limit(limit)
        result = db.execute(stmt)
        return list(result.scalars().all())

    def count(
        self,
        db: Session,
        *,
        owner_id: int,
        status: Optional[DeliveryStatus] = None,
        created_since: Optional[datetime] = None
    ) -> int:
        """Count deliveries for an owner, optionally by status or creation time."""
        stmt = select(func.count(Delivery.id)).where(Delivery.owner_id == owner_id)
        if status:
            stmt = stmt.where(Delivery.status == status)
        if created_since:
            stmt = stmt.where(Delivery.created_at >= created_since)
        return db.execute(stmt).scalar_one()


# Create a singleton instance
delivery = CRUDDelivery(Delivery)
