from typing import Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import select, delete, func
from app.crud.base import CRUDBase
from app.models.savings_record import SavingsRecord


class CRUDSavingsRecord(CRUDBase[SavingsRecord]):
    """
    CRUD operations for SavingsRecord model.
    """

    def get_for_delivery(self, db: Session, *, delivery_id: int, owner_id: int) -> Optional[SavingsRecord]:
        stmt = select(SavingsRecord).where(
            SavingsRecord.delivery_id == delivery_id,
            SavingsRecord.owner_id == owner_id
        )
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def delete_for_delivery(self, db: Session, *, delivery_id: int) -> int:
        result = db.execute(delete(SavingsRecord).where(SavingsRecord.delivery_id == delivery_id))
        return result.rowcount

    def totals(self, db: Session, *, owner_id: int) -> Tuple[float, float]:
        """
        Sum fuel and money saved across an owner's deliveries.

        Returns:
            (fuel saved liters, cost saved); records without a price add nothing to cost
        """
        stmt = select(
            func.coalesce(func.sum(SavingsRecord.fuel_saved_liters), 0.0),
            func.coalesce(func.sum(SavingsRecord.cost_saved), 0.0)
        ).where(SavingsRecord.owner_id == owner_id)
        fuel, cost = db.execute(stmt).one()
        return float(fuel), float(cost)


# Create singleton instance
savings_record = CRUDSavingsRecord(SavingsRecord)
