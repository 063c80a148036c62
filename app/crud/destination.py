from datetime import datetime
from typing import Optional, Any, Dict
from sqlalchemy.orm import Session
from sqlalchemy import select, delete, func
from app.core.field_codec import FieldCodec, address_codec
from app.crud.base import CRUDBase
from app.models.delivery import Destination


class CRUDDestination(CRUDBase[Destination]):
    """
    CRUD operations for Destination model.

    Addresses are encoded with the field codec on write; readers decode them
    when building responses.
    """

    def __init__(self, model, codec: FieldCodec):
        super().__init__(model)
        self.codec = codec

    def create(self, db: Session, *, obj_in: Dict[str, Any]) -> Destination:
        obj_data = dict(obj_in)
        obj_data["address"] = self.codec.encode(obj_data["address"])
        return super().create(db=db, obj_in=obj_data)

    def get_in_delivery(
        self,
        db: Session,
        *,
        delivery_id: int,
        destination_id: int
    ) -> Optional[Destination]:
        """Fetch a destination only if it belongs to the given delivery."""
        stmt = select(Destination).where(
            Destination.id == destination_id,
            Destination.delivery_id == delivery_id
        )
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def mark_completed(self, db: Session, *, db_obj: Destination, completed_at: datetime) -> Destination:
        return self.update(db=db, db_obj=db_obj, obj_in={"completed": True, "completed_at": completed_at})

    def count_incomplete(self, db: Session, *, delivery_id: int) -> int:
        stmt = select(func.count(Destination.id)).where(
            Destination.delivery_id == delivery_id,
            Destination.completed.is_(False)
        )
        return db.execute(stmt).scalar_one()

    def delete_for_delivery(self, db: Session, *, delivery_id: int) -> int:
        """Delete every destination of a delivery. Returns the number of rows removed."""
        result = db.execute(delete(Destination).where(Destination.delivery_id == delivery_id))
        return result.rowcount


# Create a singleton instance
destination = CRUDDestination(Destination, address_codec)
