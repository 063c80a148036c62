from datetime import datetime, timezone
from sqlalchemy.orm import Session

from app.crud.delivery import delivery as delivery_crud
from app.crud.savings_record import savings_record as savings_crud
from app.models.delivery import DeliveryStatus
from app.schemas.dashboard import DashboardSummary


class DashboardService:
    def get_summary(self, db: Session, owner_id: int) -> DashboardSummary:
        """
        Aggregate delivery counts and savings totals for the driver's dashboard.
        """
        start_of_day = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        fuel_saved, cost_saved = savings_crud.totals(db=db, owner_id=owner_id)

        return DashboardSummary(
            today_deliveries=delivery_crud.count(db=db, owner_id=owner_id, created_since=start_of_day),
            pending_deliveries=delivery_crud.count(db=db, owner_id=owner_id, status=DeliveryStatus.pending),
            in_progress_deliveries=delivery_crud.count(db=db, owner_id=owner_id, status=DeliveryStatus.in_progress),
            completed_deliveries=delivery_crud.count(db=db, owner_id=owner_id, status=DeliveryStatus.completed),
            fuel_saved_liters=fuel_saved,
            cost_saved=cost_saved,
        )


dashboard_service = DashboardService()
