from pydantic import BaseModel


class DashboardSummary(BaseModel):
    today_deliveries: int
    pending_deliveries: int
    in_progress_deliveries: int
    completed_deliveries: int
    fuel_saved_liters: float
    cost_saved: float
