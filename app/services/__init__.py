from app.services.route_optimization import route_optimization_service
from app.services.delivery_lifecycle import delivery_lifecycle
from .dashboard import dashboard_service

__all__ = ["route_optimization_service", "delivery_lifecycle", "dashboard_service"]
