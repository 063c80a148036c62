from app.crud.base import CRUDBase
from .delivery import delivery
from .destination import destination
from .savings_record import savings_record

__all__ = ["CRUDBase", "delivery", "destination", "savings_record"]
