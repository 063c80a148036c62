from .delivery import Delivery, DeliveryStatus, Destination
from .savings_record import SavingsRecord
