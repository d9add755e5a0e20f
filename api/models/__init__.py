from models.franchise import Franchise
from models.subscription_order import SubscriptionOrder, SubOrder, DeliveryDate
from models.app_setting import AppSetting

__all__ = [
    "Franchise", "SubscriptionOrder", "SubOrder", "DeliveryDate", "AppSetting",
]
