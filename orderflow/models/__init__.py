# orderflow/models/__init__.py
from orderflow.models.user_models import User, RefreshToken, Client, Manufacturer, UserRole
from orderflow.models.order_models import (
    CatalogProduct, Order, OrderProduct, OrderItem, OrderMedia,
    RoutedTo, ProductStatus, ItemStatus, SampleStatus,
)
from orderflow.models.audit_models import AuditLogEntry
from orderflow.models.notification_models import Notification, EmailHistory
from orderflow.models.inventory_models import AccessoryType, AccessoryInventory
