from .auth import User, Profile, UserRole, SessionToken, Invitation
from .security import SecurityEvent
from .inventory import Product, StockMovement, Sale
from .operations import Order, Incident
from .communications import Notification

__all__ = [
    'User', 'Profile', 'UserRole', 'SessionToken', 'Invitation',
    'SecurityEvent',
    'Product', 'StockMovement', 'Sale',
    'Order', 'Incident',
    'Notification',
]
