from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .service import Service
from .booking import Booking
from .payment import Payment
from .pending_transaction import PendingTransaction
from .notification import Notification
from .purchase import Purchase
from .schedule import Schedule
