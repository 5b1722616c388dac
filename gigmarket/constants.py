from enum import Enum


class Role(str, Enum):
    CONTRACTOR = "contractor"
    WORKER = "worker"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    OPEN = "open"
    ACCEPTED = "accepted"
    PAID = "paid"
    COMPLETED = "completed"


# Statuses in which a worker is engaged on the order
ENGAGED_STATUSES = (OrderStatus.ACCEPTED.value, OrderStatus.PAID.value)


class CargoType(str, Enum):
    CARGA = "carga"
    MUDANCA = "mudanca"
    AJUDANTE = "ajudante"
    MARIDO = "marido"
    FREELANCE = "freelance"
    SACARIA = "sacaria"  # legacy rows only


CARGO_TYPES = {c.value for c in CargoType}


class IntentStatus(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"
    EXPIRED = "expired"


class NotificationType(str, Enum):
    NEW_PROPOSAL = "new_proposal"
    PROPOSAL_ACCEPTED = "proposal_accepted"
    NEW_MESSAGE = "new_message"
    ORDER_COMPLETED = "order_completed"
    NEW_ORDER_IN_RADIUS = "new_order_in_radius"
    ENGAGEMENT_CANCELLED = "engagement_cancelled"
