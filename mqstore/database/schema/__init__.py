from .base import Base, metadata
from .subscription import SubscriptionRow
from .retained import RetainedRow
from .outgoing import OutgoingRow
from .incoming import IncomingRow
from .will import WillRow

__all__ = [
    "Base",
    "metadata",
    "SubscriptionRow",
    "RetainedRow",
    "OutgoingRow",
    "IncomingRow",
    "WillRow",
]
