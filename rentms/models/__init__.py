from .billing import Bill
from .complaint import Complaint
from .domain import (
    BillStatus,
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
    Role,
    User,
    utcnow,
)

__all__ = [
    "Bill",
    "BillStatus",
    "Complaint",
    "ComplaintCategory",
    "ComplaintPriority",
    "ComplaintStatus",
    "Role",
    "User",
    "utcnow",
]
