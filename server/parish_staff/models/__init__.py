from .staff import StaffAccount, TermRecord  # noqa: F401
from .audit import StaffAuditLog  # noqa: F401
from .notification import StaffNotification  # noqa: F401
from .credential import Credential  # noqa: F401
