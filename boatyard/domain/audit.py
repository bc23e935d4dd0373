"""
Audit context stamped onto records created or changed by a service call.
"""
from dataclasses import dataclass

SYSTEM_USER = "system"


@dataclass(frozen=True)
class AuditContext:
    user_id: str = SYSTEM_USER
    user_name: str = SYSTEM_USER

    @classmethod
    def system(cls) -> "AuditContext":
        return cls()
