"""
ORM models for registrants, performances, compliance records, passes and staff accounts.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .security import User  # noqa: F401
from .registrants import (  # noqa: F401
    Guest,
    Student,
)
from .performances import (  # noqa: F401
    Group,
    GroupMember,
    Performance,
    Single,
)
from .compliance import (  # noqa: F401
    Consent,
    Endorsement,
    HealthFitness,
    Requirement,
)
from .passes import (  # noqa: F401
    AttendanceLog,
    QrCode,
)
