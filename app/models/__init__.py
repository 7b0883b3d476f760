from app.models.profile import Profile  # noqa: F401
from app.models.vault import (  # noqa: F401
    AccessControl,
    AccessLevel,
    DeviceToken,
    Document,
    InactivityTrigger,
    Nominee,
    NomineeRelation,
    NomineeStatus,
    NomineeVerificationToken,
    OTPPurpose,
    OTPToken,
    ResourceType,
)
