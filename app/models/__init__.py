# Models package
from .user import User, UserRole
from .property import Property, PropertyStatus, CancellationPolicy, BOOKABLE_STATUSES
from .reservation import (
    Reservation,
    ReservationStatus,
    RESERVATION_TRANSITIONS,
    TERMINAL_STATUSES
)
from .availability import (
    AvailabilityCell,
    PricingRule,
    DiscountRule,
    DiscountType,
    PropertyBlock,
    BOOKED_NOTE,
    BLOCKED_NOTE_PREFIX
)
from .experience import (
    Experience,
    ExperienceStatus,
    ExperienceAvailabilityCell,
    ExperienceDayStatus,
    ExperienceParticipant,
    ParticipantStatus,
    ExperienceBooking,
    ExperienceBookingStatus
)
from .group import (
    Group,
    GroupStatus,
    GroupPrivacy,
    GroupMember,
    MemberState,
    MemberRole,
    JoinRequest,
    JoinRequestStatus,
    ChatMessage,
    MessageType,
    GroupWishlistItem,
    GroupWishlistLike,
    OPEN_GROUP_STATUSES
)
from .invite import Invite, InviteStatus
from .notification import Notification, NotificationType
from .audit_log import AuditLog, AuditAction
from .review import Review

__all__ = [
    "User", "UserRole",
    "Property", "PropertyStatus", "CancellationPolicy", "BOOKABLE_STATUSES",
    "Reservation", "ReservationStatus", "RESERVATION_TRANSITIONS", "TERMINAL_STATUSES",
    "AvailabilityCell", "PricingRule", "DiscountRule", "DiscountType", "PropertyBlock",
    "BOOKED_NOTE", "BLOCKED_NOTE_PREFIX",
    "Experience", "ExperienceStatus", "ExperienceAvailabilityCell", "ExperienceDayStatus",
    "ExperienceParticipant", "ParticipantStatus", "ExperienceBooking", "ExperienceBookingStatus",
    "Group", "GroupStatus", "GroupPrivacy", "GroupMember", "MemberState", "MemberRole",
    "JoinRequest", "JoinRequestStatus", "ChatMessage", "MessageType",
    "GroupWishlistItem", "GroupWishlistLike", "OPEN_GROUP_STATUSES",
    "Invite", "InviteStatus",
    "Notification", "NotificationType",
    "AuditLog", "AuditAction",
    "Review",
]
