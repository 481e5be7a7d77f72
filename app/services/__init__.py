# Services package
from .calendar_ledger import CalendarLedger
from .pricing_engine import PricingEngine, PriceBreakdown
from .refund_policy import calculate_refund, calculate_reservation_refund
from .reservation_service import ReservationService
from .reservation_status_updater import ReservationStatusUpdater
from .experience_availability import ExperienceAvailabilityService
from .group_lobby import GroupLobby
from .invite_service import InviteService
from .join_request_service import JoinRequestService
from .experience_booking_service import ExperienceBookingService
from .chat_service import ChatService
from .review_service import ReviewService

__all__ = [
    "CalendarLedger",
    "PricingEngine", "PriceBreakdown",
    "calculate_refund", "calculate_reservation_refund",
    "ReservationService",
    "ReservationStatusUpdater",
    "ExperienceAvailabilityService",
    "GroupLobby",
    "InviteService",
    "JoinRequestService",
    "ExperienceBookingService",
    "ChatService",
    "ReviewService",
]
