"""
Push Notification Client

Thin client for the Expo push API. Delivery is best-effort: errors are
reported in the result and logged, never raised to the caller.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..models.user import User

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    success: bool
    sent: int = 0
    status_code: Optional[int] = None
    error: Optional[str] = None
    duration_ms: int = 0
    tickets: List[Dict[str, Any]] = field(default_factory=list)


class PushClient:
    """Sends push messages to Expo push tokens"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None):
        self.base_url = base_url or settings.expo_push_url
        self.timeout = timeout or settings.push_timeout_seconds

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def build_messages(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        return [
            {
                "to": token,
                "sound": "default",
                "title": title,
                "body": body,
                "data": data or {},
            }
            for token in tokens
            if token
        ]

    def send(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> PushResult:
        messages = self.build_messages(tokens, title, body, data)
        if not messages:
            return PushResult(success=True, sent=0)

        start_time = time.time()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.base_url, json=messages, headers=self._get_headers())
        except httpx.HTTPError as e:
            logger.warning(f"Push request failed: {e}")
            return PushResult(success=False, error=str(e)[:200])

        duration_ms = int((time.time() - start_time) * 1000)
        if response.status_code >= 400:
            logger.warning(f"Push API returned {response.status_code}: {response.text[:200]}")
            return PushResult(
                success=False,
                status_code=response.status_code,
                error=response.text[:200],
                duration_ms=duration_ms
            )

        try:
            tickets = response.json().get("data", [])
        except ValueError:
            tickets = []

        logger.info(f"Push sent to {len(messages)} device(s) in {duration_ms}ms")
        return PushResult(
            success=True,
            sent=len(messages),
            status_code=response.status_code,
            duration_ms=duration_ms,
            tickets=tickets if isinstance(tickets, list) else []
        )

    def send_to_user(
        self,
        user: User,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> PushResult:
        """Push to every registered device of a user who allows notifications"""
        if not settings.push_enabled:
            return PushResult(success=True, sent=0, error="disabled")
        if user is None or not user.allows_notifications:
            return PushResult(success=True, sent=0)

        tokens = [t for t in (user.push_tokens or []) if isinstance(t, str)]
        return self.send(tokens, title, body, data)


def get_push_client() -> PushClient:
    return PushClient()


# ================================
# MESSAGE TEMPLATES
# ================================

def reservation_created_message(reservation_id: str, property_id: str, guest_name: str, property_title: str):
    return (
        "🏠 Nouvelle Réservation!",
        f"{guest_name} a fait une réservation pour {property_title}",
        {
            "type": "reservation_created",
            "id": reservation_id,
            "propertyId": property_id,
            "screen": "HostReservations",
            "action": "view_reservation",
        },
    )


def reservation_decision_message(reservation_id: str, property_id: str, host_name: str,
                                 property_title: str, accepted: bool):
    if accepted:
        title = "🎉 Réservation Acceptée!"
        body = f"{host_name} a accepté votre réservation pour {property_title}"
    else:
        title = "😔 Réservation Refusée"
        body = f"{host_name} a refusé votre réservation pour {property_title}"
    return (
        title,
        body,
        {
            "type": "reservation_accepted" if accepted else "reservation_rejected",
            "id": reservation_id,
            "propertyId": property_id,
            "screen": "MyReservations",
            "action": "view_reservation",
        },
    )


def experience_booked_message(experience_id: str, guest_name: str, experience_title: str):
    return (
        "🎯 Nouvelle Réservation d'Expérience!",
        f"{guest_name} a réservé votre expérience: {experience_title}",
        {
            "type": "experience_booked",
            "id": experience_id,
            "screen": "ExperienceBookings",
            "action": "view_booking",
        },
    )
