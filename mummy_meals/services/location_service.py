# mummy_meals/services/location_service.py
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mummy_meals.data.models.delivery_partner_location import DeliveryPartnerLocationModel
from mummy_meals.domain.errors import LocationSharingDisabledError, NotFoundError
from mummy_meals.domain.session import AuthSession
from mummy_meals.domain.status import Role
from mummy_meals.realtime.feed import ChangeFeed, ChangeOp, Topic, get_change_feed
from mummy_meals.repos.location_repo import LocationRepo
from mummy_meals.repos.order_repo import OrderRepo
from mummy_meals.repos.user_repo import UserRepo
from mummy_meals.utils.clock import as_utc, utcnow
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)


def validate_coordinates(latitude: float, longitude: float) -> None:
    if not -90 <= latitude <= 90:
        raise ValueError("Latitude must be between -90 and 90")
    if not -180 <= longitude <= 180:
        raise ValueError("Longitude must be between -180 and 180")


class LocationService:
    """
    Ostatnia pozycja partnera (jeden wiersz na partnera, wygrywa najnowszy zapis).
    Bez throttlingu po stronie serwera, czestotliwosc ustala klient.
    """

    def __init__(self, db: Session, feed: ChangeFeed | None = None):
        self.repo = LocationRepo(db)
        self.user_repo = UserRepo(db)
        self.order_repo = OrderRepo(db)
        self.feed = feed or get_change_feed()

    def set_sharing(self, session: AuthSession, enabled: bool) -> Dict[str, Any]:
        session.require(Role.DELIVERY_PARTNER)

        try:
            if self.user_repo.set_sharing_location(session.user_id, enabled) == 0:
                raise NotFoundError("User not found")
            self.user_repo.commit()
        except Exception:
            self.user_repo.rollback()
            raise

        logger.info(f"Partner {session.user_id} location sharing {'on' if enabled else 'off'}")
        return {"partner_id": session.user_id, "sharing": enabled}

    def report_position(self, session: AuthSession, latitude: float, longitude: float) -> Dict[str, Any]:
        session.require(Role.DELIVERY_PARTNER)
        validate_coordinates(latitude, longitude)

        partner_id = session.user_id
        #wylaczone udostepnianie -> odrzucamy od razu, nic nie zapisujemy
        if not self.user_repo.is_sharing_location(partner_id):
            raise LocationSharingDisabledError(partner_id)

        now = utcnow()
        try:
            if self.repo.update_position(partner_id, latitude, longitude, now) == 0:
                op = ChangeOp.INSERT
                self.repo.insert(
                    DeliveryPartnerLocationModel(
                        partner_id=partner_id,
                        latitude=latitude,
                        longitude=longitude,
                        updated_at=now,
                    )
                )
            else:
                op = ChangeOp.UPDATE
            self.repo.commit()
        except IntegrityError:
            #pierwszy zapis z dwoch requestow naraz, drugi nadpisuje
            self.repo.rollback()
            self.repo.update_position(partner_id, latitude, longitude, now)
            self.repo.commit()
            op = ChangeOp.UPDATE
        except Exception:
            self.repo.rollback()
            raise

        location = self.repo.get(partner_id)
        self.feed.publish_change(Topic.DELIVERY_PARTNER_LOCATIONS, op, location)
        return self._serialize(location)

    def get_location(self, session: AuthSession, partner_id: int) -> Dict[str, Any]:
        allowed = session.user_id == partner_id or self.order_repo.has_active_delivery(
            partner_id, session.user_id
        )
        if not allowed:
            raise PermissionError("No access to this partner's location")

        location = self.repo.get(partner_id)
        if not location:
            raise NotFoundError("Location not available yet")
        return self._serialize(location)

    @staticmethod
    def _serialize(location: DeliveryPartnerLocationModel) -> Dict[str, Any]:
        updated_at = as_utc(location.updated_at)
        return {
            "partner_id": location.partner_id,
            "latitude": location.latitude,
            "longitude": location.longitude,
            "updated_at": updated_at,
            "age_seconds": max(0.0, (utcnow() - updated_at).total_seconds()),
        }
