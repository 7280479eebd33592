import datetime as dt
import enum
import uuid

from sqlalchemy import JSON, Date, Enum, ForeignKey, Integer, String, Text, Time, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from campus_events.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from campus_events.models.user import Society


class EventCategory(str, enum.Enum):
    TECHNICAL = "Technical"
    CULTURAL = "Cultural"
    SPORTS = "Sports"
    WORKSHOP = "Workshop"
    COMPETITION = "Competition"
    SEMINAR = "Seminar"
    SOCIAL = "Social"
    OTHER = "Other"


class Event(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "events"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    venue: Mapped[str] = mapped_column(String(300), nullable=False)
    society: Mapped[Society] = mapped_column(Enum(Society, name="society"), nullable=False, index=True)
    category: Mapped[EventCategory] = mapped_column(
        Enum(EventCategory, name="event_category", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Denormalized copy of the registered user ids (as strings). Written only by
    # the registration service; the registrations table is the source of truth.
    roster: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    cover_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    @property
    def starts_at(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.time)

    @property
    def registered_count(self) -> int:
        return len(self.roster or [])

    @property
    def fill_ratio(self) -> float:
        if not self.capacity:
            return 0.0
        return self.registered_count / self.capacity
