import enum

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from campus_events.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class UserRole(str, enum.Enum):
    STUDENT = "student"
    ORGANIZER = "society"


class Society(str, enum.Enum):
    ACM = "ACM"
    CLS = "CLS"
    CSS = "CSS"


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.STUDENT,
    )

    # Only organizers own a society
    society: Mapped[Society | None] = mapped_column(
        Enum(Society, name="society"), nullable=True
    )

    @property
    def is_organizer(self) -> bool:
        return self.role == UserRole.ORGANIZER
