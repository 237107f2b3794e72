from dataclasses import dataclass

from sports_booking.core import config


@dataclass(frozen=True)
class ActorContext:
    """Who is making the current request. Built per request, never cached."""

    user_id: str
    email: str | None = None
    role: str = 'user'
    token_id: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.role.lower() in config.STAFF_ROLES
