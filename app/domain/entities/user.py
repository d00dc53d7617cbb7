"""Domain entity representing a user."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """Core attributes of an application user needed to deliver notifications."""

    id: str
    email: str | None
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool = True
    created_at: datetime | None = None

    @property
    def display_name(self) -> str:
        """Return ``"First Last"`` or the email address when no name is known."""

        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.email or "A user"
