"""Domain entity describing a care family and its members."""

from dataclasses import dataclass, field

from .user import User


@dataclass
class Family:
    """A family group whose members share care activity notifications."""

    id: str
    name: str
    members: list[User] = field(default_factory=list)
