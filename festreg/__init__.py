"""Core module for festreg."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

STATUS_PENDING = 'pending'
STATUS_COMPLETED = 'completed'
PAYMENT_STATUSES = (STATUS_PENDING, STATUS_COMPLETED)

CATEGORIES = ('it', 'management', 'cultural', 'sports')


@dataclass
class Member:
    """A single team member as entered on the registration form."""

    name: str
    phone: str


@dataclass
class Event:
    """An entry of the fest event catalog."""

    id: str
    title: str
    category: str         # it, management, cultural, sports
    team_size: str        # free text, e.g. "2 Members", "8 + 2 Players"
    registration_fee: str  # free text, e.g. "₹300/Team"
    coordinator: str = ''
    coordinator_phone: str = ''


@dataclass
class Registration:
    """A team registration stored under its event's team collection."""

    id: str
    event_id: str
    team_number: int
    event_name: str
    payment_status: str   # pending, completed
    utr_number: str = ''
    category: str = ''
    college_name: str = ''
    email: str = ''
    members: list[Member] = field(default_factory=list)
    registration_fee: str = ''
    screenshot_url: str = ''
    registered_at: Optional[datetime] = None
    user_id: str = ''

    @property
    def is_pending(self) -> bool:
        return self.payment_status != STATUS_COMPLETED

    @property
    def ref(self) -> 'RecordRef':
        return RecordRef(id=self.id, event_id=self.event_id)


@dataclass(frozen=True)
class RecordRef:
    """Address of a single registration document."""

    id: str
    event_id: str


@dataclass
class UtrMatch:
    """A pending registration whose UTR was found in a bank statement."""

    id: str
    event_id: str
    team_number: int
    event_name: str
    utr_number: str

    @property
    def ref(self) -> RecordRef:
        return RecordRef(id=self.id, event_id=self.event_id)
