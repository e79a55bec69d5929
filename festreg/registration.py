"""Team registration: form rules, UPI payment links and submission."""

import base64
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

import requests

from festreg import STATUS_PENDING, Event, Member, Registration
from festreg.config import Settings
from festreg.store import RegistrationStore, StoreError, to_document

log = logging.getLogger(__name__)

MIN_PHONE_LENGTH = 10
SHEET_TIMEOUT = 15  # seconds

_FEE_RE = re.compile(r'₹?(\d+)')

# Deep-link schemes of the common UPI apps
UPI_SCHEMES = {
    'upi': 'upi://pay',
    'gpay': 'gpay://upi/pay',
    'phonepe': 'phonepe://pay',
    'paytm': 'paytmmp://pay',
}


def required_members(team_size: str) -> int:
    """Number of members the form asks for, derived from the event's team size text."""
    if '8 + 2' in team_size or '8+2' in team_size:
        return 10
    if '4' in team_size:
        return 4
    if '2' in team_size:
        return 2
    if 'Solo' in team_size or '1' in team_size or 'Individual' in team_size:
        return 1
    return 2


def fee_amount(registration_fee: str) -> str:
    """First amount in a fee label, e.g. ``"₹300/Team"`` -> ``"300"``."""
    match = _FEE_RE.search(registration_fee)
    return match.group(1) if match else '0'


def payment_links(event: Event, upi_id: str, upi_name: str) -> dict[str, str]:
    """UPI deep links pre-filled with the payee and the event fee."""
    query = (
        f"pa={upi_id}&pn={quote(upi_name)}"
        f"&am={fee_amount(event.registration_fee)}&cu=INR"
    )
    return {app: f"{base}?{query}" for app, base in UPI_SCHEMES.items()}


@dataclass
class RegistrationForm:
    """What a registrant submits for one team."""

    college_name: str
    email: str
    members: list[Member] = field(default_factory=list)
    utr_number: str = ''
    user_id: str = ''


def validate_form(form: RegistrationForm, event: Event) -> None:
    """Check a submitted form against the event's rules.

    Raises:
        ValueError: With a message that can be shown to the registrant.
    """
    if not form.college_name.strip():
        raise ValueError("Please enter your college name")

    expected = required_members(event.team_size)
    if len(form.members) != expected:
        raise ValueError(f"{event.title} needs exactly {expected} member(s)")

    for i, member in enumerate(form.members, start=1):
        if not member.name.strip():
            raise ValueError(f"Please enter Member {i} name")
        if len(member.phone.strip()) < MIN_PHONE_LENGTH:
            raise ValueError(f"Please enter a valid phone number for Member {i}")

    if not form.utr_number.strip():
        raise ValueError("Please enter the UTR Number")


def mirror_to_sheet(
    url: Optional[str],
    registration: Registration,
    screenshot: bytes = b'',
    content_type: str = '',
    session: Optional[requests.Session] = None,
) -> bool:
    """Send a backup copy of a registration to the spreadsheet webhook.

    The spreadsheet is only a backup, so failures are logged and
    reported through the return value.

    Returns:
        True if the webhook accepted the payload.
    """
    if not url:
        log.debug("No spreadsheet webhook configured; mirror skipped")
        return False

    payload = to_document(registration)
    payload['registeredAt'] = (
        registration.registered_at or datetime.now(timezone.utc)
    ).isoformat()
    payload['fileData'] = base64.b64encode(screenshot).decode('ascii') if screenshot else ''
    payload['mimeType'] = content_type if screenshot else ''

    http = session or requests
    try:
        response = http.post(url, json=payload, timeout=SHEET_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        log.warning(
            "Spreadsheet sync failed for %s team #%d: %s",
            registration.event_id, registration.team_number, exc,
        )
        return False
    return True


def submit_registration(
    store: RegistrationStore,
    event: Event,
    form: RegistrationForm,
    screenshot: bytes,
    settings: Settings,
    content_type: str = 'image/jpeg',
    session: Optional[requests.Session] = None,
) -> Registration:
    """Register a team for an event.

    Assigns the next team number, uploads the payment screenshot, stores
    the registration as pending and mirrors it to the spreadsheet.

    Raises:
        ValueError: If the form is incomplete.
        StoreError: If the screenshot or the record cannot be saved.
    """
    validate_form(form, event)
    if not screenshot:
        raise ValueError("Please upload the payment screenshot")

    team_number = store.next_team_number(event.id)
    team_id = f"{event.id}-{team_number}"
    screenshot_url = store.upload_screenshot(event.id, team_id, screenshot, content_type)

    registration = Registration(
        id='',
        event_id=event.id,
        team_number=team_number,
        event_name=event.title,
        payment_status=STATUS_PENDING,
        utr_number=form.utr_number.strip(),
        category=event.category,
        college_name=form.college_name.strip(),
        email=form.email.strip(),
        members=[Member(name=m.name.strip(), phone=m.phone.strip()) for m in form.members],
        registration_fee=event.registration_fee,
        screenshot_url=screenshot_url,
        registered_at=datetime.now(timezone.utc),
        user_id=form.user_id,
    )
    try:
        store.add_registration(registration)
    except StoreError as exc:
        log.error("Screenshot %s has no registration and can be removed", screenshot_url)
        raise StoreError(f"{exc} (uploaded screenshot left at {screenshot_url})") from exc

    mirror_to_sheet(
        settings.sheets_webhook_url, registration, screenshot, content_type, session=session,
    )
    return registration
