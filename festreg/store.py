"""Firestore-backed registration store.

Registrations live at ``registrations/{eventId}/teams/{docId}`` with the
camelCase field names written by the public registration form. Every
document read goes through ``parse_registration`` so nothing downstream
sees an untyped record.
"""

import dataclasses
import json
import logging
from datetime import datetime
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore, storage
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions

from festreg import (
    PAYMENT_STATUSES,
    Event,
    Member,
    RecordRef,
    Registration,
)
from festreg.auth import AdminContext, require_edit
from festreg.catalog import event_ids
from festreg.config import Settings

log = logging.getLogger(__name__)

ROOT_COLLECTION = 'registrations'
TEAMS_COLLECTION = 'teams'

# Failed calls and expired or unusable credentials
BACKEND_ERRORS = (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)

# Fields written back when a registration is edited in place
EDITABLE_FIELDS = (
    'collegeName',
    'members',
    'registrationFee',
    'eventName',
    'utrNumber',
    'paymentStatus',
    'category',
)


class StoreError(Exception):
    """A store operation failed; the message is meant for the operator."""


def _optional_str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _parse_members(raw: Any) -> list[Member]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError("members must be a list")
    members = []
    for i, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            raise ValueError(f"member {i} is not a map")
        members.append(Member(
            name=str(item.get('name') or ''),
            phone=str(item.get('phone') or ''),
        ))
    return members


def parse_registration(event_id: str, doc_id: str, data: dict) -> Registration:
    """Build a Registration from a raw team document.

    Args:
        event_id: Id of the event collection the document was read from.
        doc_id: Firestore document id.
        data: The document's fields.

    Returns:
        The typed registration.

    Raises:
        ValueError: If a required field is missing or malformed.
    """
    team_number = data.get('teamNumber')
    if isinstance(team_number, bool) or not isinstance(team_number, int) or team_number < 1:
        raise ValueError("teamNumber must be a positive integer")

    event_name = data.get('eventName')
    if not isinstance(event_name, str) or not event_name.strip():
        raise ValueError("eventName is required")

    status = data.get('paymentStatus')
    if status not in PAYMENT_STATUSES:
        raise ValueError(f"paymentStatus {status!r} is not one of {', '.join(PAYMENT_STATUSES)}")

    # utrNumber is kept as typed; digits-only is not enforced here
    utr = data.get('utrNumber')
    utr_number = '' if utr is None else str(utr)

    registered_at = data.get('registeredAt')
    if registered_at is not None and not isinstance(registered_at, datetime):
        raise ValueError("registeredAt must be a timestamp")

    return Registration(
        id=doc_id,
        event_id=event_id,
        team_number=team_number,
        event_name=event_name,
        payment_status=status,
        utr_number=utr_number,
        category=_optional_str(data, 'category'),
        college_name=_optional_str(data, 'collegeName'),
        email=_optional_str(data, 'email'),
        members=_parse_members(data.get('members')),
        registration_fee=_optional_str(data, 'registrationFee'),
        screenshot_url=_optional_str(data, 'screenshotUrl'),
        registered_at=registered_at,
        user_id=_optional_str(data, 'userId'),
    )


def to_document(registration: Registration) -> dict:
    """Map a Registration back to its document fields (without the id)."""
    return {
        'teamNumber': registration.team_number,
        'eventId': registration.event_id,
        'eventName': registration.event_name,
        'category': registration.category,
        'email': registration.email,
        'collegeName': registration.college_name,
        'members': [{'name': m.name, 'phone': m.phone} for m in registration.members],
        'registrationFee': registration.registration_fee,
        'utrNumber': registration.utr_number,
        'screenshotUrl': registration.screenshot_url,
        'paymentStatus': registration.payment_status,
        'registeredAt': registration.registered_at,
        'userId': registration.user_id,
    }


def _sort_key(reg: Registration) -> tuple:
    # Newest first; records without a timestamp go last
    if reg.registered_at is None:
        return (1, 0.0)
    return (0, -reg.registered_at.timestamp())


class RegistrationStore:
    """Read and write team registrations for the catalog's events."""

    def __init__(self, client, events: list[Event], bucket=None):
        self._client = client
        self._events = events
        self._bucket = bucket
        self.quarantined: list[tuple[str, str, str]] = []

    def _teams(self, event_id: str):
        return (
            self._client.collection(ROOT_COLLECTION)
            .document(event_id)
            .collection(TEAMS_COLLECTION)
        )

    def _event_ids(self, event_id: Optional[str]) -> list[str]:
        if event_id is not None:
            return [event_id]
        return event_ids(self._events)

    def load_registrations(self, event_id: Optional[str] = None) -> list[Registration]:
        """Read every registration of one event, or of the whole catalog.

        Documents that fail validation are logged and recorded in
        ``self.quarantined`` instead of being returned.

        Raises:
            StoreError: If an event collection cannot be read.
        """
        self.quarantined = []
        registrations: list[Registration] = []

        for eid in self._event_ids(event_id):
            try:
                snapshots = list(self._teams(eid).stream())
            except BACKEND_ERRORS as exc:
                raise StoreError(f"Could not read registrations for {eid}: {exc}") from exc

            for snap in snapshots:
                try:
                    registrations.append(parse_registration(eid, snap.id, snap.to_dict() or {}))
                except ValueError as exc:
                    log.warning("Registration %s/%s quarantined: %s", eid, snap.id, exc)
                    self.quarantined.append((eid, snap.id, str(exc)))

        registrations.sort(key=_sort_key)
        log.info(
            "%d registrations loaded (%d quarantined)",
            len(registrations), len(self.quarantined),
        )
        return registrations

    def load_pending(self, event_id: Optional[str] = None) -> list[Registration]:
        return [r for r in self.load_registrations(event_id) if r.is_pending]

    def next_team_number(self, event_id: str) -> int:
        """Team numbers count up from 1 in order of arrival.

        Two submissions racing each other can be handed the same number.
        """
        try:
            return len(list(self._teams(event_id).stream())) + 1
        except BACKEND_ERRORS as exc:
            raise StoreError(f"Could not count teams for {event_id}: {exc}") from exc

    def add_registration(self, registration: Registration) -> Registration:
        try:
            _, doc_ref = self._teams(registration.event_id).add(to_document(registration))
        except BACKEND_ERRORS as exc:
            raise StoreError(f"Could not save registration: {exc}") from exc
        registration.id = doc_ref.id
        log.info(
            "Registered %s team #%d as %s",
            registration.event_id, registration.team_number, registration.id,
        )
        return registration

    def upload_screenshot(
        self,
        event_id: str,
        team_id: str,
        data: bytes,
        content_type: str = 'image/jpeg',
    ) -> str:
        """Store a payment screenshot and return its public URL."""
        if self._bucket is None:
            raise StoreError("No storage bucket configured for payment screenshots.")
        blob = self._bucket.blob(f"{ROOT_COLLECTION}/{event_id}/{team_id}/screenshot.jpg")
        try:
            blob.upload_from_string(data, content_type=content_type)
        except BACKEND_ERRORS as exc:
            raise StoreError(f"Could not upload screenshot: {exc}") from exc
        return blob.public_url

    def update_status(self, context: AdminContext, ref: RecordRef, status: str) -> None:
        """Set the payment status of a single registration.

        Raises:
            AuthorizationError: If the context cannot edit.
            StoreError: If the update fails or the document is gone.
        """
        require_edit(context)
        if status not in PAYMENT_STATUSES:
            raise ValueError(f"Unknown payment status: {status!r}")
        try:
            self._teams(ref.event_id).document(ref.id).update({'paymentStatus': status})
        except google_exceptions.NotFound as exc:
            raise StoreError(f"Registration {ref.event_id}/{ref.id} no longer exists") from exc
        except BACKEND_ERRORS as exc:
            raise StoreError(f"Could not update {ref.event_id}/{ref.id}: {exc}") from exc
        log.info("%s set %s/%s to %s", context.operator, ref.event_id, ref.id, status)

    def save_edits(
        self,
        context: AdminContext,
        original: Registration,
        edited: Registration,
    ) -> Registration:
        """Persist an edited registration.

        Moving a registration to another event deletes the original
        document and adds a new one under the target event, numbered
        after that event's existing teams.
        """
        require_edit(context)
        if edited.payment_status not in PAYMENT_STATUSES:
            raise ValueError(f"Unknown payment status: {edited.payment_status!r}")

        if original.event_id != edited.event_id:
            moved = dataclasses.replace(
                edited, id='', team_number=self.next_team_number(edited.event_id),
            )
            self.add_registration(moved)
            try:
                self._teams(original.event_id).document(original.id).delete()
            except BACKEND_ERRORS as exc:
                raise StoreError(
                    f"Moved to {moved.event_id}/{moved.id} but could not delete "
                    f"{original.event_id}/{original.id}: {exc}"
                ) from exc
            log.info(
                "%s moved %s/%s to %s/%s",
                context.operator, original.event_id, original.id, moved.event_id, moved.id,
            )
            return moved

        document = to_document(edited)
        try:
            self._teams(edited.event_id).document(edited.id).update(
                {key: document[key] for key in EDITABLE_FIELDS}
            )
        except google_exceptions.NotFound as exc:
            raise StoreError(f"Registration {edited.event_id}/{edited.id} no longer exists") from exc
        except BACKEND_ERRORS as exc:
            raise StoreError(f"Could not save {edited.event_id}/{edited.id}: {exc}") from exc
        log.info("%s edited %s/%s", context.operator, edited.event_id, edited.id)
        return edited

    def delete_registration(self, context: AdminContext, ref: RecordRef) -> None:
        require_edit(context)
        try:
            self._teams(ref.event_id).document(ref.id).delete()
        except BACKEND_ERRORS as exc:
            raise StoreError(f"Failed to delete {ref.event_id}/{ref.id}: {exc}") from exc
        log.info("%s deleted %s/%s", context.operator, ref.event_id, ref.id)

    def get_registration(self, ref: RecordRef) -> Registration:
        try:
            snap = self._teams(ref.event_id).document(ref.id).get()
        except BACKEND_ERRORS as exc:
            raise StoreError(f"Could not read {ref.event_id}/{ref.id}: {exc}") from exc
        if not snap.exists:
            raise StoreError(f"Registration {ref.event_id}/{ref.id} not found")
        try:
            return parse_registration(ref.event_id, snap.id, snap.to_dict() or {})
        except ValueError as exc:
            raise StoreError(f"Registration {ref.event_id}/{ref.id} is malformed: {exc}") from exc


def _credentials(settings: Settings):
    if settings.service_account_json:
        try:
            info = json.loads(settings.service_account_json)
        except json.JSONDecodeError as exc:
            raise StoreError(f"FIREBASE_SERVICE_ACCOUNT_JSON is not valid JSON: {exc}") from exc
        return credentials.Certificate(info)
    if settings.credentials_file:
        return credentials.Certificate(settings.credentials_file)
    raise StoreError(
        "Firebase service account not found. "
        "Set FIREBASE_SERVICE_ACCOUNT_JSON or FIREBASE_CREDENTIALS_FILE."
    )


def connect(settings: Settings, events: list[Event]) -> RegistrationStore:
    """Open the store for the configured Firebase project."""
    try:
        app = firebase_admin.get_app()
    except ValueError:
        app = firebase_admin.initialize_app(_credentials(settings))

    bucket = storage.bucket(settings.storage_bucket, app=app) if settings.storage_bucket else None
    return RegistrationStore(firestore.client(app), events, bucket=bucket)

