"""Shared test fixtures."""

import itertools
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path

import pytest
from google.api_core.exceptions import NotFound, ServiceUnavailable
from google.auth.exceptions import RefreshError

from festreg.auth import AdminContext
from festreg.reader import read_events
from festreg.store import RegistrationStore


DATA_DIR = Path(__file__).resolve().parent.parent / 'data'


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        return None if self._data is None else dict(self._data)


class FakeDocument:
    def __init__(self, db, parent_path, doc_id):
        self._db = db
        self._parent_path = parent_path
        self.id = doc_id

    def collection(self, name):
        return FakeCollection(self._db, self._parent_path + (self.id, name))

    def get(self):
        return FakeSnapshot(self.id, self._db.docs[self._parent_path].get(self.id))

    def update(self, fields):
        if self.id in self._db.expired_tokens:
            raise RefreshError('token expired')
        if self.id in self._db.fail_updates:
            raise ServiceUnavailable('backend unavailable')
        docs = self._db.docs[self._parent_path]
        if self.id not in docs:
            raise NotFound(f'No document to update: {self.id}')
        docs[self.id].update(fields)
        self._db.updates.append((self._parent_path, self.id, dict(fields)))

    def delete(self):
        self._db.docs[self._parent_path].pop(self.id, None)


class FakeCollection:
    def __init__(self, db, path):
        self._db = db
        self._path = path

    def document(self, doc_id):
        return FakeDocument(self._db, self._path, doc_id)

    def stream(self):
        if self._path in self._db.fail_streams:
            raise ServiceUnavailable('backend unavailable')
        return [FakeSnapshot(i, d) for i, d in list(self._db.docs[self._path].items())]

    def add(self, data):
        if self._path in self._db.fail_adds:
            raise ServiceUnavailable('backend unavailable')
        doc_id = f'auto{next(self._db.ids)}'
        self._db.docs[self._path][doc_id] = dict(data)
        return None, FakeDocument(self._db, self._path, doc_id)


class FakeFirestore:
    """Just enough of the Firestore client API for the store."""

    def __init__(self):
        self.docs = defaultdict(dict)
        self.ids = itertools.count(1)
        self.fail_updates: set[str] = set()
        self.fail_streams: set[tuple] = set()
        self.fail_adds: set[tuple] = set()
        self.expired_tokens: set[str] = set()
        self.updates: list = []

    def collection(self, name):
        return FakeCollection(self, (name,))

    def teams(self, event_id: str) -> dict:
        return self.docs[('registrations', event_id, 'teams')]

    def put(self, event_id: str, doc_id: str, **fields) -> None:
        self.teams(event_id)[doc_id] = team_doc(**fields)


class FakeBlob:
    def __init__(self, bucket, path):
        self._bucket = bucket
        self.path = path

    def upload_from_string(self, data, content_type=None):
        self._bucket.uploads[self.path] = (data, content_type)

    @property
    def public_url(self):
        return f'https://storage.example/{self.path}'


class FakeBucket:
    def __init__(self):
        self.uploads: dict = {}

    def blob(self, path):
        return FakeBlob(self, path)


def team_doc(**kwargs) -> dict:
    """A raw team document with defaults."""
    defaults = dict(
        teamNumber=1,
        eventId='dhurandharah',
        eventName='DHURANDHARAH',
        category='management',
        email='asha@example.in',
        collegeName='Seshadripuram Degree College',
        members=[
            {'name': 'Asha', 'phone': '9876543210'},
            {'name': 'Ravi', 'phone': '9876501234'},
        ],
        registrationFee='₹300/Team',
        utrNumber='223344556677',
        screenshotUrl='',
        paymentStatus='pending',
        registeredAt=datetime(2026, 2, 10, 9, 30, tzinfo=timezone.utc),
        userId='',
    )
    defaults.update(kwargs)
    return defaults


@pytest.fixture(scope='session')
def data_dir() -> Path:
    """Path to the data directory."""
    return DATA_DIR


@pytest.fixture(scope='session')
def events():
    """The event catalog from data/events.csv."""
    return read_events(DATA_DIR / 'events.csv')


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def store(fake_db, events, bucket):
    return RegistrationStore(fake_db, events, bucket=bucket)


@pytest.fixture
def admin():
    """An operator context with edit capability."""
    return AdminContext(operator='tester', can_edit=True)
