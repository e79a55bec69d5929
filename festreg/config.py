"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_EVENTS_CSV = Path('data') / 'events.csv'
DEFAULT_UPI_NAME = 'SHRESHTA 2026'


@dataclass
class Settings:
    """Deployment settings. Nothing secret has a default."""

    service_account_json: Optional[str] = None
    credentials_file: Optional[str] = None
    storage_bucket: Optional[str] = None
    edit_pin: Optional[str] = None
    sheets_webhook_url: Optional[str] = None
    upi_id: str = ''
    upi_name: str = DEFAULT_UPI_NAME
    events_csv: Path = DEFAULT_EVENTS_CSV

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        env = os.environ if environ is None else environ
        return cls(
            service_account_json=env.get('FIREBASE_SERVICE_ACCOUNT_JSON') or None,
            credentials_file=env.get('FIREBASE_CREDENTIALS_FILE') or None,
            storage_bucket=env.get('FIREBASE_STORAGE_BUCKET') or None,
            edit_pin=env.get('FESTREG_EDIT_PIN') or None,
            sheets_webhook_url=env.get('SHEETS_WEBHOOK_URL') or None,
            upi_id=env.get('UPI_ID', ''),
            upi_name=env.get('UPI_NAME') or DEFAULT_UPI_NAME,
            events_csv=Path(env.get('FESTREG_EVENTS_CSV') or DEFAULT_EVENTS_CSV),
        )
