# sourcing/models/credential.py

"""OAuth credential record for the source platform API."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Credential:
    """Access/refresh token pair for the platform's authenticated API."""

    access_token: str
    expires_at: datetime
    refresh_token: str | None = None
    token_type: str = "Bearer"
    owner_id: str | None = None
    refresh_expires_at: datetime | None = None

    def is_valid(self, now: datetime) -> bool:
        """Return True while the access token has not yet expired."""
        return self.expires_at > now
