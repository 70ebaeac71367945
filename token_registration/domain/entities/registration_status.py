from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

CLOSED_MESSAGE = "Registration will open soon. Get ready to secure your spot!"
OPEN_MESSAGE = "Registration is now open!"


@dataclass(frozen=True)
class RegistrationStatus:
    is_open: bool = False
    message: str = CLOSED_MESSAGE
    last_checked: datetime | None = None
