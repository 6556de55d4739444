"""
Local participant identity.

The anonymous-name counter and the participant record live in small files
under ``~/.roomchat``. The counter is read once at startup and every
increment is written back before the new value is handed out.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from roomchat.errors import ValidationError
from roomchat.models.participant import Participant

STATE_DIR = Path.home() / ".roomchat"
COUNTER_FILE = STATE_DIR / "anonymous_counter"
USER_FILE = STATE_DIR / "user.json"
ANONYMOUS_PREFIX = "Anonymous"
DEFAULT_MAX_NAME_LENGTH = 30

logger = logging.getLogger(__name__)


class AnonymousCounter:
    def __init__(self, path: Optional[Path] = None):
        self._path = path or COUNTER_FILE
        self._value = self._read()

    def _read(self) -> int:
        try:
            return max(int(self._path.read_text().strip()), 0)
        except FileNotFoundError:
            return 0
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable anonymous counter at {self._path}: {e}")
            return 0

    @property
    def value(self) -> int:
        return self._value

    def next(self) -> int:
        self._value += 1
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(str(self._value))
        except OSError as e:
            logger.error(f"Error saving anonymous counter: {e}")
        return self._value


class IdentityStore:
    def __init__(
        self,
        path: Optional[Path] = None,
        counter: Optional[AnonymousCounter] = None,
        *,
        max_name_length: int = DEFAULT_MAX_NAME_LENGTH,
    ):
        self._path = path or USER_FILE
        self._counter = counter or AnonymousCounter(self._path.parent / COUNTER_FILE.name)
        self._max_name_length = max_name_length
        self._user: Optional[Participant] = None

    @property
    def user(self) -> Participant:
        if self._user is None:
            return self.load()
        return self._user

    def load(self) -> Participant:
        """Restore the saved participant, or create a fresh anonymous one."""
        try:
            self._user = Participant.model_validate(json.loads(self._path.read_text()))
            return self._user
        except FileNotFoundError:
            pass
        except (OSError, ValueError, PydanticValidationError) as e:
            logger.warning(f"Discarding unreadable identity at {self._path}: {e}")
        self._user = Participant(
            id=uuid.uuid4().hex,
            name=f"{ANONYMOUS_PREFIX} {self._counter.next()}",
        )
        self.save()
        return self._user

    def save(self) -> None:
        if self._user is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(self._user.model_dump_json())
        except OSError as e:
            logger.error(f"Error saving user: {e}")

    def rename(self, name: str) -> Participant:
        cleaned = name.strip()
        if not cleaned:
            raise ValidationError("Name must not be empty")
        self._user = self.user.model_copy(update={"name": cleaned[:self._max_name_length]})
        self.save()
        return self._user
