"""PIN lock for MindWell.

States: no-pin, locked, unlocked. Only the PIN hash is persisted; the locked
flag is recomputed at start (locked whenever a credential exists).

The hash is a 32-bit shift-and-add checksum, kept compatible with hashes
written by earlier versions. It keeps casual eyes out of the journal and is
not a security boundary.
"""

from __future__ import annotations

import logging

from mindwell.errors import ValidationError
from mindwell.events import LOCK_CHANGED, EventBus
from mindwell.slices import PIN_CREDENTIAL_HASH, SliceStore

logger = logging.getLogger(__name__)

PIN_LENGTH = 4

NO_PIN = "no-pin"
LOCKED = "locked"
UNLOCKED = "unlocked"


def simple_hash(text: str) -> str:
    """Signed 32-bit ``hash * 31 + code_unit`` over UTF-16 code units, as decimal text."""
    h = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return str(h)


def validate_pin(pin: str) -> list[str]:
    if not isinstance(pin, str) or len(pin) != PIN_LENGTH or not pin.isdigit():
        return [f"PIN must be exactly {PIN_LENGTH} digits"]
    return []


class LockStore:
    def __init__(self, slices: SliceStore, bus: EventBus | None = None):
        self.slices = slices
        self.bus = bus
        self._pin_hash = self._load()
        self._locked = self._pin_hash is not None

    def _load(self) -> str | None:
        raw = self.slices.load(PIN_CREDENTIAL_HASH)
        if raw is None:
            return None
        if not isinstance(raw, str) or not raw:
            logger.warning("Ignoring malformed PIN credential")
            return None
        return raw

    def _changed(self) -> None:
        if self.bus is not None:
            self.bus.emit(LOCK_CHANGED, self.state)

    @property
    def state(self) -> str:
        if self._pin_hash is None:
            return NO_PIN
        return LOCKED if self._locked else UNLOCKED

    @property
    def has_pin(self) -> bool:
        return self._pin_hash is not None

    @property
    def is_locked(self) -> bool:
        return self._locked

    def set_pin(self, pin: str) -> None:
        """Store a new PIN. The current session stays unlocked."""
        errors = validate_pin(pin)
        if errors:
            raise ValidationError(errors)
        self._pin_hash = simple_hash(pin)
        self._locked = False
        if not self.slices.save(PIN_CREDENTIAL_HASH, self._pin_hash):
            logger.warning("PIN kept in memory only; it will not survive a restart")
        self._changed()

    def check_pin(self, pin: str) -> bool:
        """Compare *pin* with the stored credential, unlocking on a match.

        Partial input during digit entry simply returns False.
        """
        if self._pin_hash is None:
            return False
        if len(pin) != PIN_LENGTH:
            return False
        if simple_hash(pin) != self._pin_hash:
            return False
        if self._locked:
            self._locked = False
            self._changed()
        return True

    def remove_pin(self) -> None:
        self._pin_hash = None
        self._locked = False
        if not self.slices.remove(PIN_CREDENTIAL_HASH):
            logger.debug("No persisted PIN credential to remove")
        self._changed()

    def lock(self) -> None:
        """Lock the session again. No-op without a PIN."""
        if self._pin_hash is not None and not self._locked:
            self._locked = True
            self._changed()
