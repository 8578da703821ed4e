import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Iterator, NamedTuple

from loguru import logger

from blocklist_api.blocklist.errors import (
    InvalidAddressError,
    NotFoundError,
    StoreUnavailableError,
)
from blocklist_api.utils.validation import IPAddress, parse_ip

DEFAULT_LOCK_TIMEOUT = 1.0


# === Models ===
@dataclass(frozen=True)
class BlocklistEntry:
    address: str
    added_at: datetime

    def to_dict(self) -> dict:
        return {"ip": self.address, "added_at": self.added_at.isoformat()}


@dataclass(frozen=True)
class BlocklistSnapshot:
    """Point-in-time copy of the blocklist, in insertion order."""

    entries: tuple[BlocklistEntry, ...] = ()
    version: int = 0

    def addresses(self) -> list[str]:
        return [entry.address for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[BlocklistEntry]:
        return iter(self.entries)

    def __contains__(self, address) -> bool:
        try:
            canonical = str(parse_ip(address))
        except InvalidAddressError:
            return False
        return any(entry.address == canonical for entry in self.entries)


class AddResult(NamedTuple):
    entry: BlocklistEntry
    created: bool


# === Store ===
class BlocklistStore:
    """Thread-safe, in-memory set of blocked IP addresses.

    Addresses are validated and canonicalized before the lock is taken, so a
    rejected call never touches the collection. Every operation runs under a
    single exclusive lock; reads hand out immutable copies.
    """

    def __init__(self, lock_timeout: float = DEFAULT_LOCK_TIMEOUT, clock=None):
        if lock_timeout <= 0:
            raise ValueError("lock_timeout must be positive")
        self.lock_timeout = lock_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._entries: dict[IPAddress, BlocklistEntry] = {}
        self._version = 0

    @contextmanager
    def _locked(self, timeout: float | None):
        if timeout is None:
            timeout = self.lock_timeout
        if not self._lock.acquire(timeout=max(timeout, 0)):
            logger.warning("Timed out after {:.3f}s waiting for blocklist lock", timeout)
            raise StoreUnavailableError()
        try:
            yield
        finally:
            self._lock.release()

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, ip: str, timeout: float | None = None) -> AddResult:
        addr = parse_ip(ip)
        with self._locked(timeout):
            existing = self._entries.get(addr)
            if existing is not None:
                logger.debug("IP '{}' already blocked", existing.address)
                return AddResult(existing, False)
            entry = BlocklistEntry(str(addr), self._clock())
            self._entries[addr] = entry
            self._version += 1
        logger.info("IP '{}' added to blocklist", entry.address)
        return AddResult(entry, True)

    def extend(self, ips: Iterable[str], timeout: float | None = None) -> int:
        """Add several addresses at once; all are validated before any is added."""
        addrs = [parse_ip(ip) for ip in ips]
        added = 0
        with self._locked(timeout):
            for addr in addrs:
                if addr in self._entries:
                    continue
                self._entries[addr] = BlocklistEntry(str(addr), self._clock())
                self._version += 1
                added += 1
        if added:
            logger.info("{} IP(s) added to blocklist", added)
        return added

    def remove(self, ip: str, timeout: float | None = None) -> BlocklistEntry:
        addr = parse_ip(ip)
        with self._locked(timeout):
            entry = self._entries.pop(addr, None)
            if entry is None:
                raise NotFoundError(str(addr))
            self._version += 1
        logger.info("IP '{}' removed from blocklist", entry.address)
        return entry

    def get(self, ip: str, timeout: float | None = None) -> BlocklistEntry:
        addr = parse_ip(ip)
        with self._locked(timeout):
            entry = self._entries.get(addr)
        if entry is None:
            raise NotFoundError(str(addr))
        return entry

    def is_blocked(self, ip: str) -> bool:
        try:
            self.get(ip)
        except (InvalidAddressError, NotFoundError):
            return False
        return True

    def list(self, timeout: float | None = None) -> BlocklistSnapshot:
        with self._locked(timeout):
            return BlocklistSnapshot(tuple(self._entries.values()), self._version)
