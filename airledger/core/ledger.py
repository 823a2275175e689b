"""
AirLedger Network Ledger
=========================

Deduplicating, history-keeping store of every wireless network ever
observed, keyed by the (SSID, BSSID) fingerprint.

Each call to :meth:`NetworkLedger.update` does one of three things with an
observation:

1. **Create** an entry for a fingerprint not seen before.
2. **Split** it off into a sibling ``<fingerprint>_evil-twin-N`` entry when
   the same identity is reported more than 5 km away from its last fix
   within one minute.  The sibling is tagged ``suspected_evil_twin``.
3. **Merge** it into the existing entry: ``last_seen`` advances,
   ``scan_count`` increments, a signal sample is appended (every time in
   ``verbose`` mode, only on a >10 dBm change in ``compact`` mode), the
   security label is unioned in and a location fix is appended when it
   passes the rate limiter.

After each mutation the :class:`AnomalyEngine` runs over the entry and the
rest of the population; new ``(type, severity)`` pairs are appended to the
entry's anomaly log.  The ledger persists itself through a pluggable
:class:`SnapshotStore` every ``save_interval`` mutations.

Thread safety: a readers-writer lock guards the entry map and every entry.
Listing, statistics and export share the lock; updates and ``clear`` hold
it exclusively.  Snapshot writes are additionally ordered by a separate
save lock so that a slow disk never blocks readers, and the optional
geocoder is called with no lock held.

References:
    - Sinnott, R. W. (1984). Virtues of the Haversine. Sky and Telescope,
      68(2), 159.
    - Courtois, P. J., Heymans, F. & Parnas, D. L. (1971). Concurrent
      Control with "Readers" and "Writers". CACM 14(10).
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

from pydantic import ValidationError

from shared.config import LedgerConfig
from shared.logger import AirLogger
from shared.math_utils import haversine_distance

from airledger.analyzers.anomaly import AnomalyEngine, PriorState
from airledger.analyzers.channel import ChannelMapper
from airledger.analyzers.vendor import VendorRegistry
from airledger.core.models import (
    EVIL_TWIN_SUFFIX,
    AnomalyRecord,
    AnomalySeverity,
    AnomalyType,
    LedgerStats,
    LocationReading,
    NetworkEntry,
    Observation,
    SignalReading,
    network_fingerprint,
)
from airledger.core.storage import SnapshotError, SnapshotStore

logger = AirLogger("core.ledger")

#: Version tag written into every exported snapshot.
SNAPSHOT_VERSION = "1.0"

Geocoder = Callable[[float, float], str]


# ---------------------------------------------------------------------------
# Readers-writer lock
# ---------------------------------------------------------------------------


class _ReadWriteLock:
    """Writer-preferring readers-writer lock (not reentrant)."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class NetworkLedger:
    """Observation ledger with per-update anomaly detection.

    Usage::

        ledger = NetworkLedger(config.ledger, registry, mapper,
                               store=JsonSnapshotStore("data/ledger.json"))
        ledger.load()
        for obs in observations:
            for record in ledger.update(obs):
                print(record.type.value, record.severity.value)
        ledger.flush()

    Args:
        config: History, merge and persistence policy.
        registry: Vendor registry used to resolve vendors on entries.
        mapper: Channel mapper shared with the anomaly engine.
        engine: Anomaly engine; built from *registry* and *mapper* with
            default thresholds when omitted.
        store: Snapshot store; without one the ledger is memory-only.
        geocoder: ``(lat, lon) -> address`` callable; an empty string or an
            exception leaves the address empty and it is retried later.
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        registry: Optional[VendorRegistry] = None,
        mapper: Optional[ChannelMapper] = None,
        engine: Optional[AnomalyEngine] = None,
        store: Optional[SnapshotStore] = None,
        geocoder: Optional[Geocoder] = None,
    ) -> None:
        self._cfg = config or LedgerConfig()
        self._registry = registry or VendorRegistry()
        self._mapper = mapper or ChannelMapper()
        self._engine = engine or AnomalyEngine(
            registry=self._registry, mapper=self._mapper
        )
        self._store = store
        self._geocoder = geocoder

        self._entries: dict[str, NetworkEntry] = {}
        self._lock = _ReadWriteLock()
        self._save_lock = threading.Lock()
        self._dirty = 0

    # ------------------------------------------------------------------ #
    #  Update
    # ------------------------------------------------------------------ #

    def update(self, observation: Observation) -> list[AnomalyRecord]:
        """Apply one observation and return the anomalies it triggered.

        The returned list contains every record detected for this
        observation (including ``suspected_evil_twin`` on a split); only
        pairs not already present on the entry are appended to its log.
        """
        key = observation.fingerprint
        with self._lock.write():
            existing = self._entries.get(key)
            if existing is None:
                entry = self._create_entry(observation)
                self._entries[key] = entry
                detected = self._inspect(observation, key, entry, prior=None)
                logger.debug(f"New network {observation.ssid or '<hidden>'} ({observation.bssid})")
            elif self._is_split(existing, observation):
                key, entry = self._split(key, observation)
                split_record = AnomalyRecord(
                    timestamp=observation.timestamp,
                    type=AnomalyType.SUSPECTED_EVIL_TWIN,
                    severity=AnomalySeverity.HIGH,
                    description=(
                        f"{observation.bssid} reported far from its last fix "
                        f"within {self._cfg.evil_twin_split_window_ms // 1000} s"
                    ),
                )
                detected = [split_record]
                detected += self._inspect(observation, key, entry, prior=None)
            else:
                entry = existing
                prior = PriorState.capture(entry)
                self._merge(entry, observation)
                detected = self._inspect(observation, key, entry, prior=prior)

            self._record(entry, detected)
            self._dirty += 1
            due = self._dirty >= max(1, self._cfg.save_interval)
            needs_address = (
                self._geocoder is not None
                and observation.has_location
                and not entry.address
            )

        # Geocoding may block on I/O, so it runs with the lock released
        if needs_address:
            self._resolve_address(key, observation)
        if due:
            self.flush()
        return detected

    def _inspect(
        self,
        observation: Observation,
        key: str,
        entry: NetworkEntry,
        prior: Optional[PriorState],
    ) -> list[AnomalyRecord]:
        population = [e for k, e in self._entries.items() if k != key]
        return self._engine.inspect(observation, entry, population, prior)

    @staticmethod
    def _record(entry: NetworkEntry, records: list[AnomalyRecord]) -> None:
        seen = {a.key for a in entry.anomalies}
        for record in records:
            if record.key in seen:
                continue
            entry.anomalies.append(record)
            seen.add(record.key)

    # ------------------------------------------------------------------ #
    #  Create / split / merge
    # ------------------------------------------------------------------ #

    def _create_entry(self, observation: Observation) -> NetworkEntry:
        entry = NetworkEntry(
            bssid=observation.bssid,
            ssid=observation.ssid,
            first_seen=observation.timestamp,
            last_seen=observation.timestamp,
            scan_count=1,
            security_types={observation.security_type},
            vendor=self._registry.lookup(observation.bssid).name,
        )
        entry.signal_history.append(SignalReading(
            timestamp=observation.timestamp,
            level=observation.level,
            frequency=observation.frequency,
        ))
        if observation.has_location:
            entry.locations.append(self._location_of(observation))
        return entry

    def _is_split(self, entry: NetworkEntry, observation: Observation) -> bool:
        time_diff = abs(observation.timestamp - entry.last_seen)
        last = entry.last_location
        if last is None or not observation.has_location:
            distance = 0.0
        else:
            distance = haversine_distance(
                last.latitude, last.longitude,
                observation.latitude, observation.longitude,  # type: ignore[arg-type]
            )
        return (
            distance > self._cfg.evil_twin_split_distance_m
            and time_diff < self._cfg.evil_twin_split_window_ms
        )

    def _split(self, key: str, observation: Observation) -> tuple[str, NetworkEntry]:
        n = 1
        while f"{key}{EVIL_TWIN_SUFFIX}{n}" in self._entries:
            n += 1
        sibling_key = f"{key}{EVIL_TWIN_SUFFIX}{n}"
        sibling = self._create_entry(observation)
        self._entries[sibling_key] = sibling
        logger.warning(
            f"Suspected evil twin: {observation.ssid or '<hidden>'} "
            f"({observation.bssid}) split into {sibling_key}"
        )
        return sibling_key, sibling

    def _merge(self, entry: NetworkEntry, observation: Observation) -> None:
        entry.last_seen = max(entry.last_seen, observation.timestamp)
        entry.scan_count += 1

        last = entry.last_signal
        if (
            not self._cfg.compact
            or last is None
            or abs(observation.level - last.level) > self._cfg.compact_signal_delta_dbm
        ):
            entry.signal_history.append(SignalReading(
                timestamp=max(observation.timestamp, entry.first_seen),
                level=observation.level,
                frequency=observation.frequency,
            ))
            self._trim(entry.signal_history, self._cfg.signal_cap)

        entry.security_types.add(observation.security_type)

        if observation.has_location and self._should_add_location(entry, observation):
            entry.locations.append(self._location_of(observation))
            self._trim(entry.locations, self._cfg.location_cap)

        if not entry.vendor:
            entry.vendor = self._registry.lookup(observation.bssid).name

    def _should_add_location(
        self, entry: NetworkEntry, observation: Observation
    ) -> bool:
        last = entry.last_location
        if last is None:
            return True
        elapsed = observation.timestamp - last.timestamp
        if elapsed < self._cfg.min_location_interval_ms:
            return False
        moved = haversine_distance(
            last.latitude, last.longitude,
            observation.latitude, observation.longitude,  # type: ignore[arg-type]
        )
        return moved >= self._cfg.min_location_distance_m

    @staticmethod
    def _location_of(observation: Observation) -> LocationReading:
        return LocationReading(
            timestamp=observation.timestamp,
            latitude=float(observation.latitude),  # type: ignore[arg-type]
            longitude=float(observation.longitude),  # type: ignore[arg-type]
            accuracy=float(observation.accuracy or 0.0),
        )

    @staticmethod
    def _trim(history: Any, cap: int) -> None:
        while len(history) > cap:
            history.popleft()

    def _resolve_address(self, key: str, observation: Observation) -> None:
        """Look up the address for *key* and store it if still unset.

        Called without the lock held; the entry may have been cleared or
        geocoded by another thread in the meantime.
        """
        try:
            address = self._geocoder(observation.latitude, observation.longitude)  # type: ignore[misc,arg-type]
        except Exception as exc:
            logger.warning(f"Reverse geocoding failed for {observation.bssid}: {exc}")
            return
        if not address:
            return
        with self._lock.write():
            entry = self._entries.get(key)
            if entry is not None and not entry.address:
                entry.address = address

    # ------------------------------------------------------------------ #
    #  Queries
    # ------------------------------------------------------------------ #

    def get_all_entries(self) -> list[NetworkEntry]:
        """Deep copies of every entry, most recently seen first."""
        with self._lock.read():
            copies = [e.model_copy(deep=True) for e in self._entries.values()]
        copies.sort(key=lambda e: e.last_seen, reverse=True)
        return copies

    def get_entry(self, key: str) -> Optional[NetworkEntry]:
        with self._lock.read():
            entry = self._entries.get(key)
            return entry.model_copy(deep=True) if entry is not None else None

    def get_network_anomalies(self, bssid: str, ssid: str = "") -> list[AnomalyRecord]:
        """Anomaly log of the entry for ``(ssid, bssid)``; empty if unknown."""
        entry = self.get_entry(network_fingerprint(ssid, bssid))
        return list(entry.anomalies) if entry is not None else []

    def keys(self) -> list[str]:
        with self._lock.read():
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._entries

    def get_stats(self) -> LedgerStats:
        with self._lock.read():
            return self._stats_unlocked()

    def _stats_unlocked(self) -> LedgerStats:
        entries = list(self._entries.values())
        return LedgerStats(
            total_networks=len(entries),
            total_anomalies=sum(len(e.anomalies) for e in entries),
            critical_anomalies=sum(
                1 for e in entries for a in e.anomalies
                if a.severity == AnomalySeverity.CRITICAL
            ),
            open_networks=sum(1 for e in entries if e.is_open),
        )

    # ------------------------------------------------------------------ #
    #  Clear / export / import
    # ------------------------------------------------------------------ #

    def clear(self) -> None:
        """Remove every entry and persist the empty ledger."""
        with self._lock.write():
            removed = len(self._entries)
            self._entries.clear()
            self._dirty += 1
        logger.info(f"Ledger cleared ({removed} networks removed)")
        self.flush()

    def export_snapshot(self) -> dict[str, Any]:
        """Serialisable view of the whole ledger, captured atomically."""
        with self._lock.read():
            return self._snapshot_unlocked()

    def _snapshot_unlocked(self) -> dict[str, Any]:
        stats = self._stats_unlocked()
        return {
            "metadata": {
                "export_time": datetime.now(timezone.utc).isoformat(),
                "version": SNAPSHOT_VERSION,
                "total_networks": stats.total_networks,
                "total_anomalies": stats.total_anomalies,
            },
            "statistics": stats.model_dump(),
            "networks": {
                key: entry.model_dump(mode="json")
                for key, entry in self._entries.items()
            },
        }

    def load_snapshot(self, data: dict[str, Any]) -> int:
        """Replace the ledger contents with those of an exported snapshot.

        Returns:
            Number of entries loaded.

        Raises:
            SnapshotError: *data* does not have the snapshot shape or an
                entry fails validation.
        """
        networks = data.get("networks") if isinstance(data, dict) else None
        if not isinstance(networks, dict):
            raise SnapshotError("<memory>", "missing 'networks' mapping")
        try:
            entries = {
                str(key): NetworkEntry.model_validate(raw)
                for key, raw in networks.items()
            }
        except ValidationError as exc:
            raise SnapshotError("<memory>", f"invalid entry: {exc}") from exc

        for entry in entries.values():
            self._trim(entry.signal_history, self._cfg.signal_cap)
            self._trim(entry.locations, self._cfg.location_cap)

        with self._lock.write():
            self._entries = entries
            self._dirty = 0
        return len(entries)

    @classmethod
    def from_snapshot(cls, data: dict[str, Any], **kwargs: Any) -> NetworkLedger:
        """Build a ledger from an exported snapshot."""
        ledger = cls(**kwargs)
        ledger.load_snapshot(data)
        return ledger

    # ------------------------------------------------------------------ #
    #  Persistence
    # ------------------------------------------------------------------ #

    def load(self) -> int:
        """Load the persisted snapshot from the store.

        A missing snapshot leaves the ledger empty; a corrupt one is logged
        and the ledger starts empty.
        """
        if self._store is None:
            return 0
        try:
            data = self._store.load()
            if data is None:
                return 0
            count = self.load_snapshot(data)
        except SnapshotError as exc:
            logger.warning(f"Discarding unreadable ledger snapshot: {exc}")
            with self._lock.write():
                self._entries = {}
                self._dirty = 0
            return 0
        logger.info(f"Loaded {count} networks from snapshot")
        return count

    def flush(self) -> bool:
        """Write pending mutations to the store.

        The pending counter is only reset when the write succeeds, so a
        failed save is retried in full on the next flush.

        Returns:
            ``True`` when nothing was pending or the write succeeded.
        """
        if self._store is None:
            with self._lock.write():
                self._dirty = 0
            return True

        with self._save_lock:
            with self._lock.read():
                pending = self._dirty
                if pending == 0:
                    return True
                snapshot = self._snapshot_unlocked()

            if not self._store.save(snapshot):
                logger.warning(
                    f"Ledger save failed; {pending} pending changes kept in memory"
                )
                return False

            with self._lock.write():
                self._dirty = max(0, self._dirty - pending)
        return True

    @property
    def pending_changes(self) -> int:
        return self._dirty
