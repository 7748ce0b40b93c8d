"""
In-memory cache of issued proofs.

The cache is the only shared mutable state of an engine. Every operation holds a re-entrant lock
for the time it touches the map; the expiry sweep takes a snapshot, filters it without the lock and
swaps the result in.

>>> from datetime import datetime, timezone
>>> cache = ProofCache(max_size=10, clock=lambda: datetime(2026, 1, 1, tzinfo=timezone.utc))
>>> cache.get("missing") is None
True
>>> len(cache)
0
"""

import json
import logging
import threading
from collections import OrderedDict, deque
from datetime import datetime, timezone

import attr

from idzk.consts import AUDIT_LOG_SIZE, DEFAULT_CACHE_SIZE
from idzk.exceptions import CacheImportError
from idzk.records import ZKProof, format_timestamp, parse_timestamp


logger = logging.getLogger(__name__)


def utc_now():
    return datetime.now(timezone.utc)


@attr.s
class CacheEntry:
    """A cached proof and its access statistics."""

    proof = attr.ib()
    created_at = attr.ib()
    last_accessed = attr.ib()
    access_count = attr.ib(default=0)

    def to_dict(self):
        return {
            "id": self.proof.id,
            "proof": self.proof.to_dict(),
            "createdAt": format_timestamp(self.created_at),
            "lastAccessed": format_timestamp(self.last_accessed),
            "accessCount": self.access_count,
        }

    @classmethod
    def from_dict(cls, data):
        proof = ZKProof.from_dict(data["proof"])
        if data["id"] != proof.id:
            raise ValueError("Entry id does not match proof id")
        access_count = int(data["accessCount"])
        if access_count < 0:
            raise ValueError("Negative access count")
        return cls(
            proof=proof,
            created_at=parse_timestamp(data["createdAt"]),
            last_accessed=parse_timestamp(data["lastAccessed"]),
            access_count=access_count,
        )


@attr.s(frozen=True)
class AuditEntry:
    """One cache event."""

    timestamp = attr.ib()
    event = attr.ib()
    proof_id = attr.ib()
    details = attr.ib(factory=dict)

    def to_dict(self):
        return {
            "timestamp": format_timestamp(self.timestamp),
            "event": self.event,
            "proofId": self.proof_id,
            "details": dict(self.details),
        }


@attr.s(frozen=True)
class CacheStats:
    """Snapshot of the cache contents."""

    total_proofs = attr.ib()
    active_proofs = attr.ib()
    expired_proofs = attr.ib()
    security_levels = attr.ib()
    proof_types = attr.ib()
    quantum_resistant_count = attr.ib()
    average_proof_age = attr.ib()
    compliance_rate = attr.ib()

    @property
    def quantum_resistant_ratio(self):
        if not self.total_proofs:
            return 0.0
        return self.quantum_resistant_count / self.total_proofs

    def to_dict(self):
        return {
            "totalProofs": self.total_proofs,
            "activeProofs": self.active_proofs,
            "expiredProofs": self.expired_proofs,
            "securityLevels": dict(self.security_levels),
            "proofTypes": dict(self.proof_types),
            "quantumResistantCount": self.quantum_resistant_count,
            "quantumResistantRatio": self.quantum_resistant_ratio,
            "averageProofAge": self.average_proof_age,
            "complianceRate": self.compliance_rate,
            "securityCompliance": {
                "standard": self.security_levels.get("standard", 0),
                "military": self.security_levels.get("military", 0),
                "topSecret": self.security_levels.get("top-secret", 0),
            },
        }


class ProofCache:
    """
    Capacity-bounded store of proofs keyed by id.

    Args:
        max_size (int): Capacity. Once full, the oldest entries are evicted first.
        enable_audit_logging (bool): Record cache events in the audit log.
        clock: Callable returning the current time as an aware UTC datetime.
        audit_log_size (int): Number of audit events kept.
    """

    def __init__(
        self,
        max_size=DEFAULT_CACHE_SIZE,
        enable_audit_logging=True,
        clock=utc_now,
        audit_log_size=AUDIT_LOG_SIZE,
    ):
        if max_size < 1:
            raise ValueError("Cache size must be positive")
        self.max_size = max_size
        self.enable_audit_logging = enable_audit_logging
        self.clock = clock
        self._entries = OrderedDict()
        self._audit_log = deque(maxlen=audit_log_size)
        self._lock = threading.RLock()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def _audit(self, event, proof_id, **details):
        if self.enable_audit_logging:
            self._audit_log.append(AuditEntry(self.clock(), event, proof_id, details))
        logger.debug("%s %s %s", event, proof_id, details)

    def _evict_to(self, size):
        while len(self._entries) > size:
            proof_id, _ = self._entries.popitem(last=False)
            self._audit("PROOF_EVICTED", proof_id)

    def put(self, proof):
        """
        Store a proof.

        Raises:
            ValueError: If a proof with the same id is already cached.
        """
        now = self.clock()
        with self._lock:
            if proof.id in self._entries:
                raise ValueError("Proof {} is already cached".format(proof.id))
            self._evict_to(self.max_size - 1)
            self._entries[proof.id] = CacheEntry(proof, now, now)
            self._audit("PROOF_STORED", proof.id, proofType=proof.type)

    def get(self, proof_id):
        """
        Return the proof, or None if it is missing or expired.
        """
        now = self.clock()
        with self._lock:
            entry = self._entries.get(proof_id)
            if entry is None or entry.proof.is_expired(now):
                return None
            entry.last_accessed = now
            entry.access_count += 1
            self._audit("PROOF_ACCESSED", proof_id, accessCount=entry.access_count)
            return entry.proof

    def has(self, proof_id):
        with self._lock:
            entry = self._entries.get(proof_id)
            return entry is not None and not entry.proof.is_expired(self.clock())

    def remove(self, proof_id):
        with self._lock:
            removed = self._entries.pop(proof_id, None) is not None
            if removed:
                self._audit("PROOF_REMOVED", proof_id)
            return removed

    def all_proofs(self):
        with self._lock:
            return [entry.proof for entry in self._entries.values()]

    def clear(self):
        with self._lock:
            count = len(self._entries)
            self._entries = OrderedDict()
            self._audit("CACHE_CLEARED", "SYSTEM", clearedCount=count)

    def cleanup_expired(self):
        """
        Remove expired proofs.

        Returns:
            int: Number of proofs removed.
        """
        now = self.clock()
        with self._lock:
            snapshot = list(self._entries.items())

        expired = {proof_id for proof_id, entry in snapshot if entry.proof.is_expired(now)}
        if not expired:
            return 0

        with self._lock:
            # Entries added or removed since the snapshot are left alone.
            removed = 0
            kept = OrderedDict()
            for proof_id, entry in self._entries.items():
                if proof_id in expired and entry.proof.is_expired(now):
                    removed += 1
                else:
                    kept[proof_id] = entry
            self._entries = kept
            if removed:
                self._audit("EXPIRED_PROOFS_CLEANED", "SYSTEM", removedCount=removed)
        logger.info("Removed %d expired proofs", removed)
        return removed

    def update_limits(self, max_size=None, enable_audit_logging=None):
        """
        Change the capacity or toggle audit logging. Shrinking evicts immediately.
        """
        with self._lock:
            if max_size is not None:
                if max_size < 1:
                    raise ValueError("Cache size must be positive")
                self.max_size = max_size
                self._evict_to(max_size)
            if enable_audit_logging is not None:
                self.enable_audit_logging = enable_audit_logging

    def stats(self):
        now = self.clock()
        with self._lock:
            entries = list(self._entries.values())

        security_levels = {}
        proof_types = {}
        total_age = 0.0
        active = 0
        quantum = 0
        for entry in entries:
            proof = entry.proof
            total_age += (now - entry.created_at).total_seconds()
            if not proof.is_expired(now):
                active += 1
            if proof.quantum_resistant:
                quantum += 1
            security_levels[proof.security_level] = security_levels.get(proof.security_level, 0) + 1
            proof_types[proof.type] = proof_types.get(proof.type, 0) + 1

        total = len(entries)
        return CacheStats(
            total_proofs=total,
            active_proofs=active,
            expired_proofs=total - active,
            security_levels=security_levels,
            proof_types=proof_types,
            quantum_resistant_count=quantum,
            average_proof_age=total_age / total if total else 0.0,
            compliance_rate=round(100 * active / total) if total else 0,
        )

    def get_audit_log(self, limit=None):
        with self._lock:
            log = list(self._audit_log)
        if limit is not None:
            log = log[-limit:] if limit > 0 else []
        return log

    def export_data(self):
        """
        Serialize the cache to JSON.
        """
        with self._lock:
            entries = [entry.to_dict() for entry in self._entries.values()]
        return json.dumps(
            {
                "timestamp": format_timestamp(self.clock()),
                "cacheSize": len(entries),
                "proofs": entries,
            },
            indent=2,
        )

    def _parse(self, payload):
        try:
            data = json.loads(payload)
            entries = [CacheEntry.from_dict(item) for item in data["proofs"]]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CacheImportError("Malformed cache payload: {}".format(e)) from e
        ids = [entry.proof.id for entry in entries]
        if len(set(ids)) != len(ids):
            raise CacheImportError("Duplicate proof ids in cache payload")
        return entries

    def import_data(self, payload):
        """
        Replace the cache contents with an exported payload.

        Returns:
            bool: False if the payload is malformed, in which case the cache is left untouched.
        """
        try:
            entries = self._parse(payload)
        except CacheImportError as e:
            logger.warning("Rejecting cache import: %s", e)
            return False

        entries.sort(key=lambda entry: entry.created_at)
        with self._lock:
            self._entries = OrderedDict((entry.proof.id, entry) for entry in entries)
            self._evict_to(self.max_size)
            self._audit("CACHE_IMPORTED", "SYSTEM", importedCount=len(self._entries))
        return True


class ExpirySweeper:
    """
    Background thread that periodically removes expired proofs from a cache.
    """

    def __init__(self, cache, interval):
        self.cache = cache
        self.interval = interval
        self._stop = threading.Event()
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._worker, name="idzk-expiry-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _worker(self):
        while not self._stop.wait(self.interval):
            try:
                self.cache.cleanup_expired()
            except Exception as e:
                logger.error("Error in expiry sweeper: %s", e)
