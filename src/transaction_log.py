# Append-only record of every successful translation.
import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from x12_defs import Direction

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TransactionRecord(BaseModel):
    """Immutable log entry. Written by the translator, never read back by it."""
    id: str
    type: str
    direction: Direction
    sender: str
    receiver: str
    partner: str
    business_number: str
    payload: Any
    stream: str = "Test"
    validation: str = "Valid"
    ack_status: str = "Not Acknowledged"
    created_at: str = Field(default_factory=_utc_now)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def create(cls, transaction_type: str, direction: Direction, sender: str, receiver: str,
               business_number: str, payload: Any) -> "TransactionRecord":
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json", by_alias=True)
        partner = sender if direction == Direction.INBOUND else receiver
        return cls(
            id=f"{transaction_type}-{uuid.uuid4().hex}",
            type=transaction_type,
            direction=direction,
            sender=sender,
            receiver=receiver,
            partner=partner,
            business_number=business_number,
            payload=payload,
        )


class TransactionStore(Protocol):
    def append(self, record: TransactionRecord) -> None:
        ...


class InMemoryTransactionStore:
    def __init__(self):
        self._records: List[TransactionRecord] = []
        self._lock = threading.Lock()

    def append(self, record: TransactionRecord) -> None:
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> List[TransactionRecord]:
        with self._lock:
            return list(self._records)


class JsonLinesTransactionStore:
    """One JSON document per line, appended to `path`."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, record: TransactionRecord) -> None:
        line = record.model_dump_json()
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a') as f:
                f.write(line + "\n")


class TransactionRecorder:
    """
    Hands records to a store without blocking the caller. Store failures are
    logged and dropped; they never reach the translation call.
    """

    def __init__(self, store: TransactionStore, executor: Optional[ThreadPoolExecutor] = None):
        self.store = store
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="transaction-log")

    def record(self, record: TransactionRecord) -> Optional[Future]:
        try:
            future = self._executor.submit(self._write, record)
        except RuntimeError as e:
            logger.error(f"Failed to schedule transaction log write for {record.id}: {e}")
            return None
        return future

    def _write(self, record: TransactionRecord):
        try:
            self.store.append(record)
            logger.info(f"Saved {record.type} ({record.direction.value}) transaction: {record.business_number}")
        except Exception as e:
            logger.error(f"Failed to log transaction {record.id}: {e}", exc_info=True)

    def close(self, wait: bool = True):
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
