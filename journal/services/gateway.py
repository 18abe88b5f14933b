"""
Persistence gateway between the journal and a raw key-value store.

Key patterns:
- Protocol-based store injection (any async get/set backend works)
- Generic Result type for write failures the caller must handle
- Availability over strictness on reads: an unparsable collection reads as
  empty, while the event is logged, recorded on a diagnostic channel and the
  raw blob is quarantined
- Per-key asyncio locks so read-modify-write cycles on one metric never
  interleave inside a process
"""

import asyncio
import hashlib
from collections import deque
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, Generic, Protocol, TypeVar

import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from typing_extensions import TypeVar as DefaultTypeVar

from journal.domain.errors import StorageReadError, StorageWriteError

# Configure structured logging (JSON by default, see config.configure_logging)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = DefaultTypeVar("ErrorT", bound=BaseException, default=Exception)
ItemT = TypeVar("ItemT")

_UNSET: Any = object()


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    ``Result.ok(None)`` is a valid success, used by operations that have
    nothing to return (delete) or found nothing to act on (update).
    """

    def __init__(self, value: Any = _UNSET, error: ErrorT | None = None) -> None:
        if value is not _UNSET and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is _UNSET and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = None if value is _UNSET else value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Result.err({self._error!r})"
        return f"Result.ok({self._value!r})"


class KeyValueStore(Protocol):
    """
    The raw storage the journal runs on.

    Both calls are asynchronous and there are no transactions: a ``set``
    replaces whatever the key held.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class GatewayConfig(BaseModel):
    """Gateway tuning with validated defaults."""

    key_prefix: str = Field(default="", description="Prepended to every storage key")
    max_read_diagnostics: int = Field(
        default=50, gt=0, description="How many read errors the diagnostic channel keeps"
    )
    quarantine_corrupt: bool = Field(
        default=True,
        description="Copy unparsable blobs to '<key>.corrupt[.<digest>]' before they are lost",
    )


class PersistenceGateway:
    """
    Loads and stores whole reading collections, one storage key per metric.

    The gateway never raises on a corrupted collection; it hands back an empty
    list and records a ``StorageReadError`` in ``read_errors``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: GatewayConfig | None = None,
        on_read_error: Callable[[StorageReadError], None] | None = None,
    ) -> None:
        self._store = store
        self.config = config or GatewayConfig()
        self.on_read_error = on_read_error
        self.read_errors: deque[StorageReadError] = deque(
            maxlen=self.config.max_read_diagnostics
        )
        self.logger = logger.bind(component="persistence_gateway")
        self._locks: dict[str, asyncio.Lock] = {}

    def storage_key(self, key: str) -> str:
        return f"{self.config.key_prefix}{key}"

    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        """Serialize read-modify-write cycles on one key within this process."""
        lock = self._locks.setdefault(self.storage_key(key), asyncio.Lock())
        async with lock:
            yield

    async def load(
        self,
        key: str,
        adapter: TypeAdapter[list[ItemT]],
        *,
        for_update: bool = False,
    ) -> list[ItemT]:
        """
        Load the collection stored under ``key``.

        A missing key and an unparsable blob both read as an empty list.

        Raises:
            StorageReadError: only when ``for_update`` is set and the store
                itself failed, so a write never replaces data it could not see.
        """
        full_key = self.storage_key(key)
        try:
            raw = await self._store.get(full_key)
        except Exception as e:
            error = StorageReadError(full_key, f"store read failed: {e}")
            self._record(error)
            if for_update:
                raise error from e
            return []

        if not raw:
            return []

        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            reason = f"{e.error_count()} validation error(s), first: {e.errors()[0]['msg']}"
            self._record(StorageReadError(full_key, reason))
            await self._quarantine(full_key, raw)
            return []

    async def store(
        self, key: str, items: list[ItemT], adapter: TypeAdapter[list[ItemT]]
    ) -> Result[None, StorageWriteError]:
        """Serialize and write the full collection, replacing what was stored."""
        full_key = self.storage_key(key)
        payload = adapter.dump_json(items, by_alias=True).decode("utf-8")
        try:
            await self._store.set(full_key, payload)
        except Exception as e:
            self.logger.error("storage_write_failed", key=full_key, error=str(e))
            return Result.err(StorageWriteError(full_key, str(e)))

        self.logger.debug("collection_stored", key=full_key, count=len(items))
        return Result.ok(None)

    def drain_read_errors(self) -> list[StorageReadError]:
        """Return and clear the recorded read errors."""
        errors = list(self.read_errors)
        self.read_errors.clear()
        return errors

    def _record(self, error: StorageReadError) -> None:
        self.logger.warning("storage_read_corrupted", key=error.key, reason=error.reason)
        self.read_errors.append(error)
        if self.on_read_error is not None:
            self.on_read_error(error)

    async def _quarantine(self, full_key: str, raw: str) -> None:
        if not self.config.quarantine_corrupt:
            return
        quarantine_key = f"{full_key}.corrupt"
        try:
            existing = await self._store.get(quarantine_key)
            if existing == raw:
                return
            if existing is not None:
                # Earlier copy stays put; a different blob gets its own content-addressed key.
                digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:12]
                quarantine_key = f"{quarantine_key}.{digest}"
                if await self._store.get(quarantine_key) is not None:
                    return
            await self._store.set(quarantine_key, raw)
            self.logger.warning("corrupt_collection_quarantined", key=quarantine_key)
        except Exception as e:
            self.logger.error("quarantine_failed", key=quarantine_key, error=str(e))
