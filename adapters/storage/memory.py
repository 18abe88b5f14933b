"""
In-memory key-value store.

Used for tests, demos and ephemeral sessions. Optional simulated latency makes
every call suspend the way a real storage round trip would.
"""

import asyncio


class InMemoryKeyValueStore:
    """Dict-backed store implementing the gateway's KeyValueStore protocol."""

    def __init__(
        self, initial: dict[str, str] | None = None, latency_seconds: float = 0.0
    ) -> None:
        """Initialize the store.

        Args:
            initial: Key/value pairs the store starts with
            latency_seconds: Delay applied to every get and set
        """
        self._data: dict[str, str] = dict(initial or {})
        self.latency_seconds = latency_seconds

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(self.latency_seconds)
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.sleep(self.latency_seconds)
        self._data[key] = value

    def keys(self) -> list[str]:
        return sorted(self._data)
