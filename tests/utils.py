"""Shared test doubles."""
import fnmatch


class FakeRedis:
    """In-memory stand-in for the redis.asyncio commands CacheManager uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.commands: list[tuple[str, str]] = []

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass

    async def get(self, key: str):
        self.commands.append(("get", key))
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.commands.append(("set", key))
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self.commands.append(("delete", key))
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def scan_iter(self, match: str | None = None):
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key


class FailingRedis(FakeRedis):
    """Backend whose every read and write fails."""

    async def get(self, key: str):
        raise ConnectionError("redis unavailable")

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        raise ConnectionError("redis unavailable")
