import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine

from fastapi import BackgroundTasks

from tasktracker.cache.layer import CacheLayer
from tasktracker.models import User

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"

# Keeps fire-and-forget jobs alive when no BackgroundTasks collector exists
_pending: set[asyncio.Task] = set()


@dataclass
class RequestContext:
    """
    Per-request state passed explicitly through the call chain.

    ``path`` is the request path including its query string; it is part
    of every read-through cache key.
    """

    path: str
    cache: CacheLayer
    user: User | None = None
    background: BackgroundTasks | None = field(default=None, repr=False)

    @property
    def owner_key(self) -> str:
        return str(self.user.id) if self.user is not None else ANONYMOUS

    def schedule(self, job: Callable[..., Coroutine[Any, Any, Any]], *args: Any):
        """Run ``job`` after the response without making the client wait."""
        if self.background is not None:
            self.background.add_task(job, *args)
            return
        task = asyncio.create_task(job(*args))
        _pending.add(task)
        task.add_done_callback(_pending.discard)
