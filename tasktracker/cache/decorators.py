import logging
from functools import wraps
from typing import Any, Callable

from fastapi.encoders import jsonable_encoder

from tasktracker.core.context import RequestContext
from tasktracker.models import ApiResponse

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
CACHE_HIT_MESSAGE = "Data retrieved from cache"


def build_cache_key(resource_prefix: str, ctx: RequestContext) -> str:
    return f"{resource_prefix}:{ctx.owner_key}:{ctx.path}"


def build_invalidation_pattern(resource_prefix: str, ctx: RequestContext) -> str:
    # every cached path for this resource and owner
    return f"{resource_prefix}:{ctx.owner_key}*"


def _find_context(args: tuple, kwargs: dict) -> RequestContext:
    for value in (*args, *kwargs.values()):
        if isinstance(value, RequestContext):
            return value
    raise TypeError("cached handlers must receive a RequestContext argument")


def _is_successful(result: Any) -> bool:
    return isinstance(result, ApiResponse) and result.success


def cache_read(resource_prefix: str, ttl: int = DEFAULT_TTL_SECONDS):
    """
    Read-through cache for handlers returning an ApiResponse.

    Key: ``resource_prefix:owner:path?query``. A HIT answers from the
    cache without calling the handler. On a MISS the handler runs and a
    successful, non-empty response is stored after the response is sent.
    Example:
      @cache_read("tasks", ttl=120)
      async def get_tasks(ctx: RequestContext = Depends(get_request_context)): ...
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            ctx = _find_context(args, kwargs)
            key = build_cache_key(resource_prefix, ctx)

            entry = await ctx.cache.get(key)
            if isinstance(entry, dict) and "data" in entry:
                logger.info(f"Cache HIT: {key}")
                return ApiResponse(
                    success=True,
                    message=CACHE_HIT_MESSAGE,
                    data=entry["data"],
                    pagination=entry.get("pagination"),
                    cached=True,
                )

            logger.info(f"Cache MISS: {key}")
            result = await fn(*args, **kwargs)

            if _is_successful(result) and result.data:
                # encode once so the response and the stored copy are identical
                data = jsonable_encoder(result.data)
                result = result.model_copy(update={"data": data})
                ctx.schedule(
                    ctx.cache.set,
                    key,
                    {"data": data, "pagination": jsonable_encoder(result.pagination)},
                    ttl,
                )
            return result

        return wrapper

    return decorator


def cache_invalidate(resource_prefix: str):
    """
    Clear every cached entry of ``resource_prefix`` for the caller after
    a successful mutation. Stack several to clear several resources.
    Example:
      @cache_invalidate("tasks")
      @cache_invalidate("task")
      async def update_task(ctx: RequestContext = Depends(get_request_context)): ...
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            ctx = _find_context(args, kwargs)
            result = await fn(*args, **kwargs)

            if _is_successful(result):
                pattern = build_invalidation_pattern(resource_prefix, ctx)
                ctx.schedule(ctx.cache.delete_pattern, pattern)
                logger.info(f"Cache invalidation scheduled: {pattern}")
            return result

        return wrapper

    return decorator
