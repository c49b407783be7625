from functools import wraps
from typing import Callable


def cached_by_tenant(fn: Callable):
    """
    Decorator for async service list methods taking ``(self, tenant_id, ...)``.
    Reads through ``self.cache``; on a miss the wrapped method loads the list
    and the result is stored for the tenant.
    Example:
      @cached_by_tenant
      async def list_tasks(self, tenant_id): ...
    """

    @wraps(fn)
    async def wrapper(self, tenant_id: str, *args, **kwargs):
        cached = self.cache.get(tenant_id)
        if cached is not None:
            return cached

        value = await fn(self, tenant_id, *args, **kwargs)
        self.cache.set(tenant_id, value)
        return value

    return wrapper


def invalidates_tenant(fn: Callable):
    """Drop the tenant's cached list once the wrapped write has returned."""

    @wraps(fn)
    async def wrapper(self, tenant_id: str, *args, **kwargs):
        result = await fn(self, tenant_id, *args, **kwargs)
        self.cache.invalidate(tenant_id)
        return result

    return wrapper
