"""Dangling-update guard for views that outlive their network calls."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)


class MountGuard:
    """Applies call results only while the owning view is mounted.

    This is not cancellation: the call still completes, its result (or
    error) is just dropped once the view has unmounted.
    """

    def __init__(self, name: str = "view"):
        self.name = name
        self.mounted = True

    def unmount(self) -> None:
        self.mounted = False

    async def apply(
        self,
        call: Awaitable[Any],
        on_result: Callable[[Any], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> bool:
        """Await ``call``; route the outcome to the callbacks if still mounted.

        Returns True when a callback ran. Errors raised while mounted and
        without ``on_error`` propagate.
        """
        try:
            result = await call
        except Exception as e:
            if not self.mounted:
                logger.debug("Dropping error for unmounted view", view=self.name, error=str(e))
                return False
            if on_error is None:
                raise
            on_error(e)
            return True
        if not self.mounted:
            logger.debug("Dropping result for unmounted view", view=self.name)
            return False
        on_result(result)
        return True
