"""Error boundary for process entry points.

Domain code raises; entry points decide what an unexpected failure means for
the process. The permission hook must turn any failure into a deny decision
(fail closed), the server must log it and exit non-zero. ErrorBoundary makes
that policy explicit instead of scattering ``except Exception`` blocks.

System exceptions (KeyboardInterrupt, SystemExit, CancelledError) always pass
through; they are not application errors.

Usage::

    boundary = ErrorBoundary(exit_code=0)

    @boundary.handler(Exception)
    def _deny(exc: Exception) -> None:
        emit_deny(f'hook error: {exc}')

    @boundary
    def main() -> None:
        ...

Handlers are dispatched by exception type with ``functools.singledispatch``,
so registering ``Exception`` acts as the catch-all.
"""

from __future__ import annotations

__all__ = [
    'ErrorBoundary',
    'ErrorHandler',
]

import functools
import inspect
import logging
import sys
from collections.abc import Callable
from functools import singledispatch
from types import TracebackType
from typing import Any, Self, TypeAlias, TypeVar, cast

ErrorHandler: TypeAlias = Callable[[Exception], None]

_F = TypeVar('_F', bound=Callable[..., object])

logger = logging.getLogger(__name__)


class ErrorBoundary:
    """Catch application exceptions, dispatch to a handler, then exit or suppress.

    Args:
        handler: Catch-all handler (same as ``@boundary.handler(Exception)``).
            Defaults to logging the exception with its traceback.
        exit_code: Process exit code after handling. ``None`` suppresses and
            continues. Defaults to 1.
    """

    def __init__(
        self,
        *,
        handler: ErrorHandler | None = None,
        exit_code: int | None = 1,
    ) -> None:
        self._dispatch = singledispatch(_default_handler)
        if handler is not None:
            self._dispatch.register(Exception, handler)
        self._exit_code = exit_code

    def handler(self, exc_type: type[Exception]) -> Callable[[Callable[..., None]], Callable[..., None]]:
        """Register a handler for ``exc_type`` (MRO-matched)."""
        return self._dispatch.register(exc_type)

    def __call__(self, func: _F) -> _F:
        """Wrap a sync or async function. The original stays reachable as ``__wrapped__``."""
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with self:
                    return await func(*args, **kwargs)

            return cast(_F, async_wrapper)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with self:
                return func(*args, **kwargs)

        return cast(_F, sync_wrapper)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        if not isinstance(exc_value, Exception):
            return False

        try:
            self._dispatch(exc_value)
        except Exception:
            # Handler itself failed: fall back so the original error is still reported
            _default_handler(exc_value)

        if self._exit_code is not None:
            sys.exit(self._exit_code)
        return True


def _default_handler(exc: Exception) -> None:
    """Log exception with traceback."""
    logger.error(f'Unhandled {type(exc).__name__}: {exc}', exc_info=exc)
