"""
Shared application state and the per-dispatch invocation context.

- App: process-wide state built once per CLI (logger handle, free-form data bag).
  It is read-mostly and shared by reference with every hook, middleware and handler.
- Context: created fresh for every dispatch and handed explicitly to every hook,
  middleware and handler call. It carries named fields instead of keyed lookups:
  app, command, args (tuple snapshot), flags (read-only mapping snapshot) and the
  caller's cancellation event, passed through unchanged.
"""
import logging
from types import MappingProxyType
from typing import NamedTuple

from .faults import CancelledError
from .utils import *


class App:
    """
    Shared state of one CLI instance.

    Attributes
    - logger: logging.Logger used by application code (hooks, middleware, handlers).
    - data: dict the application may use to share objects across invocations.
    """

    def __init__(self, logger=Unset, data=Unset):
        if not isinstance(logger, logging.Logger | Unset):
            raise TypeError("app 'logger' must be a logging.Logger")
        if not isinstance(data, dict | Unset):
            raise TypeError("app 'data' must be a dict")
        self.logger = coalesce(logger, logging.getLogger("flagon.app"))
        self.data = coalesce(data, {})

    def __repr__(self):
        return f"app(logger={self.logger.name!r}, data={sorted(self.data)!r})"


class Context(NamedTuple):
    """
    Invocation context of one dispatch; never shared across invocations.
    """
    app: App
    command: object
    args: tuple = ()
    flags: MappingProxyType = MappingProxyType({})
    cancellation: object = None

    @property
    def cancelled(self):
        """
        True once the caller-supplied cancellation event (if any) is set.
        """
        return self.cancellation is not None and self.cancellation.is_set()

    def raise_if_cancelled(self):
        if self.cancelled:
            raise CancelledError(
                f"{getattr(self.command, 'name', 'command')!s} was cancelled by the caller",
                command=self.command,
            )

    def flag(self, name, default=None, /):
        return self.flags.get(name, default)


__all__ = (
    "App",
    "Context",
)
