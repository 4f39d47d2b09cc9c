"""
Middleware composition.

A middleware takes a handler and returns a handler:

    def timing(next):
        def handler(ctx):
            started = time.monotonic()
            try:
                return next(ctx)
            finally:
                ctx.app.logger.info("took %.3fs", time.monotonic() - started)
        return handler

Within one list, later entries end up closer to the wrapped handler, so the
first entry observes the call first on entry and last on exit. Across scopes the
dispatcher layers lists leaf-innermost, global-outermost (see assemble()).
"""
from .utils import *


def apply(handler, middleware, /):
    """
    Wrap handler with one ordered middleware list (None entries are skipped).
    """
    if handler is None:
        return None
    for layer in reversed(list(middleware)):
        if layer is None:
            continue
        if not callable(wrapped := layer(handler)):
            raise TypeError(f"middleware {layer!r} must return a callable handler")
        handler = wrapped
    return handler


def assemble(handler, own, ancestors, outer, /):
    """
    Build the final handler of a dispatch.

    Layering (innermost first)
    - own: the resolved command's middleware;
    - ancestors: middleware lists ordered root-to-leaf; applied nearest ancestor first;
    - outer: the CLI's global middleware (outermost).
    """
    handler = apply(handler, own)
    for middleware in reversed(list(ancestors)):
        handler = apply(handler, middleware)
    return apply(handler, outer)


def around(function, /):
    """
    Decorator turning a (ctx, next) function into a middleware.

        @around
        def audit(ctx, next):
            ctx.app.logger.debug("running %s", ctx.command.name)
            return next(ctx)
    """
    if not callable(function):
        raise TypeError("@around must be applied to a callable")

    name = getattr(function, "__name__", "middleware")

    @rename(name)
    def layer(next):
        @rename(f"{name}.handler")
        def handler(context):
            return function(context, next)
        return handler

    layer.__doc__ = function.__doc__
    return layer


__all__ = (
    "apply",
    "assemble",
    "around",
)
