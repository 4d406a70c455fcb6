"""Middleware hooks around event handling."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Mapping


class Middleware:
    """Hooks called around event handling.

    Each hook can be supplied as a callable when the middleware is built, or
    by overriding the method in a subclass. A hook that is neither supplied
    nor overridden leaves the context unchanged. Hooks that take a context
    return the context to use from then on and raise to report a failure.
    """

    _hooks: Mapping[str, Callable[..., Any]] = MappingProxyType({})

    def __init__(self, *, before_all=None, before=None, after=None,
                 after_all=None, close=None):
        supplied = {
            "before_all": before_all,
            "before": before,
            "after": after,
            "after_all": after_all,
            "close": close,
        }
        self._hooks = MappingProxyType(
            {name: fn for name, fn in supplied.items() if fn is not None}
        )

    def _run(self, name, ctx, *args):
        hook = self._hooks.get(name)
        if hook is None:
            return ctx
        result = hook(ctx, *args)
        return ctx if result is None else result

    def before_all(self, ctx, inouts):
        """Called once before any event is handled."""
        return self._run("before_all", ctx, inouts)

    def before(self, ctx, event):
        """Called before each event is handled."""
        return self._run("before", ctx, event)

    def after(self, ctx, event, out, err):
        """Called after each event is handled."""
        return self._run("after", ctx, event, out, err)

    def after_all(self, ctx, inouts):
        """Called once after all events are handled."""
        return self._run("after_all", ctx, inouts)

    def close(self, ctx):
        """Called after ``after_all`` to release resources."""
        hook = self._hooks.get("close")
        if hook is not None:
            hook(ctx)