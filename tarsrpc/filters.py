"""Client and server filter registration and middleware chaining."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

Invoke = Callable[[Any, Any, float], Any]
"""invoke(ctx, msg, timeout) performs the remote call."""

Dispatch = Callable[[Any, Any, Any, Any, bool], Any]
"""dispatch(ctx, impl, req, resp, with_context) runs the servant implementation."""

ClientFilter = Callable[[Any, Any, Invoke, float], Any]
"""filter(ctx, msg, invoke, timeout) wraps a client call."""

ServerFilter = Callable[[Any, Dispatch, Any, Any, Any, bool], Any]
"""filter(ctx, dispatch, impl, req, resp, with_context) wraps a server dispatch."""

ClientFilterMiddleware = Callable[[ClientFilter], ClientFilter]
ServerFilterMiddleware = Callable[[ServerFilter], ServerFilter]

DispatchReporter = Callable[[Any, list, list, list], None]
"""reporter(ctx, req, rsp, returns) observes a server dispatch."""


def _invoke_through(ctx: Any, msg: Any, invoke: Invoke, timeout: float) -> Any:
    return invoke(ctx, msg, timeout)


def _dispatch_through(
    ctx: Any, dispatch: Dispatch, impl: Any, req: Any, resp: Any, with_context: bool
) -> Any:
    return dispatch(ctx, impl, req, resp, with_context)


@dataclass
class Filters:
    """Holds every registered filter, middleware and the dispatch reporter."""

    client_filter: Optional[ClientFilter] = None
    pre_client_filters: list[ClientFilter] = field(default_factory=list)
    post_client_filters: list[ClientFilter] = field(default_factory=list)
    client_middlewares: list[ClientFilterMiddleware] = field(default_factory=list)
    server_filter: Optional[ServerFilter] = None
    pre_server_filters: list[ServerFilter] = field(default_factory=list)
    post_server_filters: list[ServerFilter] = field(default_factory=list)
    server_middlewares: list[ServerFilterMiddleware] = field(default_factory=list)
    dispatch_reporter: Optional[DispatchReporter] = None

    def register_client_filter(self, f: ClientFilter) -> None:
        """Set the filter run around every client request."""
        self.client_filter = f

    def register_pre_client_filter(self, f: ClientFilter) -> None:
        """Add a filter run, in registration order, before every client request."""
        self.pre_client_filters.append(f)

    def register_post_client_filter(self, f: ClientFilter) -> None:
        """Add a filter run, in registration order, after every client request."""
        self.post_client_filters.append(f)

    def use_client_filter_middleware(self, *args: ClientFilterMiddleware) -> None:
        """Append client middlewares; the first registered runs outermost."""
        self.client_middlewares.extend(args)

    def middleware_client_filter(self) -> Optional[ClientFilter]:
        """Compose the client middlewares into one filter, or None if there are none."""
        if not self.client_middlewares:
            return None
        chained: ClientFilter = _invoke_through
        for middleware in reversed(self.client_middlewares):
            chained = middleware(chained)
        return chained

    def register_server_filter(self, f: ServerFilter) -> None:
        """Set the filter run around every server dispatch."""
        self.server_filter = f

    def register_pre_server_filter(self, f: ServerFilter) -> None:
        """Add a filter run, in registration order, before every dispatch."""
        self.pre_server_filters.append(f)

    def register_post_server_filter(self, f: ServerFilter) -> None:
        """Add a filter run, in registration order, after every dispatch."""
        self.post_server_filters.append(f)

    def use_server_filter_middleware(self, *args: ServerFilterMiddleware) -> None:
        """Append server middlewares; the first registered runs outermost."""
        self.server_middlewares.extend(args)

    def middleware_server_filter(self) -> Optional[ServerFilter]:
        """Compose the server middlewares into one filter, or None if there are none."""
        if not self.server_middlewares:
            return None
        chained: ServerFilter = _dispatch_through
        for middleware in reversed(self.server_middlewares):
            chained = middleware(chained)
        return chained

    def register_dispatch_reporter(self, f: DispatchReporter) -> None:
        """Set the reporter called after server dispatches."""
        self.dispatch_reporter = f


default_filters = Filters()
"""Process-wide filter registry used by the module-level functions."""


def register_client_filter(f: ClientFilter) -> None:
    default_filters.register_client_filter(f)


def register_pre_client_filter(f: ClientFilter) -> None:
    default_filters.register_pre_client_filter(f)


def register_post_client_filter(f: ClientFilter) -> None:
    default_filters.register_post_client_filter(f)


def use_client_filter_middleware(*args: ClientFilterMiddleware) -> None:
    default_filters.use_client_filter_middleware(*args)


def register_server_filter(f: ServerFilter) -> None:
    default_filters.register_server_filter(f)


def register_pre_server_filter(f: ServerFilter) -> None:
    default_filters.register_pre_server_filter(f)


def register_post_server_filter(f: ServerFilter) -> None:
    default_filters.register_post_server_filter(f)


def use_server_filter_middleware(*args: ServerFilterMiddleware) -> None:
    default_filters.use_server_filter_middleware(*args)


def register_dispatch_reporter(f: DispatchReporter) -> None:
    default_filters.register_dispatch_reporter(f)


def get_dispatch_reporter() -> Optional[DispatchReporter]:
    """Return the process-wide dispatch reporter, if one is registered."""
    return default_filters.dispatch_reporter