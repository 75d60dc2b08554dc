"""Per-request statistics for HTTP servers, collected by a WSGI middleware."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

REAL_IP_HEADERS = ("X-Real-Ip", "X-Forwarded-For-Pound", "X-Forwarded-For")
"""Headers carrying the client address behind a proxy, in order of preference."""

MASTER_NAME = "http_client"


def default_exception_status_checker(status_code: int) -> bool:
    """Status codes of 400 and above count as failures."""
    return status_code >= 400


@dataclass
class HttpStatConfig:
    """Identity of the HTTP server that reports statistics."""

    container: str = ""
    app_name: str = ""
    ip: str = ""
    port: int = 0
    version: str = ""
    set_id: str = ""
    exception_status_checker: Optional[Callable[[int], bool]] = None


@dataclass
class RequestStat:
    """What was observed about one request."""

    req_addr: str
    pattern: str
    status_code: int
    cost_time: int


@dataclass
class StatRecord:
    """One statistics entry: who called whom, and how it went."""

    master_name: str = MASTER_NAME
    master_ip: str = ""
    tars_version: str = ""
    slave_name: str = ""
    slave_ip: str = ""
    slave_port: int = 0
    interface_name: str = ""
    slave_set_name: str = ""
    slave_set_area: str = ""
    slave_set_id: str = ""
    count: int = 0
    exec_count: int = 0
    total_rsp_time: int = 0
    max_rsp_time: int = 0
    min_rsp_time: int = 0


def client_address(headers: Mapping[str, str], remote_addr: str) -> str:
    """Client address from proxy headers, else the host part of the peer address."""
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in REAL_IP_HEADERS:
        value = lowered.get(name.lower(), "")
        if value:
            return value
    return remote_addr.split(":", 1)[0]


def build_stat_record(cfg: HttpStatConfig, stat: RequestStat) -> StatRecord:
    """Turn an observed request into a statistics entry for the given server."""
    record = StatRecord(
        master_ip=stat.req_addr,
        tars_version=cfg.version,
        slave_name=cfg.app_name,
        slave_ip=cfg.ip,
        slave_port=cfg.port,
        interface_name=stat.pattern,
    )
    if cfg.set_id:
        parts = cfg.set_id.split(".")
        if len(parts) < 3:
            raise ValueError(f"set id {cfg.set_id!r} needs name.area.id")
        record.slave_set_name, record.slave_set_area, record.slave_set_id = parts[:3]
        record.slave_name = f"{record.slave_name}.{parts[0]}{parts[1]}{parts[2]}"

    checker = cfg.exception_status_checker or default_exception_status_checker
    if checker(stat.status_code):
        record.exec_count = 1
    else:
        record.count = 1
        record.total_rsp_time = stat.cost_time
        record.max_rsp_time = stat.cost_time
        record.min_rsp_time = stat.cost_time
    return record


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _environ_headers(environ: Mapping[str, Any]) -> dict[str, str]:
    headers = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers[key[5:].replace("_", "-")] = value
    return headers


def _default_pattern(environ: Mapping[str, Any]) -> str:
    return (environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")) or "/"


def _protocol_at_least_11(protocol: str) -> bool:
    try:
        major, minor = protocol.split("/", 1)[1].split(".", 1)
        return (int(major), int(minor)) >= (1, 1)
    except (IndexError, ValueError):
        return False


class _ReportingIterable:
    def __init__(self, body: Iterable[bytes], on_close: Callable[[], None]) -> None:
        self._body = body
        self._on_close = on_close

    def __iter__(self):
        return iter(self._body)

    def close(self) -> None:
        try:
            close = getattr(self._body, "close", None)
            if close is not None:
                close()
        finally:
            self._on_close()


class StatMiddleware:
    """WSGI middleware that reports a StatRecord for every request it passes on.

    The record is handed to ``reporter`` when the response is closed.
    ``pattern_of`` names the route a request matched; by default the path.
    """

    def __init__(
        self,
        app: Callable,
        cfg: Optional[HttpStatConfig],
        reporter: Optional[Callable[[StatRecord], None]],
        pattern_of: Callable[[Mapping[str, Any]], str] = _default_pattern,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.app = app
        self.cfg = cfg
        self.reporter = reporter
        self.pattern_of = pattern_of
        self.clock = clock

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        if environ.get("REQUEST_URI") == "*" or environ.get("PATH_INFO") == "*":
            headers = []
            if _protocol_at_least_11(environ.get("SERVER_PROTOCOL", "")):
                headers.append(("Connection", "close"))
            start_response("400 Bad Request", headers)
            return [b""]

        status_code = 0

        def capture(status: str, headers: list, exc_info: Any = None):
            nonlocal status_code
            try:
                status_code = int(status.split(" ", 1)[0])
            except ValueError:
                status_code = 0
            if exc_info is not None:
                return start_response(status, headers, exc_info)
            return start_response(status, headers)

        start = self.clock()
        body = self.app(environ, capture)

        def report() -> None:
            if self.cfg is None or self.reporter is None:
                return
            stat = RequestStat(
                req_addr=client_address(
                    _environ_headers(environ), environ.get("REMOTE_ADDR", "")
                ),
                pattern=self.pattern_of(environ) or "/",
                status_code=status_code,
                cost_time=self.clock() - start,
            )
            self.reporter(build_stat_record(self.cfg, stat))

        return _ReportingIterable(body, report)