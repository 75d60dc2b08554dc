"""Administrative commands a running server answers."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
import traceback
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Optional

from .appcache import AppCache

_NOTIFY_NORMAL = 0
_PPROF_DEFAULT_PORT = "8080"
_PPROF_DEFAULT_TIMEOUT = 600

_LOG_LEVELS = {
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "DEBUG": logging.DEBUG,
    "NONE": logging.CRITICAL + 10,
}

AdminFn = Callable[[str], str]


def _format_stacks() -> str:
    names = {t.ident: t.name for t in threading.enumerate()}
    parts = []
    for ident, frame in sys._current_frames().items():
        header = f"Thread {names.get(ident, '?')} ({ident}):\n"
        parts.append(header + "".join(traceback.format_stack(frame)))
    return "\n".join(parts)


class _DebugHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        if not self.path.startswith("/debug/pprof/"):
            self.send_error(404)
            return
        body = _format_stacks().encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        return


def _grace_restart() -> None:
    env = dict(os.environ, GRACE_RESTART="1")
    subprocess.Popen([sys.executable, *sys.argv], env=env)


@dataclass
class Admin:
    """Handles shutdown and notify commands sent to the admin servant."""

    version: str = ""
    local_ip: str = "127.0.0.1"
    app_cache: AppCache = field(default_factory=AppCache)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("tarsrpc"))
    config_loader: Optional[Callable[[str], str]] = None
    on_shutdown: Optional[Callable[[], None]] = None
    on_restart: Callable[[], None] = _grace_restart
    notifier: Optional[Callable[[int, str], None]] = None
    methods: dict[str, AdminFn] = field(default_factory=dict)
    shutdown_requested: bool = False

    def register(self, name: str, fn: AdminFn) -> None:
        """Add a handler for commands whose first word is name."""
        self.methods[name] = fn

    def shutdown(self) -> None:
        """Mark the server as shut down by admin and start shutting down."""
        self.shutdown_requested = True
        if self.on_shutdown is not None:
            threading.Thread(target=self.on_shutdown, daemon=True).start()

    def notify(self, command: str) -> str:
        """Run an admin command and return its textual result."""
        cmd = command.split(" ")
        if self.notifier is not None:
            self.notifier(_NOTIFY_NORMAL, "AdminServant::notify:" + command)
        name = cmd[0]
        if name == "tars.viewversion":
            return self.version
        if name == "tars.setloglevel":
            return self._set_log_level(command, cmd)
        if name == "tars.dumpstack":
            self.logger.warning("tars.dumpstack:\n%s", _format_stacks())
            return f"{command} succ"
        if name == "tars.loadconfig":
            return self._load_config(cmd)
        if name == "tars.connection":
            return f"{command} not support now!"
        if name == "tars.gracerestart":
            self.on_restart()
            return "restart gracefully!"
        if name == "tars.pprof":
            return self._start_debug_server(cmd)
        handler = self.methods.get(name)
        if handler is not None:
            return handler(command)
        return f"{command} not support now!"

    def _set_log_level(self, command: str, cmd: list[str]) -> str:
        if len(cmd) < 2:
            return f"{command} failed: missing loglevel!"
        self.app_cache.log_level = cmd[1]
        level = _LOG_LEVELS.get(cmd[1])
        if level is None:
            return f"{cmd[0]} failed: unknown log level [{cmd[1]}]!"
        self.logger.setLevel(level)
        return f"{command} succ"

    def _load_config(self, cmd: list[str]) -> str:
        if len(cmd) < 2:
            raise ValueError("tars.loadconfig needs a file name")
        if self.config_loader is None:
            raise RuntimeError(f"Getconfig Error!: {cmd[1]}")
        try:
            self.config_loader(cmd[1])
        except Exception as exc:
            raise RuntimeError(f"Getconfig Error!: {cmd[1]}") from exc
        return f"Getconfig Success!: {cmd[1]}"

    def _start_debug_server(self, cmd: list[str]) -> str:
        port = cmd[1] if len(cmd) > 1 else _PPROF_DEFAULT_PORT
        timeout = _PPROF_DEFAULT_TIMEOUT
        if len(cmd) > 2:
            try:
                seconds = int(cmd[2])
            except ValueError:
                seconds = 0
            if 0 < seconds < 3600:
                timeout = seconds
        addr = f"{self.local_ip}:{port}"
        threading.Thread(
            target=self._serve_debug, args=(port, timeout), daemon=True
        ).start()
        return f"see http://{addr}/debug/pprof/"

    def _serve_debug(self, port: str, timeout: int) -> None:
        addr = f"{self.local_ip}:{port}"
        try:
            server = ThreadingHTTPServer((self.local_ip, int(port)), _DebugHandler)
        except (OSError, ValueError) as exc:
            self.logger.error("debug server on %s failed: %s", addr, exc)
            return
        self.logger.info("start serve pprof %s", addr)

        def stop() -> None:
            server.shutdown()
            server.server_close()
            self.logger.info("stop serve pprof %s", addr)

        timer = threading.Timer(timeout, stop)
        timer.daemon = True
        timer.start()
        server.serve_forever()