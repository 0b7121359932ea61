"""TCP reachability probe for forwarding destinations."""

from __future__ import annotations

import errno
import socket
from typing import Any, Callable

from syslogconf.core.logging import get_logger


HOST_REQUIRED_MESSAGE = "Host name must not be null or empty."
PORT_OUT_OF_RANGE_MESSAGE = "Port number is out of range."

Connector = Callable[..., Any]


def describe_socket_error(exc: OSError) -> str:
    code = exc.errno
    if code is None:
        label = "timeout" if isinstance(exc, TimeoutError) else type(exc).__name__
    else:
        label = f"{errno.errorcode.get(code, 'E?')}({code})"
    description = exc.strerror or str(exc) or type(exc).__name__
    return f"socket error {label}: {description}"


class HostProbe:
    """Single-attempt TCP connect returning a reason on failure, ``None`` on success."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        connector: Connector | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._connect = connector or socket.create_connection
        self._logger = get_logger("syslogconf.probe")

    def probe(self, host: str, port: int) -> str | None:
        if not host or not host.strip():
            return HOST_REQUIRED_MESSAGE
        if port < 0 or port > 65535:
            return PORT_OUT_OF_RANGE_MESSAGE

        target = (host.strip(), int(port))
        try:
            connection = self._connect(target, timeout=self.timeout_seconds)
        except OSError as exc:
            message = describe_socket_error(exc)
            self._logger.info(
                f"tcp probe to {target[0]}:{target[1]} failed: {message}",
                extra={"event_action": "tcp_probe", "event_outcome": "failure"},
            )
            return message
        except Exception as exc:
            self._logger.info(
                f"tcp probe to {target[0]}:{target[1]} failed: {exc}",
                extra={"event_action": "tcp_probe", "event_outcome": "failure"},
            )
            return str(exc)

        try:
            connection.close()
        except OSError:
            pass
        self._logger.debug(
            f"tcp probe to {target[0]}:{target[1]} succeeded",
            extra={"event_action": "tcp_probe", "event_outcome": "success"},
        )
        return None
