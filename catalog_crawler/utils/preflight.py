from __future__ import annotations

import asyncio
import logging
import time

from ..errors import ConnectivityError

logger = logging.getLogger(__name__)

SCHEME_PORTS = {"https": 443, "http": 80}


async def check_host(host: str, timeout_ms: int, port: int = 443) -> None:
    """
    Check that ``host:port`` accepts TCP connections within ``timeout_ms``.

    The connection is closed right after it is established; no request is
    sent. On timeout the pending connect is cancelled, so exactly one outcome
    is ever reported.
    """
    logger.info("Attempting to connect to %s:%s", host, port)
    started = time.monotonic()
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout_ms / 1000.0,
        )
    except asyncio.TimeoutError as exc:
        raise ConnectivityError(
            f"Connection timeout: {host}:{port} did not answer within {timeout_ms}ms"
        ) from exc
    except OSError as exc:
        logger.info("Could not connect: %s", exc)
        raise ConnectivityError(f"Could not connect to {host}:{port}: {exc}") from exc

    elapsed_ms = (time.monotonic() - started) * 1000
    logger.info("Received response from target host after %.0fms", elapsed_ms)

    writer.close()
    try:
        await writer.wait_closed()
    except OSError as exc:
        # Already connected; a failing close does not change the outcome.
        logger.debug("Error while closing preflight connection: %r", exc)
