"""Reachability check before the crawl."""
import asyncio
import socket

import pytest

from catalog_crawler.errors import ConnectivityError
from catalog_crawler.utils.preflight import check_host


def test_succeeds_when_port_accepts_connections():
    async def scenario():
        accepted = []

        async def on_connect(reader, writer):
            accepted.append(True)
            writer.close()

        server = await asyncio.start_server(on_connect, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            await check_host("127.0.0.1", 1000, port)
            await asyncio.sleep(0.05)
        return accepted

    assert asyncio.run(scenario()) == [True]


def test_refused_connection_is_connectivity_error():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    # Nothing listens on the port any more.

    with pytest.raises(ConnectivityError):
        asyncio.run(check_host("127.0.0.1", 1000, port))


def test_timeout_is_connectivity_error(monkeypatch):
    async def never_connects(host, port):
        await asyncio.sleep(3600)

    monkeypatch.setattr(asyncio, "open_connection", never_connects)

    with pytest.raises(ConnectivityError, match="timeout"):
        asyncio.run(check_host("www.example.com", 50, 443))
