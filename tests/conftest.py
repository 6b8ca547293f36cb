"""Shared fakes and fixtures for the sinklog test-suite."""

import io
import logging

import pytest

from sinklog.sinks import SinkFactory


class FakeClient:
    """Stands in for ``bugsnag.Client``; records every notify() call."""

    def __init__(self, api_key=None, app_version=None, release_stage=None):
        self.api_key = api_key
        self.app_version = app_version
        self.release_stage = release_stage
        self.notified = []

    def notify(self, exception, **options):
        self.notified.append((exception, options))


class FakeConnection:
    """Stands in for UdpConnection / TcpConnection."""

    def __init__(self, host, port):
        self.host = host
        self.port = port
        self.written = []
        self.open_calls = 0
        self.close_calls = 0

    def open(self):
        self.open_calls += 1

    def write(self, text):
        self.written.append(text)

    def flush(self):
        pass

    def close(self):
        self.close_calls += 1


class RecordingHandler(logging.Handler):
    """Collects every record it is asked to emit."""

    def __init__(self, journal=None, name=None):
        super().__init__()
        self.records = []
        self.journal = journal
        self.sink_name = name

    def emit(self, record):
        self.records.append(record)
        if self.journal is not None:
            self.journal.append(self.sink_name)


def make_config(**transports):
    """Return a valid configuration mapping with the given transports."""
    return {
        "transports": transports,
        "version": "5",
        "app_name": "app-logger",
        "env": "test",
    }


class FakeFactoryParts:
    """Bundle of the fakes a SinkFactory was built with."""

    def __init__(self):
        self.stdout = io.StringIO()
        self.clients = []
        self.connections = []

    def client(self, api_key, app_version, release_stage):
        client = FakeClient(api_key, app_version, release_stage)
        self.clients.append(client)
        return client

    def connection(self, host, port):
        conn = FakeConnection(host, port)
        self.connections.append(conn)
        return conn

    def factory(self, use_color=False):
        return SinkFactory(
            stdout=self.stdout,
            client_factory=self.client,
            connections={"udp": self.connection, "tcp": self.connection},
            use_color=use_color,
        )


@pytest.fixture
def parts():
    return FakeFactoryParts()
