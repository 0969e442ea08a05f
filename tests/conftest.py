import dataclasses

import pytest
from fastapi.testclient import TestClient

from httpu.api.client import SimApiClient
from httpu.client import HTTPUClient
from httpu.config.settings import get_settings

from fakes import FakeDevice, Responder


@pytest.fixture
def settings():
    return dataclasses.replace(get_settings(), bind_addr="127.0.0.1", transient_backoff_s=0.01)


@pytest.fixture
def client(settings):
    c = HTTPUClient.open("127.0.0.1", settings=settings)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def fake_device():
    devices: list[FakeDevice] = []

    def make(responder: Responder | None = None) -> FakeDevice:
        d = FakeDevice(responder)
        devices.append(d)
        return d

    try:
        yield make
    finally:
        for d in devices:
            d.stop()


@pytest.fixture
def sim_app(monkeypatch):
    """
    The device simulator running in-process. TestClient keeps the app's event
    loop (and with it the UDP endpoint) alive for the duration of the test.
    """
    monkeypatch.setenv("SIM_UDP_PORT", "0")
    from services.device_sim.app.main import app

    with TestClient(app, base_url=get_settings().sim_http) as tc:
        yield tc


@pytest.fixture
def sim_api(sim_app):
    client = SimApiClient(client=sim_app)
    try:
        client.reset()
        client.set_faults()
        yield client
    finally:
        client.close()


@pytest.fixture
def sim_target(sim_api, settings):
    return f"{settings.sim_udp_host}:{sim_api.health()['udp_port']}"
