from httpu.config.settings import get_settings


def test_defaults(monkeypatch):
    for var in (
        "HTTPU_BIND_ADDR",
        "HTTPU_RECV_BUF",
        "HTTPU_TRANSIENT_BACKOFF_S",
        "SIM_HTTP",
        "SIM_UDP_HOST",
        "SIM_UDP_PORT",
    ):
        monkeypatch.delenv(var, raising=False)
    s = get_settings()
    assert s.bind_addr == ""
    assert s.recv_buf == 2048
    assert s.transient_backoff_s == 0.01
    assert s.sim_http == "http://127.0.0.1:8000"
    assert (s.sim_udp_host, s.sim_udp_port) == ("127.0.0.1", 1900)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("HTTPU_BIND_ADDR", "127.0.0.1")
    monkeypatch.setenv("HTTPU_RECV_BUF", "4096")
    monkeypatch.setenv("SIM_UDP_PORT", "0")
    s = get_settings()
    assert s.bind_addr == "127.0.0.1"
    assert s.recv_buf == 4096
    assert s.sim_udp_port == 0
