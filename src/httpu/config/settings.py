from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class Settings:
    bind_addr: str
    recv_buf: int
    transient_backoff_s: float
    sim_http: str
    sim_udp_host: str
    sim_udp_port: int


def get_settings() -> Settings:
    """
    Centralized configuration for the client, the simulator and the tests.
    Values come from environment variables with safe defaults.
    """
    return Settings(
        bind_addr=os.getenv("HTTPU_BIND_ADDR", ""),
        # 2048 bytes is enough for typical discovery responses
        recv_buf=int(os.getenv("HTTPU_RECV_BUF", "2048")),
        transient_backoff_s=float(os.getenv("HTTPU_TRANSIENT_BACKOFF_S", "0.01")),
        sim_http=os.getenv("SIM_HTTP", "http://127.0.0.1:8000"),
        sim_udp_host=os.getenv("SIM_UDP_HOST", "127.0.0.1"),
        sim_udp_port=int(os.getenv("SIM_UDP_PORT", "1900")),
    )
