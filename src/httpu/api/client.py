from __future__ import annotations
import httpx

class SimApiClient:
    """
    Control plane client for the device simulator. Pass `client` to drive an
    in-process app (e.g. a fastapi TestClient) instead of a live server.
    """
    def __init__(self, base_url: str = "", timeout_s: float = 2.0, client: httpx.Client | None = None):
        self._owned = client is None
        self._client = client if client is not None else httpx.Client(base_url=base_url, timeout=timeout_s)

    def close(self) -> None:
        if self._owned:
            self._client.close()

    def health(self) -> dict:
        r = self._client.get("/health")
        r.raise_for_status()
        return r.json()

    def status(self) -> dict:
        r = self._client.get("/status")
        r.raise_for_status()
        return r.json()

    def reset(self) -> dict:
        r = self._client.post("/control/reset")
        r.raise_for_status()
        return r.json()

    def set_devices(self, names: list[str], search_target: str = "upnp:rootdevice") -> dict:
        r = self._client.post("/control/devices", json={"names": names, "search_target": search_target})
        r.raise_for_status()
        return r.json()

    def sleep_device(self, name: str) -> dict:
        r = self._client.post(f"/control/devices/{name}/sleep")
        r.raise_for_status()
        return r.json()

    def wake_device(self, name: str) -> dict:
        r = self._client.post(f"/control/devices/{name}/wake")
        r.raise_for_status()
        return r.json()

    def set_faults(self, delay_ms: int = 0, drop_rate: float = 0.0, garbage_rate: float = 0.0) -> dict:
        r = self._client.post(
            "/control/faults",
            json={"delay_ms": delay_ms, "drop_rate": drop_rate, "garbage_rate": garbage_rate},
        )
        r.raise_for_status()
        return r.json()

    def requests(self) -> list[dict]:
        r = self._client.get("/requests")
        r.raise_for_status()
        return r.json()["requests"]
