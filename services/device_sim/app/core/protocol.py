from __future__ import annotations
from dataclasses import dataclass, field
from .state import DeviceState
from .faults import FaultConfig, garbage_datagram

MAX_REQUEST_LOG = 1000

@dataclass
class SimDevice:
    name: str
    search_target: str = "upnp:rootdevice"
    state: DeviceState = DeviceState.ONLINE

    def matches(self, st: str | None) -> bool:
        return st is None or st == "ssdp:all" or st == self.search_target

    def response(self) -> bytes:
        return (
            "HTTP/1.1 200 OK\r\n"
            "CACHE-CONTROL: max-age=1800\r\n"
            "EXT:\r\n"
            f"LOCATION: http://127.0.0.1/{self.name}.xml\r\n"
            "SERVER: device_sim/0.3 UPnP/1.0\r\n"
            f"ST: {self.search_target}\r\n"
            f"USN: uuid:{self.name}::{self.search_target}\r\n"
            "Content-Length: 0\r\n"
            "\r\n"
        ).encode("utf-8")

@dataclass(frozen=True)
class SeenRequest:
    method: str
    target: str
    headers: dict[str, str]
    source: str

def parse_request(data: bytes) -> SeenRequest | None:
    """
    Lenient parse of an HTTPU request head, the way a cheap device would do
    it. Returns None for anything that is not a request line plus headers.
    """
    head, sep, _ = data.partition(b"\r\n\r\n")
    if not sep:
        return None
    lines = head.decode("utf-8", errors="replace").split("\r\n")
    parts = lines[0].split(" ")
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        return None
    headers: dict[str, str] = {}
    for line in lines[1:]:
        name, colon, value = line.partition(":")
        if not colon:
            return None
        headers[name.strip().upper()] = value.strip()
    return SeenRequest(method=parts[0], target=parts[1], headers=headers, source="")

@dataclass
class SimModel:
    devices: dict[str, SimDevice] = field(default_factory=lambda: {"device-1": SimDevice("device-1")})
    reset_count: int = 0
    faults: FaultConfig = field(default_factory=FaultConfig)
    seen: list[SeenRequest] = field(default_factory=list)

    def reset(self) -> None:
        self.devices = {"device-1": SimDevice("device-1")}
        self.seen.clear()
        self.reset_count += 1
        # keep faults as-is; tests can choose to reset them explicitly

    def set_devices(self, names: list[str], search_target: str) -> None:
        self.devices = {n: SimDevice(n, search_target) for n in names}

    def sleep(self, name: str) -> None:
        if name not in self.devices:
            raise KeyError(name)
        self.devices[name].state = DeviceState.SLEEPING

    def wake(self, name: str) -> None:
        if name not in self.devices:
            raise KeyError(name)
        self.devices[name].state = DeviceState.ONLINE

    def respond(self, data: bytes, source: str) -> list[bytes]:
        """Datagrams to send back for one received datagram, in order."""
        if self.faults.should_drop():
            return []
        req = parse_request(data)
        if req is None:
            # device drops what it cannot read
            return []
        self.seen.append(SeenRequest(req.method, req.target, req.headers, source))
        del self.seen[:-MAX_REQUEST_LOG]

        if req.method not in ("M-SEARCH", "GET"):
            return []
        out: list[bytes] = []
        for dev in self.devices.values():
            if dev.state != DeviceState.ONLINE or not dev.matches(req.headers.get("ST")):
                continue
            if self.faults.should_send_garbage():
                out.append(garbage_datagram())
            out.append(dev.response())
        return out
