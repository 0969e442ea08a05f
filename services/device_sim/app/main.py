import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

import httpx

from httpu.config.settings import get_settings

from services.device_sim.app.core.protocol import SimModel

logger = logging.getLogger("device_sim")

MODEL = SimModel()

class UdpProto(asyncio.DatagramProtocol):
    def connection_made(self, transport):
        # required: stored transport for later sendto()
        self.transport = transport

    def datagram_received(self, data: bytes, addr):
        loop = asyncio.get_running_loop()
        replies = MODEL.respond(data, f"{addr[0]}:{addr[1]}")
        if not replies:
            return
        logger.debug("answering %s with %d datagram(s)", addr, len(replies))

        # schedule send (with optional delay)
        delay = MODEL.faults.delay_ms / 1000.0
        for pkt in replies:
            if delay > 0:
                loop.call_later(delay, self.transport.sendto, pkt, addr)
            else:
                self.transport.sendto(pkt, addr)

@asynccontextmanager
async def lifespan(app: FastAPI):
    loop = asyncio.get_running_loop()
    settings = get_settings()
    # port 0 lets the OS pick; /health reports the real one
    transport, _ = await loop.create_datagram_endpoint(
        lambda: UdpProto(),
        local_addr=(settings.sim_udp_host, settings.sim_udp_port),
    )
    app.state.udp_transport = transport
    try:
        yield
    finally:
        transport.close()
        app.state.udp_transport = None

app = FastAPI(title="HTTPU Device Simulator", version="0.3.0", lifespan=lifespan)

class FaultsIn(BaseModel):
    delay_ms: int = Field(0, ge=0, le=5000)
    drop_rate: float = Field(0.0, ge=0.0, le=1.0)
    garbage_rate: float = Field(0.0, ge=0.0, le=1.0)

class DevicesIn(BaseModel):
    names: list[str] = Field(default_factory=list)
    search_target: str = "upnp:rootdevice"

def _udp_sockname() -> tuple[str, int]:
    t = getattr(app.state, "udp_transport", None)
    if t is None:
        return get_settings().sim_udp_host, 0
    host, port = t.get_extra_info("sockname")[:2]
    return host, port

@app.get("/health")
def health():
    host, port = _udp_sockname()
    return {"status": "ok", "udp_host": host, "udp_port": port}

@app.get("/status")
def status():
    return {
        "reset_count": MODEL.reset_count,
        "devices": {n: d.state.value for n, d in MODEL.devices.items()},
        "faults": {
            "delay_ms": MODEL.faults.delay_ms,
            "drop_rate": MODEL.faults.drop_rate,
            "garbage_rate": MODEL.faults.garbage_rate,
        },
    }

@app.post("/control/reset")
def reset():
    MODEL.reset()
    return {"status": "reset", "reset_count": MODEL.reset_count}

@app.post("/control/devices")
def set_devices(d: DevicesIn):
    if len(set(d.names)) != len(d.names):
        raise HTTPException(status_code=422, detail="duplicate device names")
    MODEL.set_devices(d.names, d.search_target)
    return {"status": "devices_updated", "devices": list(MODEL.devices)}

@app.post("/control/devices/{name}/sleep")
def sleep_device(name: str):
    try:
        MODEL.sleep(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown device {name}")
    return {"status": "sleeping", "device": name}

@app.post("/control/devices/{name}/wake")
def wake_device(name: str):
    try:
        MODEL.wake(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown device {name}")
    return {"status": "online", "device": name}

@app.post("/control/faults")
def set_faults(f: FaultsIn):
    MODEL.faults.delay_ms = f.delay_ms
    MODEL.faults.drop_rate = f.drop_rate
    MODEL.faults.garbage_rate = f.garbage_rate
    return {"status": "faults_updated", "faults": f.model_dump()}

@app.get("/control/faults")
def get_faults():
    return{
        "delay_ms": MODEL.faults.delay_ms,
        "drop_rate": MODEL.faults.drop_rate,
        "garbage_rate": MODEL.faults.garbage_rate,
    }

@app.get("/requests")
def requests_seen():
    return {
        "requests": [
            {"method": r.method, "target": r.target, "headers": r.headers, "source": r.source}
            for r in MODEL.seen
        ]
    }

if __name__ == "__main__":
    import uvicorn
    http = httpx.URL(get_settings().sim_http)
    uvicorn.run(
        app,
        host=http.host,
        port=http.port or 80,
        reload=False)
