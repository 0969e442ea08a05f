from __future__ import annotations
from dataclasses import dataclass
import random

@dataclass
class FaultConfig:
    delay_ms: int = 0           # add delay before responding
    drop_rate: float = 0.0      # 0.0..1.0, whole request ignored
    garbage_rate: float = 0.0   # 0.0..1.0, junk datagram sent ahead of a response

    def should_drop(self) -> bool:
        return self.drop_rate > 0 and random.random() < self.drop_rate
    
    def should_send_garbage(self) -> bool:
        return self.garbage_rate > 0 and random.random() < self.garbage_rate

def garbage_datagram(size: int = 64) -> bytes:
    # never starts with "HTTP/" so it cannot parse as a response
    return b"\x00" + random.randbytes(size - 1)
