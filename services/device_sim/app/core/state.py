from enum import Enum

class DeviceState(str, Enum):
    ONLINE = "ONLINE"
    SLEEPING = "SLEEPING"
