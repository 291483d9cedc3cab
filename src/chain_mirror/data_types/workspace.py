from enum import Enum
from pydantic import BaseModel


class TransportType(Enum):
    HTTP = "http"
    WEBSOCKET = "websocket"


class Workspace(BaseModel):
    model_config = {
        "frozen": True,
    }

    name: str
    rpc_server: str
    network_id: int

    @property
    def transport(self) -> TransportType:
        # http:// and https:// endpoints can only be polled
        if self.rpc_server.startswith('http'):
            return TransportType.HTTP
        return TransportType.WEBSOCKET
