from typing import Optional


class RoomError(Exception):
    """Base class for errors raised by the room orchestrator."""


class InvalidRequestError(RoomError):
    pass


class InvalidSettingsError(InvalidRequestError):
    pass


class PortExhaustionError(RoomError):
    def __init__(self, requested: int, window_min: int, window_max: int):
        self.requested = requested
        self.window_min = window_min
        self.window_max = window_max
        super().__init__(
            f"No {requested} contiguous free ports in window {window_min}-{window_max}"
        )


class CorruptMetadataError(RoomError):
    def __init__(self, reason: str, container_id: Optional[str] = None):
        self.container_id = container_id
        self.reason = reason
        if container_id:
            message = f"Damaged container labels on {container_id[:12]}: {reason}"
        else:
            message = f"Damaged container labels: {reason}"
        super().__init__(message)


class NotFoundError(RoomError):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room not found: {room_id}")


class EngineConnectionError(RoomError):
    pass
