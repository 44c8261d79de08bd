import logging
import threading
from typing import List, Optional, Tuple

import requests
from docker.errors import APIError

from . import port_allocator, workload_spec
from .config import RoomConfig
from .engine import DockerEngine, Workload
from .errors import CorruptMetadataError, InvalidRequestError, NotFoundError
from .labels import LabelCodec
from .models import PortRange, RoomEntry, RoomIdentity, RoomSettings
from .name_generator import generate_room_name

logger = logging.getLogger(__name__)


class RoomManager:
    """
    Manages room lifecycle on top of the container engine:
    - List rooms by decoding container labels
    - Lease port ranges and create room containers
    - Start/stop/restart/remove room containers

    No state is kept here. Leases exist exactly as long as their containers
    do, so every allocation rescans the inventory.
    """

    def __init__(self, config: RoomConfig, engine, codec: Optional[LabelCodec] = None):
        self.config = config
        self.engine = engine
        self.codec = codec or LabelCodec()
        # Held from inventory scan until the new container exists
        self._allocation_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: RoomConfig) -> "RoomManager":
        """Connect to docker; raises EngineConnectionError when unreachable."""
        return cls(config, DockerEngine.from_env(timeout=config.engine_timeout))

    def _room_workloads(self) -> List[Workload]:
        workloads = self.engine.list_workloads(self.codec.canary_filter())
        # Never trust the engine-side filter alone
        return [w for w in workloads if self.codec.is_room(w.labels)]

    def _inspect_room(self, room_id: str) -> Workload:
        workload = self.engine.inspect(room_id)
        if workload is None or not self.codec.is_room(workload.labels):
            raise NotFoundError(room_id)
        return workload

    def _leased_ranges(self, workloads: List[Workload]) -> List[PortRange]:
        # A single undecodable container aborts the scan, undercounting risks a collision
        return [self.codec.decode_port_range(w.labels, w.id) for w in workloads]

    def list_rooms(self) -> List[RoomEntry]:
        """List every room, failing entirely if any room has damaged labels."""
        result = []
        for workload in self._room_workloads():
            identity, port_range = self.codec.decode(workload.labels, workload.id)
            result.append(RoomEntry(
                id=workload.id,
                url=identity.url,
                name=identity.name,
                max_connections=port_range.size,
                image=workload.image,
                running=workload.running,
                status=workload.status,
                created=workload.created,
            ))

        result.sort(key=lambda e: (e.created is None, e.created, e.name))
        return result

    def create_room(self, settings: RoomSettings) -> Tuple[str, RoomIdentity]:
        """
        Create and start a room container.

        Returns:
            Tuple of (container ID, room identity)

        Raises:
            InvalidRequestError: invalid settings or room name already in use
            PortExhaustionError: no free port range of the requested size
            CorruptMetadataError: an existing room has damaged labels
        """
        settings.validate()
        room_name = settings.name or generate_room_name()
        identity = workload_spec.build_identity(room_name, self.config)

        with self._allocation_lock:
            workloads = self._room_workloads()

            for workload in workloads:
                if workload.labels.get(self.codec.name_key) == room_name:
                    raise InvalidRequestError(f"Room name '{room_name}' is already in use")

            port_range = port_allocator.allocate(
                settings.max_connections,
                self.config.window,
                self._leased_ranges(workloads),
                self.config.reserved_ports
            )

            spec = workload_spec.build(settings, identity, port_range, self.config, self.codec)

            container_id = None
            try:
                container_id = self.engine.create(spec)
                self.engine.start(container_id)
            except (APIError, requests.exceptions.RequestException) as e:
                self._rollback(spec.name, room_name, container_id, e)
                raise

        logger.info(f"Created room {room_name} ({container_id[:12]}) with ports {port_range}")
        return container_id, identity

    def _rollback(
        self,
        container_name: str,
        room_name: str,
        container_id: Optional[str],
        error: Exception
    ):
        """
        Make sure a failed create leaves no container, and so no lease, behind.

        Only a container this call created is removed: either the one whose
        ID create returned, or one found by name that carries our canary and
        this room's name. A name conflict means someone else owns the name.
        """
        try:
            if container_id is None:
                if isinstance(error, APIError) and error.status_code == 409:
                    return

                workload = self.engine.inspect(container_name)
                if workload is None:
                    return
                if not self.codec.is_room(workload.labels) or \
                        workload.labels.get(self.codec.name_key) != room_name:
                    logger.info(f"Not removing container {container_name}, it is not this room")
                    return
                container_id = workload.id

            self.engine.remove(container_id, force=True, volumes=True)
            logger.info(f"Removed partially created room container {container_name}")
        except (APIError, requests.exceptions.RequestException) as e:
            logger.error(f"Failed to remove partially created room container {container_name}: {e}")

    def get_room(self, room_id: str) -> Tuple[RoomIdentity, RoomSettings]:
        """Get identity and settings of a room."""
        workload = self._inspect_room(room_id)
        identity, port_range = self.codec.decode(workload.labels, workload.id)

        try:
            settings = RoomSettings.from_env(
                workload.env,
                name=identity.name,
                max_connections=port_range.size
            )
        except ValueError as e:
            raise CorruptMetadataError(f"invalid environment: {e}", workload.id) from e

        return identity, settings

    def remove_room(self, room_id: str):
        """Stop and remove a room together with its volumes, releasing its ports."""
        self._inspect_room(room_id)

        self.engine.stop(room_id)
        self.engine.remove(room_id, force=True, volumes=True)
        logger.info(f"Removed room {room_id[:12]}")

    def start_room(self, room_id: str):
        self._inspect_room(room_id)
        self.engine.start(room_id)
        logger.info(f"Started room {room_id[:12]}")

    def stop_room(self, room_id: str):
        self._inspect_room(room_id)
        self.engine.stop(room_id)
        logger.info(f"Stopped room {room_id[:12]}")

    def restart_room(self, room_id: str):
        self._inspect_room(room_id)
        self.engine.restart(room_id)
        logger.info(f"Restarted room {room_id[:12]}")
