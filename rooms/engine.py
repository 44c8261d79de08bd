"""
Container engine adapter.

Thin layer over the Docker SDK low-level API. The engine is the only source
of truth for which rooms exist; nothing here caches state between calls.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

import docker
from docker.errors import DockerException, NotFound
from docker.types import LogConfig

from .errors import EngineConnectionError
from .models import WorkloadSpec

logger = logging.getLogger(__name__)


@dataclass
class Workload:
    """A container as reported by the engine."""
    id: str
    name: str
    image: str
    labels: Dict[str, str] = field(default_factory=dict)
    env: List[str] = field(default_factory=list)
    state: str = ''
    status: str = ''
    created: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self.state == 'running'


def _parse_created(value) -> Optional[datetime]:
    """Docker reports epoch seconds when listing and RFC 3339 when inspecting."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    # 2024-05-01T12:00:00.123456789Z, nanoseconds do not fit strptime
    return datetime.strptime(value[:19], '%Y-%m-%dT%H:%M:%S').replace(tzinfo=timezone.utc)


class DockerEngine:
    """Room operations on a Docker daemon."""

    def __init__(self, client: docker.DockerClient):
        self.client = client

    @classmethod
    def from_env(cls, timeout: int = 30) -> "DockerEngine":
        """
        Connect using DOCKER_HOST and friends.

        Raises:
            EngineConnectionError: the daemon is not reachable
        """
        try:
            client = docker.from_env(timeout=timeout)
            client.ping()
        except DockerException as e:
            raise EngineConnectionError(f"Unable to connect to docker: {e}") from e

        logger.info("Successfully connected to docker")
        return cls(client)

    @property
    def api(self) -> docker.APIClient:
        return self.client.api

    def ping(self) -> bool:
        return bool(self.api.ping())

    def list_workloads(self, label_filter: str) -> List[Workload]:
        """List containers in any state carrying the given label."""
        containers = self.api.containers(all=True, filters={'label': label_filter})
        return [
            Workload(
                id=c['Id'],
                name=(c.get('Names') or [''])[0].lstrip('/'),
                image=c.get('Image', ''),
                labels=c.get('Labels') or {},
                state=c.get('State', ''),
                status=c.get('Status', ''),
                created=_parse_created(c.get('Created')),
            )
            for c in containers
        ]

    def inspect(self, container: str) -> Optional[Workload]:
        """Inspect a container by ID or name, None if it does not exist."""
        try:
            attrs = self.api.inspect_container(container)
        except NotFound:
            return None

        config = attrs.get('Config') or {}
        state = attrs.get('State') or {}
        return Workload(
            id=attrs['Id'],
            name=attrs.get('Name', '').lstrip('/'),
            image=config.get('Image', ''),
            labels=config.get('Labels') or {},
            env=config.get('Env') or [],
            state=state.get('Status', ''),
            status=state.get('Status', ''),
            created=_parse_created(attrs.get('Created')),
        )

    def create(self, spec: WorkloadSpec) -> str:
        host_config = self.api.create_host_config(
            port_bindings=spec.port_bindings,
            log_config=LogConfig(type=LogConfig.types.JSON, config={}),
            restart_policy={'Name': spec.restart_policy},
            cap_add=spec.cap_add,
            shm_size=spec.shm_size,
        )

        networking_config = None
        if spec.network:
            networking_config = self.api.create_networking_config({
                spec.network: self.api.create_endpoint_config()
            })

        container = self.api.create_container(
            image=spec.image,
            name=spec.name,
            hostname=spec.hostname,
            domainname=spec.hostname,
            environment=spec.env,
            ports=spec.exposed_ports,
            labels=spec.labels,
            host_config=host_config,
            networking_config=networking_config,
        )
        return container['Id']

    def start(self, container_id: str):
        self.api.start(container_id)

    def stop(self, container_id: str):
        self.api.stop(container_id)

    def restart(self, container_id: str):
        self.api.restart(container_id)

    def remove(self, container_id: str, force: bool = True, volumes: bool = True):
        self.api.remove_container(container_id, v=volumes, force=force)
