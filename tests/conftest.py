"""
Pytest configuration and fixtures for room orchestrator tests.
"""
import os
import sys
import threading
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from docker.errors import APIError

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from rooms.app import create_app
from rooms.config import RoomConfig
from rooms.engine import Workload
from rooms.labels import LabelCodec
from rooms.models import PortRange, RoomIdentity
from rooms.room_manager import RoomManager


class FakeEngine:
    """In-memory stand-in for DockerEngine."""

    def __init__(self):
        self.workloads = {}
        self.calls = []
        self._lock = threading.Lock()
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _next_created(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    def add_workload(self, labels, name=None, env=None, state='running', image='m1k1o/neko:latest'):
        """Put a container straight into the inventory, bypassing create()."""
        workload = Workload(
            id=uuid.uuid4().hex + uuid.uuid4().hex,
            name=name or f"other-{uuid.uuid4().hex[:8]}",
            image=image,
            labels=dict(labels),
            env=list(env or []),
            state=state,
            status='Up 1 minute' if state == 'running' else 'Exited (0)',
            created=self._next_created(),
        )
        self.workloads[workload.id] = workload
        return workload

    def ping(self):
        return True

    def list_workloads(self, label_filter):
        key, _, value = label_filter.partition('=')
        with self._lock:
            return [w for w in self.workloads.values() if w.labels.get(key) == value]

    def inspect(self, container):
        if container in self.workloads:
            return self.workloads[container]
        for workload in self.workloads.values():
            if workload.name == container:
                return workload
        return None

    def create(self, spec):
        self.calls.append(('create', spec.name))
        with self._lock:
            if any(w.name == spec.name for w in self.workloads.values()):
                raise APIError(f"Conflict. The container name \"/{spec.name}\" is already in use")
            workload = Workload(
                id=uuid.uuid4().hex + uuid.uuid4().hex,
                name=spec.name,
                image=spec.image,
                labels=dict(spec.labels),
                env=list(spec.env),
                state='created',
                status='Created',
                created=self._next_created(),
            )
            self.workloads[workload.id] = workload
        self.last_spec = spec
        return workload.id

    def start(self, container_id):
        self.calls.append(('start', container_id))
        self.workloads[container_id].state = 'running'
        self.workloads[container_id].status = 'Up Less than a second'

    def stop(self, container_id):
        self.calls.append(('stop', container_id))
        self.workloads[container_id].state = 'exited'
        self.workloads[container_id].status = 'Exited (0) Less than a second ago'

    def restart(self, container_id):
        self.calls.append(('restart', container_id))
        self.workloads[container_id].state = 'running'

    def remove(self, container_id, force=True, volumes=True):
        self.calls.append(('remove', container_id))
        del self.workloads[container_id]


@pytest.fixture
def room_config():
    """Ten port window matching the allocation scenarios."""
    return RoomConfig(
        epr_min=59000,
        epr_max=59009,
        traefik_domain='rooms.test',
        traefik_entrypoint='web',
        traefik_network='traefik-net',
        container_prefix='neko-room-',
        image='m1k1o/neko:latest',
    )


@pytest.fixture
def codec():
    return LabelCodec()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def manager(room_config, engine):
    return RoomManager(room_config, engine)


@pytest.fixture
def room_labels(codec):
    """Build a valid label set for a room leasing the given range."""
    def make(name, port_min, port_max):
        identity = RoomIdentity(name=name, url=f"http://rooms.test/{name}/")
        return codec.encode(identity, PortRange(port_min, port_max))
    return make


@pytest.fixture
def app(engine):
    """Create application for testing."""
    return create_app('testing', engine=engine)


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
