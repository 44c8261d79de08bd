import os
from dataclasses import dataclass
from typing import List, Mapping, Tuple

from .models import PortRange


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in (value or '').split(',') if item.strip()]


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-prod')

    # Ephemeral port range leased to rooms
    ROOMS_EPR_MIN = int(os.getenv('ROOMS_EPR_MIN', '59000'))
    ROOMS_EPR_MAX = int(os.getenv('ROOMS_EPR_MAX', '59049'))
    ROOMS_RESERVED_PORTS = [int(p) for p in _split_list(os.getenv('ROOMS_RESERVED_PORTS', ''))]

    # Addresses handed to rooms for NAT traversal, empty lets them discover their own
    ROOMS_NAT1TO1 = _split_list(os.getenv('ROOMS_NAT1TO1', ''))

    # Traefik
    ROOMS_TRAEFIK_DOMAIN = os.getenv('ROOMS_TRAEFIK_DOMAIN', 'localhost')
    ROOMS_TRAEFIK_ENTRYPOINT = os.getenv('ROOMS_TRAEFIK_ENTRYPOINT', 'web')
    ROOMS_TRAEFIK_CERTRESOLVER = os.getenv('ROOMS_TRAEFIK_CERTRESOLVER', '')
    ROOMS_TRAEFIK_NETWORK = os.getenv('ROOMS_TRAEFIK_NETWORK', 'neko-rooms-traefik')

    # Containers
    ROOMS_CONTAINER_PREFIX = os.getenv('ROOMS_CONTAINER_PREFIX', 'neko-room-')
    ROOMS_IMAGE = os.getenv('ROOMS_IMAGE', 'm1k1o/neko:latest')
    ROOMS_SHM_SIZE = int(os.getenv('ROOMS_SHM_SIZE', str(2 * 1024 ** 3)))

    # Docker engine
    ROOMS_ENGINE_TIMEOUT = int(os.getenv('ROOMS_ENGINE_TIMEOUT', '30'))


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    DEBUG = False
    TESTING = True
    ROOMS_EPR_MIN = 59000
    ROOMS_EPR_MAX = 59009
    ROOMS_RESERVED_PORTS = []
    ROOMS_NAT1TO1 = []
    ROOMS_TRAEFIK_DOMAIN = 'rooms.test'
    ROOMS_TRAEFIK_CERTRESOLVER = ''


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


@dataclass(frozen=True)
class RoomConfig:
    """Global settings shared by every room, independent of Flask."""
    epr_min: int = 59000
    epr_max: int = 59049
    reserved_ports: Tuple[int, ...] = ()
    nat1to1: Tuple[str, ...] = ()
    traefik_domain: str = 'localhost'
    traefik_entrypoint: str = 'web'
    traefik_certresolver: str = ''
    traefik_network: str = ''
    container_prefix: str = 'neko-room-'
    image: str = 'm1k1o/neko:latest'
    shm_size: int = 2 * 1024 ** 3
    engine_timeout: int = 30

    @property
    def window(self) -> PortRange:
        return PortRange(self.epr_min, self.epr_max)

    @property
    def https(self) -> bool:
        return bool(self.traefik_certresolver)

    @classmethod
    def from_mapping(cls, values: Mapping) -> "RoomConfig":
        """Build from a Flask app.config (or any mapping of ROOMS_* keys)."""
        return cls(
            epr_min=int(values.get('ROOMS_EPR_MIN', 59000)),
            epr_max=int(values.get('ROOMS_EPR_MAX', 59049)),
            reserved_ports=tuple(values.get('ROOMS_RESERVED_PORTS') or ()),
            nat1to1=tuple(values.get('ROOMS_NAT1TO1') or ()),
            traefik_domain=values.get('ROOMS_TRAEFIK_DOMAIN', 'localhost'),
            traefik_entrypoint=values.get('ROOMS_TRAEFIK_ENTRYPOINT', 'web'),
            traefik_certresolver=values.get('ROOMS_TRAEFIK_CERTRESOLVER', ''),
            traefik_network=values.get('ROOMS_TRAEFIK_NETWORK', ''),
            container_prefix=values.get('ROOMS_CONTAINER_PREFIX', 'neko-room-'),
            image=values.get('ROOMS_IMAGE', 'm1k1o/neko:latest'),
            shm_size=int(values.get('ROOMS_SHM_SIZE', 2 * 1024 ** 3)),
            engine_timeout=int(values.get('ROOMS_ENGINE_TIMEOUT', 30)),
        )
