import re
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import InvalidSettingsError
from .name_generator import is_path_safe

VIDEO_CODECS = ('VP8', 'VP9', 'H264')
AUDIO_CODECS = ('OPUS', 'G722', 'PCMU', 'PCMA')

SCREEN_PATTERN = re.compile(r'^\d+x\d+@\d+$')


@dataclass(frozen=True)
class PortRange:
    """Inclusive range of host ports leased to a single room."""
    min: int
    max: int

    def __post_init__(self):
        if self.min > self.max:
            raise ValueError(f"Invalid port range {self.min}-{self.max}")

    @property
    def size(self) -> int:
        return self.max - self.min + 1

    def overlaps(self, other: "PortRange") -> bool:
        return self.min <= other.max and other.min <= self.max

    def contains(self, other: "PortRange") -> bool:
        return self.min <= other.min and other.max <= self.max

    def ports(self) -> Iterator[int]:
        return iter(range(self.min, self.max + 1))

    def __str__(self) -> str:
        return f"{self.min}-{self.max}"


@dataclass(frozen=True)
class RoomIdentity:
    name: str
    url: str


@dataclass
class RoomSettings:
    """
    User supplied room settings.

    Everything except name and max_connections round-trips through the
    container environment, see ENV_FIELDS.
    """
    name: str = ''
    max_connections: int = 10

    user_pass: str = ''
    admin_pass: str = ''
    control_protection: bool = False
    implicit_control: bool = False

    screen: str = ''
    video_codec: str = ''
    video_bitrate: int = 0
    video_pipeline: str = ''
    video_max_fps: int = 0

    audio_codec: str = ''
    audio_bitrate: int = 0
    audio_pipeline: str = ''

    broadcast_pipeline: str = ''

    # (field, env var, kind); codecs are handled separately as flag variables
    ENV_FIELDS = (
        ('user_pass', 'NEKO_PASSWORD', str),
        ('admin_pass', 'NEKO_PASSWORD_ADMIN', str),
        ('control_protection', 'NEKO_CONTROL_PROTECTION', bool),
        ('implicit_control', 'NEKO_IMPLICIT_CONTROL', bool),
        ('screen', 'NEKO_SCREEN', str),
        ('video_bitrate', 'NEKO_VIDEO_BITRATE', int),
        ('video_pipeline', 'NEKO_VIDEO', str),
        ('video_max_fps', 'NEKO_MAX_FPS', int),
        ('audio_bitrate', 'NEKO_AUDIO_BITRATE', int),
        ('audio_pipeline', 'NEKO_AUDIO', str),
        ('broadcast_pipeline', 'NEKO_BROADCAST_PIPELINE', str),
    )

    STRING_FIELDS = (
        'name', 'user_pass', 'admin_pass', 'screen',
        'video_codec', 'video_pipeline', 'audio_codec', 'audio_pipeline', 'broadcast_pipeline',
    )

    def validate(self):
        """Raise InvalidSettingsError if the settings cannot produce a room."""
        for name in self.STRING_FIELDS:
            if not isinstance(getattr(self, name), str):
                raise InvalidSettingsError(f"{name} must be a string")
        for name in ('control_protection', 'implicit_control'):
            if not isinstance(getattr(self, name), bool):
                raise InvalidSettingsError(f"{name} must be a boolean")

        if self.name and not is_path_safe(self.name):
            raise InvalidSettingsError(
                f"Room name '{self.name}' must contain only letters, digits, '-' and '_'"
            )
        if isinstance(self.max_connections, bool) or not isinstance(self.max_connections, int):
            raise InvalidSettingsError("max_connections must be an integer")
        if self.max_connections <= 0:
            raise InvalidSettingsError("max_connections must be greater than 0")
        if self.screen and not SCREEN_PATTERN.match(self.screen):
            raise InvalidSettingsError(f"Invalid screen '{self.screen}', expected WxH@FPS")
        if self.video_codec and self.video_codec not in VIDEO_CODECS:
            raise InvalidSettingsError(f"Unknown video codec '{self.video_codec}'")
        if self.audio_codec and self.audio_codec not in AUDIO_CODECS:
            raise InvalidSettingsError(f"Unknown audio codec '{self.audio_codec}'")
        for name in ('video_bitrate', 'video_max_fps', 'audio_bitrate'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidSettingsError(f"{name} must be a non-negative integer")

    def to_env(self) -> List[str]:
        env = []
        for attr, key, kind in self.ENV_FIELDS:
            value = getattr(self, attr)
            if kind is bool:
                env.append(f"{key}={'true' if value else 'false'}")
            elif value:
                env.append(f"{key}={value}")

        if self.video_codec:
            env.append(f"NEKO_{self.video_codec}=true")
        if self.audio_codec:
            env.append(f"NEKO_{self.audio_codec}=true")

        return env

    def apply_env(self, env: List[str]):
        """Load env-backed fields from a KEY=VALUE list, ignoring unknown keys."""
        values = {}
        for item in env or []:
            key, sep, value = item.partition('=')
            if sep:
                values[key] = value

        for attr, key, kind in self.ENV_FIELDS:
            if key not in values:
                continue
            raw = values[key]
            if kind is bool:
                setattr(self, attr, raw.lower() in ('true', '1', 'yes'))
            elif kind is int:
                setattr(self, attr, int(raw) if raw else 0)
            else:
                setattr(self, attr, raw)

        for codec in VIDEO_CODECS:
            if values.get(f"NEKO_{codec}", '').lower() == 'true':
                self.video_codec = codec
        for codec in AUDIO_CODECS:
            if values.get(f"NEKO_{codec}", '').lower() == 'true':
                self.audio_codec = codec

    @classmethod
    def from_env(cls, env: List[str], name: str = '', max_connections: int = 10) -> "RoomSettings":
        settings = cls(name=name, max_connections=max_connections)
        settings.apply_env(env)
        return settings

    @classmethod
    def from_dict(cls, data: dict) -> "RoomSettings":
        known = {f.name for f in fields(cls)}
        unknown = set(data or {}) - known
        if unknown:
            raise InvalidSettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return cls(**(data or {}))

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class RoomEntry:
    id: str
    url: str
    name: str
    max_connections: int
    image: str
    running: bool
    status: str
    created: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'url': self.url,
            'name': self.name,
            'max_connections': self.max_connections,
            'image': self.image,
            'running': self.running,
            'status': self.status,
            'created': self.created.isoformat() if self.created else None,
        }


@dataclass
class WorkloadSpec:
    """Everything the container engine needs to create one room."""
    name: str
    image: str
    hostname: str
    env: List[str] = field(default_factory=list)
    labels: Dict[str, str] = field(default_factory=dict)
    exposed_ports: List[Tuple[int, str]] = field(default_factory=list)
    port_bindings: Dict[str, Tuple[str, int]] = field(default_factory=dict)
    network: Optional[str] = None
    restart_policy: str = 'always'
    cap_add: List[str] = field(default_factory=list)
    shm_size: Optional[int] = None
