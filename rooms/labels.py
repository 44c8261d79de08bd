"""
Label codec for room containers.

Container labels are the only place room state is persisted. Every room
container carries its identity, its leased port range and a canary marker
that tells our containers apart from anything else on the same engine.
"""
from typing import Dict, Optional, Tuple

from .errors import CorruptMetadataError
from .models import PortRange, RoomIdentity

LABEL_NAMESPACE = 'm1k1o.neko_rooms'
LABEL_CANARY = 'm1k1o-neko-rooms'

MIN_PORT = 1
MAX_PORT = 65535


class LabelCodec:
    """Encodes/decodes room identity and port range to container labels."""

    def __init__(self, namespace: str = LABEL_NAMESPACE, canary: str = LABEL_CANARY):
        self.namespace = namespace
        self.canary = canary

    def key(self, suffix: str) -> str:
        return f"{self.namespace}.{suffix}"

    @property
    def name_key(self) -> str:
        return self.key('name')

    @property
    def url_key(self) -> str:
        return self.key('url')

    @property
    def canary_key(self) -> str:
        return self.key('canary')

    @property
    def epr_min_key(self) -> str:
        return self.key('epr.min')

    @property
    def epr_max_key(self) -> str:
        return self.key('epr.max')

    def canary_filter(self) -> str:
        """Label filter selecting only our containers on the engine side."""
        return f"{self.canary_key}={self.canary}"

    def is_room(self, labels: Optional[Dict[str, str]]) -> bool:
        return bool(labels) and labels.get(self.canary_key) == self.canary

    def encode(self, identity: RoomIdentity, port_range: PortRange) -> Dict[str, str]:
        return {
            self.name_key: identity.name,
            self.url_key: identity.url,
            self.canary_key: self.canary,
            self.epr_min_key: str(port_range.min),
            self.epr_max_key: str(port_range.max),
        }

    def decode(
        self,
        labels: Dict[str, str],
        container_id: Optional[str] = None
    ) -> Tuple[RoomIdentity, PortRange]:
        """
        Decode identity and port range from container labels.

        Raises:
            CorruptMetadataError: a required label is missing or unparsable
        """
        labels = labels or {}

        if labels.get(self.canary_key) != self.canary:
            raise CorruptMetadataError("canary not found", container_id)

        name = labels.get(self.name_key)
        if not name:
            raise CorruptMetadataError("name not found", container_id)

        url = labels.get(self.url_key)
        if not url:
            raise CorruptMetadataError("url not found", container_id)

        port_range = self.decode_port_range(labels, container_id)
        return RoomIdentity(name=name, url=url), port_range

    def decode_port_range(self, labels: Dict[str, str], container_id: Optional[str] = None) -> PortRange:
        epr_min = self._parse_port(labels, self.epr_min_key, container_id)
        epr_max = self._parse_port(labels, self.epr_max_key, container_id)

        if epr_min > epr_max:
            raise CorruptMetadataError(
                f"epr.min {epr_min} is greater than epr.max {epr_max}",
                container_id
            )

        return PortRange(epr_min, epr_max)

    def _parse_port(self, labels: Dict[str, str], key: str, container_id: Optional[str]) -> int:
        raw = labels.get(key)
        if raw is None:
            raise CorruptMetadataError(f"{key} not found", container_id)

        # int() alone would accept '+1', ' 1' and '1_000'
        if not raw.isdigit() or not raw.isascii():
            raise CorruptMetadataError(f"{key} is not a port number: {raw!r}", container_id)

        port = int(raw)
        if not MIN_PORT <= port <= MAX_PORT:
            raise CorruptMetadataError(f"{key} out of range: {port}", container_id)

        return port
