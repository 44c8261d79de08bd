import logging
from typing import Iterable, List

from .errors import InvalidRequestError, PortExhaustionError
from .models import PortRange

logger = logging.getLogger(__name__)


def allocate(
    requested_size: int,
    window: PortRange,
    existing_ranges: Iterable[PortRange],
    reserved_ports: Iterable[int] = ()
) -> PortRange:
    """
    Find the lowest free block of requested_size contiguous ports in window.

    First fit: leased intervals are walked in order of their start and the
    first gap large enough wins, even if a tighter gap exists further up.

    Args:
        requested_size: Number of ports the room needs
        window: Ports available for leasing
        existing_ranges: Ranges held by every existing room, running or not
        reserved_ports: Housekeeping ports that must never be leased

    Returns:
        The allocated PortRange

    Raises:
        InvalidRequestError: requested_size is not a positive integer
        PortExhaustionError: no gap of requested_size ports inside window
    """
    if isinstance(requested_size, bool) or not isinstance(requested_size, int):
        raise InvalidRequestError(f"Requested port count must be an integer, got {requested_size!r}")
    if requested_size <= 0:
        raise InvalidRequestError(f"Requested port count must be positive, got {requested_size}")

    leased: List[PortRange] = list(existing_ranges)
    leased.extend(PortRange(port, port) for port in reserved_ports)
    leased.sort(key=lambda r: (r.min, r.max))

    start = window.min
    for lease in leased:
        if lease.max < start:
            continue
        if lease.min > window.max:
            break
        if lease.min - start >= requested_size:
            break
        start = lease.max + 1

    end = start + requested_size - 1
    if end > window.max:
        raise PortExhaustionError(requested_size, window.min, window.max)

    allocated = PortRange(start, end)
    logger.debug(f"Allocated ports {allocated} from window {window} ({len(leased)} leases)")
    return allocated
