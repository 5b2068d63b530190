"""ifshow tool - list IPv4/IPv6 addresses per network interface.

Run with: python -m ifshow.ifshow_cli -a
Or: .venv/bin/ifshow -i <interface>
"""

import logging
import socket
from typing import Iterable, Optional

from .ifaddrs import IP_FAMILIES, AddressEntry, getifaddrs

logger = logging.getLogger(__name__)


def is_ip_entry(entry: AddressEntry) -> bool:
    """Return True for IPv4 and IPv6 entries."""
    return entry.family in IP_FAMILIES


def format_address(entry: AddressEntry) -> Optional[str]:
    """Render the entry's address as numeric text.

    IPv6 addresses carrying a scope id get a ``%zone`` suffix. No name
    lookup is ever made for the address itself.
    """
    size = IP_FAMILIES.get(entry.family)
    if size is None or not entry.address or len(entry.address) != size:
        return None

    try:
        text = socket.inet_ntop(entry.family, entry.address)
    except (OSError, ValueError):
        return None

    if entry.family == socket.AF_INET6 and entry.scope_id:
        try:
            zone = socket.if_indextoname(entry.scope_id)
        except (OSError, OverflowError):
            zone = str(entry.scope_id)
        text = f"{text}%{zone}"
    return text


def prefix_length(netmask: Optional[bytes], family: int) -> Optional[int]:
    """Count the contiguous set bits of a netmask, starting at the MSB.

    Counting stops at the first unset bit, so a mask with a gap yields the
    length up to the gap. Returns None for a missing or mis-sized mask or an
    unsupported family.
    """
    size = IP_FAMILIES.get(family)
    if netmask is None or size is None or len(netmask) != size:
        return None

    prefix = 0
    for byte in netmask:
        for bit in range(7, -1, -1):
            if not byte & (1 << bit):
                return prefix
            prefix += 1
    return prefix


def format_netmask(entry: AddressEntry) -> Optional[str]:
    """Return the dotted-decimal netmask of an IPv4 entry."""
    if entry.family != socket.AF_INET or entry.netmask is None:
        return None
    if len(entry.netmask) != IP_FAMILIES[socket.AF_INET]:
        return None
    return socket.inet_ntop(socket.AF_INET, entry.netmask)


def format_entry(entry: AddressEntry) -> Optional[str]:
    """Format one address entry as a bullet line (without newline)."""
    address = format_address(entry)
    if address is None:
        return None

    prefix = prefix_length(entry.netmask, entry.family)
    if prefix is None:
        return f" - {address}"

    mask = format_netmask(entry)
    if mask is not None:
        return f" - {address}/{prefix} ({mask})"
    return f" - {address}/{prefix}"


def group_entries(entries: Iterable[AddressEntry]) -> dict[str, list[AddressEntry]]:
    """Group IPv4/IPv6 entries by interface name in first-seen order."""
    groups: dict[str, list[AddressEntry]] = {}
    for entry in entries:
        if not is_ip_entry(entry) or not entry.name:
            continue
        groups.setdefault(entry.name, []).append(entry)
    return groups


def _stream_all(entries: Iterable[AddressEntry]):
    for name, group in group_entries(entries).items():
        yield f"{name}:\n"
        for entry in group:
            line = format_entry(entry)
            if line is None:
                logger.debug("skipping unrenderable address on %s", name)
                continue
            yield line + "\n"
        yield "\n"


def _stream_one(entries: Iterable[AddressEntry], interface: str):
    if interface:
        yield f"{interface}:\n"

    found = False
    for entry in entries:
        if not is_ip_entry(entry) or entry.name != interface:
            continue
        found = True
        line = format_entry(entry)
        if line is None:
            logger.debug("skipping unrenderable address on %s", interface)
            continue
        yield line + "\n"

    # list-one mode ends without the blank separator line of list-all mode
    if not found:
        yield f"Interface '{interface}' not found or has no IP address.\n"


def ifshow_stream(interface: Optional[str] = None):
    """Generate ifshow output for one interface or for all interfaces.

    The address table is read before the first line is yielded, so a failed
    query produces no output at all.

    Raises:
        OSError: If the interface table cannot be read.
    """
    entries = getifaddrs()
    if interface is None:
        yield from _stream_all(entries)
    else:
        yield from _stream_one(entries, interface)


def ifshow(interface: Optional[str] = None) -> dict[str, list[AddressEntry]]:
    """Get IPv4/IPv6 addresses grouped by interface.

    Args:
        interface: Optional interface name. If None, returns all interfaces.

    Returns:
        Mapping of interface name to its address entries, in OS order. For a
        named interface the mapping always holds exactly that key, with an
        empty list when the interface is unknown or has no IP address.

    Raises:
        OSError: If the interface table cannot be read.
    """
    entries = getifaddrs()
    if interface is None:
        return group_entries(entries)
    return {
        interface: [e for e in entries if is_ip_entry(e) and e.name == interface]
    }
