"""Read the host's interface address table with getifaddrs(3).

The linked list returned by libc is copied into AddressEntry objects and
released before this module hands anything back to the caller.
"""

import ctypes
import ctypes.util
import logging
import os
import socket
import sys
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

libc = ctypes.CDLL(ctypes.util.find_library("c"), use_errno=True)

# BSD-derived systems prefix every sockaddr with a length byte
_HAS_SA_LEN = sys.platform == "darwin" or "bsd" in sys.platform

# address families that carry IP addresses, with their address size in bytes
IP_FAMILIES = {
    socket.AF_INET: 4,
    socket.AF_INET6: 16,
}


@dataclass(frozen=True)
class AddressEntry:
    """One configured address as reported by the OS."""

    name: str
    family: int
    address: bytes = b""
    netmask: Optional[bytes] = None
    scope_id: int = 0


if _HAS_SA_LEN:

    class sockaddr(ctypes.Structure):
        _fields_ = [
            ("sa_len", ctypes.c_uint8),
            ("sa_family", ctypes.c_uint8),
            ("sa_data", ctypes.c_ubyte * 14),
        ]

    class sockaddr_in(ctypes.Structure):
        _fields_ = [
            ("sin_len", ctypes.c_uint8),
            ("sin_family", ctypes.c_uint8),
            ("sin_port", ctypes.c_uint16),
            ("sin_addr", ctypes.c_ubyte * 4),
            ("sin_zero", ctypes.c_ubyte * 8),
        ]

    class sockaddr_in6(ctypes.Structure):
        _fields_ = [
            ("sin6_len", ctypes.c_uint8),
            ("sin6_family", ctypes.c_uint8),
            ("sin6_port", ctypes.c_uint16),
            ("sin6_flowinfo", ctypes.c_uint32),
            ("sin6_addr", ctypes.c_ubyte * 16),
            ("sin6_scope_id", ctypes.c_uint32),
        ]

else:

    class sockaddr(ctypes.Structure):
        _fields_ = [
            ("sa_family", ctypes.c_ushort),
            ("sa_data", ctypes.c_ubyte * 14),
        ]

    class sockaddr_in(ctypes.Structure):
        _fields_ = [
            ("sin_family", ctypes.c_ushort),  # Always AF_INET
            ("sin_port", ctypes.c_uint16),
            ("sin_addr", ctypes.c_ubyte * 4),
            ("sin_zero", ctypes.c_ubyte * 8),  # Ignored
        ]

    class sockaddr_in6(ctypes.Structure):
        _fields_ = [
            ("sin6_family", ctypes.c_ushort),  # Always AF_INET6
            ("sin6_port", ctypes.c_uint16),
            ("sin6_flowinfo", ctypes.c_uint32),
            ("sin6_addr", ctypes.c_ubyte * 16),
            ("sin6_scope_id", ctypes.c_uint32),
        ]


class ifaddrs(ctypes.Structure):
    def __iter__(self):
        yield self
        p = self
        while p.ifa_next:
            p = p.ifa_next.contents
            yield p


ifaddrs._fields_ = [
    ("ifa_next", ctypes.POINTER(ifaddrs)),  # Next item in list
    ("ifa_name", ctypes.c_char_p),  # Interface name
    ("ifa_flags", ctypes.c_uint),  # Interface flags
    ("ifa_addr", ctypes.POINTER(sockaddr)),  # Interface address
    ("ifa_netmask", ctypes.POINTER(sockaddr)),  # Interface netmask
    ("ifa_ifu", ctypes.POINTER(sockaddr)),  # Broadcast or point-to-point peer
    ("ifa_data", ctypes.c_void_p),  # Address specific data
]


def _read_sockaddr(sa_ptr, family: int) -> tuple[bytes, int]:
    """Copy the packed address and IPv6 scope id out of a sockaddr.

    The family is taken from the caller, not from the sockaddr, because some
    platforms leave sa_family unset on netmasks.
    """
    if family == socket.AF_INET:
        sin = ctypes.cast(sa_ptr, ctypes.POINTER(sockaddr_in)).contents
        return bytes(sin.sin_addr), 0
    if family == socket.AF_INET6:
        sin6 = ctypes.cast(sa_ptr, ctypes.POINTER(sockaddr_in6)).contents
        return bytes(sin6.sin6_addr), int(sin6.sin6_scope_id)
    return b"", 0


def _is_link_scoped(address: bytes) -> bool:
    """Return True for fe80::/10 unicast and ff02::/16-style multicast."""
    if len(address) != IP_FAMILIES[socket.AF_INET6]:
        return False
    if address[0] == 0xFE and address[1] & 0xC0 == 0x80:
        return True
    return address[0] == 0xFF and address[1] & 0x0F == 0x02


def _clear_embedded_scope(address: bytes, scope_id: int) -> tuple[bytes, int]:
    """Strip the scope id that KAME stacks store in bytes 2-3.

    BSD and macOS report link-local addresses as e.g. fe80:4::1, with the
    interface index inside the address. It is moved into scope_id.
    """
    if not _HAS_SA_LEN or not _is_link_scoped(address):
        return address, scope_id
    embedded = int.from_bytes(address[2:4], "big")
    if not embedded:
        return address, scope_id
    return address[:2] + b"\x00\x00" + address[4:], scope_id or embedded


def _to_entry(ifa: ifaddrs) -> AddressEntry:
    """Build an owned AddressEntry from one list node."""
    name = ifa.ifa_name.decode("utf-8", "replace") if ifa.ifa_name else ""
    family = int(ifa.ifa_addr.contents.sa_family)

    address, scope_id = _read_sockaddr(ifa.ifa_addr, family)
    if family == socket.AF_INET6:
        address, scope_id = _clear_embedded_scope(address, scope_id)
    netmask = None
    if ifa.ifa_netmask and family in IP_FAMILIES:
        netmask, _ = _read_sockaddr(ifa.ifa_netmask, family)

    return AddressEntry(
        name=name,
        family=family,
        address=address,
        netmask=netmask,
        scope_id=scope_id,
    )


def getifaddrs() -> tuple[AddressEntry, ...]:
    """Return every configured address entry in the OS enumeration order.

    Nodes without an address (e.g. interfaces that are down and unnumbered)
    are skipped. The libc list is always freed before returning.

    Raises:
        OSError: If getifaddrs(3) fails.
    """
    ifap = ctypes.POINTER(ifaddrs)()
    if libc.getifaddrs(ctypes.byref(ifap)) != 0:
        errno = ctypes.get_errno()
        raise OSError(errno, f"getifaddrs: {os.strerror(errno)}")

    try:
        entries = []
        if ifap:
            for ifa in ifap.contents:
                if not ifa.ifa_addr:
                    continue
                entries.append(_to_entry(ifa))
    finally:
        libc.freeifaddrs(ifap)

    logger.debug("getifaddrs returned %d address entries", len(entries))
    return tuple(entries)
