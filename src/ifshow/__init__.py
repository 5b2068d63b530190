"""Show the IPv4/IPv6 addresses configured on local network interfaces."""

__version__ = "0.1.0"

from .ifaddrs import AddressEntry, getifaddrs
from .ifshow import (
    format_address,
    format_entry,
    format_netmask,
    group_entries,
    ifshow,
    ifshow_stream,
    is_ip_entry,
    prefix_length,
)

__all__ = [
    "AddressEntry",
    "getifaddrs",
    "ifshow",
    "ifshow_stream",
    "group_entries",
    "is_ip_entry",
    "format_address",
    "format_entry",
    "format_netmask",
    "prefix_length",
]
