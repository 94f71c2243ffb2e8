"""IP traffic monitoring: packet capture, interface and LAN host statistics, and IP filters."""

__version__ = "0.1.0"