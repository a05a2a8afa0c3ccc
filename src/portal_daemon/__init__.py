"""Suspend the host while a lighthouse on the local network is unreachable."""
