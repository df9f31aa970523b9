"""Proxy rotation and network identities."""

from socialprobe.proxy.rotating import IdentityPool, NetworkIdentity, ProxyProvider

__all__ = ["IdentityPool", "NetworkIdentity", "ProxyProvider"]
