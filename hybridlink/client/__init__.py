# Client role
from hybridlink.client.client import SecureClient

__all__ = ["SecureClient"]
