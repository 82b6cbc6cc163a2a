# Common utilities
from hybridlink.common.crypto import AsymmetricIdentity as AsymmetricIdentity
from hybridlink.common.logging_utils import setup_logger as setup_logger
from hybridlink.common.session import SessionKey as SessionKey
from hybridlink.common.transport import FramedConnection as FramedConnection

__all__ = ["AsymmetricIdentity", "FramedConnection", "SessionKey", "setup_logger"]
