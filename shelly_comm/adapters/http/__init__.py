"""HTTP transport (POST /rpc)"""

from .client import HttpTransport, normalize_base_url

__all__ = ["HttpTransport", "normalize_base_url"]
