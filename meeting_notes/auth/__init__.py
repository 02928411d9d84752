"""
OAuth token lifecycle and authorization flow.
"""

from .token_coordinator import TokenLifecycleCoordinator
from .token_endpoint import ZoomTokenEndpoint

__all__ = ["TokenLifecycleCoordinator", "ZoomTokenEndpoint"]
