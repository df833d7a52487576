"""
Asset client application package.
"""

from .main import AssetClient, create_client

__all__ = ["AssetClient", "create_client"]
