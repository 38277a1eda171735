"""memberships-rw HTTP host.

FastAPI app that mounts RWService implementations under /{service} and
serves the /__health, /__gtg and /__ping endpoints.
"""

from memberships_rw.backend.app import create_app

__all__ = ["create_app"]
