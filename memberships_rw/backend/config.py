"""Service configuration read from the environment.

A .env file in the working directory is loaded first if present.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(key: str, default: bool) -> bool:
    """Parse boolean from environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes"):
        return True
    if val in ("false", "0", "no"):
        return False
    return default


@dataclass
class ServiceConfig:
    """Configuration for the memberships-rw service.

    Attributes:
        neo_url: Bolt URI of the graph database (NEO_URL)
        neo_username: Bolt username (NEO_USERNAME)
        neo_password: Bolt password (NEO_PASSWORD)
        graph_backend: "neo4j" or "memgraph" (GRAPH_BACKEND)
        host: Interface to bind (HOST)
        port: Port to listen on (APP_PORT)
        batch_size: Maximum statements per batch (BATCH_SIZE)
        env: Environment this app is running in (APP_ENV)
        enable_request_log: Log one line per HTTP request (ENABLE_REQUEST_LOG)
        health_timeout: Seconds allowed per health check (HEALTH_TIMEOUT)
    """

    neo_url: str = field(default_factory=lambda: os.environ.get("NEO_URL", "bolt://localhost:7687"))
    neo_username: str = field(default_factory=lambda: os.environ.get("NEO_USERNAME", ""))
    neo_password: str = field(default_factory=lambda: os.environ.get("NEO_PASSWORD", ""))
    graph_backend: str = field(default_factory=lambda: os.environ.get("GRAPH_BACKEND", "neo4j").lower())

    host: str = field(default_factory=lambda: os.environ.get("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.environ.get("APP_PORT", "8080")))

    batch_size: int = field(default_factory=lambda: int(os.environ.get("BATCH_SIZE", "1024")))
    env: str = field(default_factory=lambda: os.environ.get("APP_ENV", "local"))
    enable_request_log: bool = field(default_factory=lambda: _env_bool("ENABLE_REQUEST_LOG", True))
    health_timeout: float = field(default_factory=lambda: float(os.environ.get("HEALTH_TIMEOUT", "10")))

    service_name: str = "memberships-rw-neo4j"
    description: str = "Writes 'memberships' to Neo4j, usually as part of a bulk upload done on a schedule"

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.graph_backend not in ("neo4j", "memgraph"):
            raise ValueError(f"graph_backend must be 'neo4j' or 'memgraph', got '{self.graph_backend}'")


# Global config instance
_config: ServiceConfig | None = None


def get_config() -> ServiceConfig:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = ServiceConfig()
    return _config


def set_config(config: ServiceConfig) -> None:
    """Install an explicit config (used by the CLI)."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset config for testing."""
    global _config
    _config = None
