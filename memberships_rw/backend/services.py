"""Service layer for the memberships-rw host.

Provides lazy-initialized service instances for the API endpoints.
Services are singletons that persist for the application lifetime.
"""

from functools import lru_cache
from typing import TYPE_CHECKING

from memberships_rw.backend.config import get_config
from memberships_rw.log_config import get_logger

if TYPE_CHECKING:
    from memberships_rw.db import QueryRunner
    from memberships_rw.memberships import MembershipRepository

log = get_logger("backend.services")


@lru_cache(maxsize=1)
def get_query_runner() -> "QueryRunner":
    """Get the QueryRunner for the configured graph database (cached)."""
    from memberships_rw.db import create_query_runner

    config = get_config()
    log.info(f"Initializing {config.graph_backend} query runner for {config.neo_url}")
    return create_query_runner(
        backend=config.graph_backend,
        uri=config.neo_url,
        username=config.neo_username,
        password=config.neo_password,
        max_batch_size=config.batch_size,
    )


@lru_cache(maxsize=1)
def get_membership_repository() -> "MembershipRepository":
    """Get the MembershipRepository instance (cached)."""
    from memberships_rw.memberships import MembershipRepository

    log.info("Initializing MembershipRepository")
    return MembershipRepository(get_query_runner())


def clear_service_caches() -> None:
    """Clear all service caches (for testing)."""
    get_query_runner.cache_clear()
    get_membership_repository.cache_clear()
    log.info("Service caches cleared")


def shutdown_services() -> None:
    """Close the database driver if one was created."""
    log.info("Shutting down services...")

    cache_info = get_query_runner.cache_info()
    if cache_info.currsize > 0:
        try:
            get_query_runner().close()
            log.info("Query runner closed")
        except Exception as e:
            log.error(f"Error closing query runner: {e}")

    clear_service_caches()
    log.info("Services shutdown complete")
