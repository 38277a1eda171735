"""Entry point for running the memberships-rw server."""

import uvicorn

from memberships_rw.backend.app import create_app
from memberships_rw.backend.config import get_config


def main() -> None:
    """Run the server with uvicorn."""
    config = get_config()

    app = create_app(config=config)

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
