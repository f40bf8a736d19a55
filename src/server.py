"""Local/container entry point: python -m src.server

Refuses to start without DID_API_KEY, mirroring the fatal check the
lifespan hook performs when the app is served some other way.
"""

import sys

from src.config.settings import MissingCredentialError, load_settings
from src.logging.audit import get_audit_logger, setup_logging


def main() -> int:
    try:
        settings = load_settings()
    except MissingCredentialError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging()
    get_audit_logger().info(
        "Starting gateway",
        extra={"audit_data": {"host": settings.host, "port": settings.port}},
    )

    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
