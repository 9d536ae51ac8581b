"""Entrypoint: serve the scheme assistant API with uvicorn."""

import uvicorn

from scheme_assist.api.app import create_app
from scheme_assist.config.settings import Settings


def main() -> None:
    settings = Settings()
    # RequestContextMiddleware logs each request
    uvicorn.run(
        create_app(),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
