"""Run the service with uvicorn: python -m stylizer"""

import uvicorn

from stylizer.config import settings
from stylizer.logging_config import configure_logging


def main() -> None:
    configure_logging(settings.log_level)
    uvicorn.run(
        "stylizer.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
