import sys

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

from clinic.api.server import run_server  # noqa: E402
from clinic.config import get_settings  # noqa: E402


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
    )


if __name__ == "__main__":
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting clinic appointments API")
    run_server(settings.api_host, settings.api_port)
