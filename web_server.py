"""Web server entry point for the Lifeboard dashboard API"""

import socket

import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env file BEFORE reading settings
load_dotenv()

from lifeboard.utils.config import load_settings
from lifeboard.utils.logger import get_logger, setup_logger
from lifeboard_web import create_app

logger = get_logger(__name__)


def _port_in_use(host: str, port: int) -> bool:
    """Return True if the given port is already in use."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
            return False
        except OSError:
            return True


def _get_available_port(host: str, preferred: int, max_tries: int = 10) -> int:
    """Return preferred port if free, otherwise the first free port in [preferred, preferred+max_tries)."""
    for p in range(preferred, preferred + max_tries):
        if not _port_in_use(host, p):
            return p
    raise RuntimeError(
        f"None of the ports {preferred}-{preferred + max_tries - 1} are available. "
        "Stop the process using the port or set WEB_PORT to a different number."
    )


def main() -> None:
    settings = load_settings()
    setup_logger(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        file_path=settings.logging.file_path,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
    )
    host = settings.web.host
    port = _get_available_port(host, settings.web.port)
    if port != settings.web.port:
        logger.warning("Preferred port in use", preferred=settings.web.port, port=port)
    logger.info("Starting web server", host=host, port=port)
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
