import logging
import time
from logging.handlers import RotatingFileHandler

from fastapi import Request

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
LOG_MAX_SIZE = 20 * 1024 * 1024  # 20 MB
LOG_BACKUP_COUNT = 5             # Keep last 5 log files


def setup_logging(level="INFO", log_file=""):
    """
    Configure the ``rfidclock`` logger tree.

    Console always; a size-rotated file as well when ``log_file`` is set.
    Calling it twice does not duplicate handlers.
    """
    logger = logging.getLogger("rfidclock")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=LOG_MAX_SIZE, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger


def create_logging_middleware(app, logger):
    """Adds a middleware logging method, path, status and time of each request."""
    @app.middleware("http")
    async def log_request_time(request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time
        client_ip = request.client.host if request.client else "-"
        logger.info(
            f"IP={client_ip} | {request.method} {request.url.path} | "
            f"Status={response.status_code} | Time={process_time:.4f}s"
        )
        response.headers["X-Process-Time"] = str(round(process_time, 4))
        return response

    return app
