"""Logging für den Proxy: Konsole plus optionale Logdatei am Paket-Logger."""
import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_HANDLER = "chat_proxy.console"
FILE_HANDLER = "chat_proxy.file"


def _has_handler(logger: logging.Logger, name: str) -> bool:
    return any(handler.get_name() == name for handler in logger.handlers)


def setup_logging(log_file: str = "", level: int = logging.INFO) -> logging.Logger:
    """Hängt Handler an den Logger "chat_proxy" (und damit an alle Modul-Logger).

    Wird von create_app() aufgerufen, also für jeden Startweg (chat-proxy,
    uvicorn --factory). Wiederholte Aufrufe fügen keine doppelten Handler hinzu.
    """
    logger = logging.getLogger("chat_proxy")
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    if not _has_handler(logger, CONSOLE_HANDLER):
        console = logging.StreamHandler(sys.stdout)
        console.set_name(CONSOLE_HANDLER)
        console.setFormatter(formatter)
        logger.addHandler(console)

    if log_file and not _has_handler(logger, FILE_HANDLER):
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.set_name(FILE_HANDLER)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Upstream-Requests von httpx nicht einzeln im INFO-Log
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logger
