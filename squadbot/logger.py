import logging

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(level: str = "info") -> None:
    log_level = LEVELS.get(level.lower(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # polling chatter drowns out the bot's own logs
    if log_level > logging.DEBUG:
        for name in ("httpx", "telegram.ext", "uvicorn.access"):
            logging.getLogger(name).setLevel(logging.WARNING)
