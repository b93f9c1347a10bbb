import logging

import uvicorn

import config
from utils.logging_config import setup_logging, silence_noisy_loggers

# Initialize centralized logging configuration
setup_logging()

from app import create_app

# SQLAlchemy may reset logger levels while the engine is built on import
silence_noisy_loggers()
logging.info("🔇 SQL loggers silenced (aiosqlite, sqlalchemy.*)")

app = create_app()


def main() -> None:
    uvicorn.run(app, host=config.WEBAPP_HOST, port=config.WEBAPP_PORT)


if __name__ == "__main__":
    main()
