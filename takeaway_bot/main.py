# Load environment variables FIRST, before any module imports that need them
from dotenv import load_dotenv
load_dotenv()

import logging

from .app_factory import create_app
from .db import init_db
from .logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

init_db()
app = create_app()


def run(host: str = "0.0.0.0", port: int = 8000, reload: bool = False) -> None:
    """Run the API with uvicorn (``python -m takeaway_bot.main``)."""
    import uvicorn

    logger.info("Starting takeaway bot on %s:%d", host, port)
    uvicorn.run("takeaway_bot.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()
