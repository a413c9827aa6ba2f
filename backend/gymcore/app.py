"""Development entry point: ``python -m gymcore.app``."""

import logging
import os

from gymcore.db.session import create_tables
from gymcore.main import create_app

logger = logging.getLogger(__name__)

app = create_app()


def run() -> None:
    create_tables()
    logger.info("Schema ready", extra={"context": {"component": "startup"}})

    port = int(os.getenv("PORT", "5000"))
    debug = os.getenv("FLASK_ENV", "development") != "production"
    # The reloader would start a second expiry scheduler in the child process
    app.run(host="0.0.0.0", port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    run()
