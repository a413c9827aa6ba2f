import logging
import os
from functools import partial
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import text

from gymcore.core import config
from gymcore.core.api_utils import api_response, error_response, status_code_for
from gymcore.core.exceptions import GymCoreError
from gymcore.core.logging_config import setup_logging

# Get logger for this module
logger = logging.getLogger(__name__)

# Load environment variables conditionally
# Only load from .env when DATABASE_URL is not already defined by the environment
if not os.getenv("DATABASE_URL"):
    load_dotenv()


def create_app(
    overrides: Optional[Dict[str, Any]] = None,
    session_factory=None,
    clock: Optional[Callable] = None,
) -> Flask:
    """Application factory.

    Args:
        overrides: Flask config values applied before anything is wired
        session_factory: SQLAlchemy sessionmaker (defaults to the lazy engine's)
        clock: Callable returning the current aware datetime (tests pin time)
    """
    from gymcore.controllers.contract_controller import contract_bp
    from gymcore.controllers.schedule_controller import schedule_bp
    from gymcore.db.session import create_tables, get_sessionmaker
    from gymcore.repositories.unit_of_work import SqlAlchemyUnitOfWork
    from gymcore.services.contract_service import ContractService
    from gymcore.services.scheduling_service import SchedulingService

    env = os.getenv("FLASK_ENV", "development")
    is_production = env == "production"

    app = Flask(__name__)

    # Set TESTING config from environment variable (before any other configuration)
    testing_env = os.getenv("TESTING", "").lower().strip()
    if testing_env in ("true", "1", "yes"):
        app.config["TESTING"] = True

    app.config.setdefault("BOOKING_REQUIRES_ACTIVE_CONTRACT", config.BOOKING_REQUIRES_ACTIVE_CONTRACT)
    app.config.setdefault("CONTRACT_EXPIRY_WARNING_DAYS", config.CONTRACT_EXPIRY_WARNING_DAYS)
    app.config.setdefault("CONTRACT_EXPIRY_JOB_ENABLED", config.CONTRACT_EXPIRY_JOB_ENABLED)
    app.config.update(overrides or {})

    setup_logging(
        app=app,  # Pass app to register request/response hooks
        log_level=logging.INFO if is_production else logging.DEBUG,
        log_to_file=os.getenv("LOG_TO_FILE", "1") == "1" and not app.config.get("TESTING"),
        use_json_format=is_production,  # JSON logs in production, colored in dev
    )
    config.log_core_config()

    session_factory = session_factory or get_sessionmaker()
    if app.config.get("CREATE_TABLES"):
        create_tables(session_factory.kw["bind"])

    uow_factory = partial(SqlAlchemyUnitOfWork, session_factory)
    app.config["SCHEDULING_SERVICE"] = SchedulingService(
        uow_factory,
        clock=clock,
        require_active_contract=app.config["BOOKING_REQUIRES_ACTIVE_CONTRACT"],
    )
    app.config["CONTRACT_SERVICE"] = ContractService(
        uow_factory,
        clock=clock,
        warning_days=app.config["CONTRACT_EXPIRY_WARNING_DAYS"],
    )

    app.register_blueprint(schedule_bp)
    app.register_blueprint(contract_bp)

    @app.errorhandler(GymCoreError)
    def handle_core_error(error: GymCoreError):
        status_code = status_code_for(error)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "Request failed",
            extra={"context": {"status_code": status_code, **error.to_dict()}},
        )
        return error_response(error)

    @app.route("/health", methods=["GET"])
    def health():
        """Liveness plus a database round trip."""
        try:
            with session_factory() as db:
                db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(
                "Database connection failed",
                extra={"context": {"error": str(e)}},
                exc_info=True,
            )
            return api_response(False, "Database unavailable", None, 503)
        return api_response(True, "OK", {"timezone": str(config.APP_TZ)}, 200)

    if app.config.get("CONTRACT_EXPIRY_JOB_ENABLED") and not app.config.get("TESTING"):
        from gymcore.services.contract_expiry import create_scheduler

        scheduler = create_scheduler(app.config["CONTRACT_SERVICE"])
        scheduler.start()
        logger.info("Background scheduler started with contract expiry job")
        # Store scheduler reference to prevent garbage collection
        app.config["SCHEDULER"] = scheduler

    return app
