import logging
from typing import Any, Dict, Optional, Sequence

from flask import Flask

from defi_watchdog.config import Config, Settings
from defi_watchdog.config_loader import ConfigLoader
from defi_watchdog.data_models import ModelDescriptor
from defi_watchdog.database import Database
from defi_watchdog.database.repositories import ReportRepository
from defi_watchdog.providers.base import ModelCaller
from defi_watchdog.routes import main_bp
from defi_watchdog.services.analysis_service import AnalysisService, ReportSink

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    caller: Optional[ModelCaller] = None,
    sink: Optional[ReportSink] = None,
    models: Optional[Sequence[ModelDescriptor]] = None,
    config_overrides: Optional[Dict[str, Any]] = None,
) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
    Config.init_app(app)

    settings = settings or Settings.from_env()

    repository = ReportRepository(Database(app.config["DATABASE_PATH"]))
    app.extensions["report_repository"] = repository

    if models is None:
        models = ConfigLoader.load_models(app.config.get("MODELS_CONFIG"))

    if caller is None and settings.api_key:
        from defi_watchdog.providers.openrouter_provider import OpenRouterProvider
        caller = OpenRouterProvider(settings)

    if caller is None:
        logger.warning("No OPENROUTER_API_KEY configured; /api/analyze is disabled")
    else:
        app.extensions["analysis_service"] = AnalysisService(
            caller,
            settings=settings,
            models=models,
            sink=sink or repository,
        )

    app.register_blueprint(main_bp)

    return app
