import logging
import os

from dotenv import load_dotenv
from flask import Flask

from calm.errors import ConfigurationError
from calm.presentation.routes import register_routes
from calm.repository.notion_repository import (
    DEFAULT_API_URL,
    DEFAULT_NOTION_VERSION,
    NotionTaskRepository,
)
from calm.service.chart_service import ChartService


def _env_float(name):
    value = os.getenv(name)
    return float(value) if value else None


def load_config():
    load_dotenv()
    return {
        "NOTION_API_KEY": os.getenv("NOTION_API_KEY"),
        "NOTION_DATABASE_ID": os.getenv("NOTION_DATABASE_ID"),
        "NOTION_API_URL": os.getenv("NOTION_API_URL", DEFAULT_API_URL),
        "NOTION_VERSION": os.getenv("NOTION_VERSION", DEFAULT_NOTION_VERSION),
        "NOTION_TIMEOUT_SECONDS": _env_float("NOTION_TIMEOUT_SECONDS"),
        "CHART_CACHE_MAX_AGE": int(os.getenv("CHART_CACHE_MAX_AGE", "60")),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
    }


def create_app(config=None, repository=None):
    app = Flask(__name__)
    app.config.update(load_config())
    if config:
        app.config.update(config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    def service_factory(require_database=True):
        api_key = app.config.get("NOTION_API_KEY")
        database_id = app.config.get("NOTION_DATABASE_ID")
        if not api_key or (require_database and not database_id):
            raise ConfigurationError()
        repo = repository or NotionTaskRepository(
            api_key,
            database_id,
            api_url=app.config.get("NOTION_API_URL", DEFAULT_API_URL),
            notion_version=app.config.get("NOTION_VERSION", DEFAULT_NOTION_VERSION),
            timeout=app.config.get("NOTION_TIMEOUT_SECONDS"),
        )
        return ChartService(repo)

    register_routes(app, service_factory)
    return app


app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=True)
