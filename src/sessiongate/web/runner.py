"""Uvicorn server runner."""

import copy

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from sessiongate.app import App
from sessiongate.config import Config
from sessiongate.web.server import create_fastapi_app


def run_server(app: App, config: Config) -> None:
    """Serve the session API, with uvicorn logs in the same plain format as the app."""
    fastapi_app = create_fastapi_app(app, config)

    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s - %(client_addr)s "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s - %(levelname)s - %(message)s"

    uvicorn.run(
        fastapi_app,
        host=config.host,
        port=config.port,
        log_config=log_config,
        log_level="debug" if config.debug else "info",
        access_log=config.debug,
        proxy_headers=True,
    )
