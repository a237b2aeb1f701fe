"""Run the exporter with uvicorn."""

from __future__ import annotations

import uvicorn

from iss_exporter.config import configure_logging, load_config
from iss_exporter.main import create_app


def main() -> None:
    config = load_config()
    configure_logging(config.log_level)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
