"""Entry point: load configuration, initialize the solver and serve the webhook."""

import logging
import sys

import uvicorn

from kube_dns_solver.config import load_config
from kube_dns_solver.solver import RecordSolver
from kube_dns_solver.webhook import create_app

logger = logging.getLogger(__name__)


def main():
    """Run the webhook server. Exits if configuration or the store is unusable."""
    config = load_config()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    solver = RecordSolver()
    solver.initialize(config)
    app = create_app(config.group_name, [solver], request_timeout=config.request_timeout_seconds)

    logger.info("Serving solver %s under group %s on port %d", solver.name(), config.group_name, config.port)
    with solver:
        uvicorn.run(
            app,
            host="0.0.0.0",
            port=config.port,
            ssl_certfile=config.tls_cert_file,
            ssl_keyfile=config.tls_key_file,
            log_level="warning",
        )


if __name__ == "__main__":
    main()
