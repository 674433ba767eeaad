"""Catalyst scanner entry point.

Usage:
    python run_scanner.py [path/to/config.yaml]

Loads config.yaml and .env, starts the polling scheduler (first cycle runs
immediately) and serves the read-only snapshot view until interrupted.
"""

import sys
from dotenv import load_dotenv

load_dotenv()  # must precede package imports so env vars are available at module load

import uvicorn  # noqa: E402

from catalyst_scanner.core.config import ScannerConfig, load_config  # noqa: E402
from catalyst_scanner.core.logger import logger  # noqa: E402
from catalyst_scanner.pipeline.engine import ScannerEngine  # noqa: E402
from catalyst_scanner.pipeline.scheduler import ScannerScheduler  # noqa: E402
from catalyst_scanner.web.server import create_app  # noqa: E402


def main() -> int:
    """Run the scanner service. Returns 0 on clean shutdown, 1 on startup failure."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.yaml"
    try:
        config = ScannerConfig.from_dict(load_config(config_path))
    except (FileNotFoundError, ValueError) as exc:
        logger.error(f"run_scanner: failed to load config: {exc}")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    engine = ScannerEngine(config)
    scheduler = ScannerScheduler(engine.run_cycle, config.schedule.refresh_interval_seconds)
    app = create_app(engine.store, timezone_name=config.display_timezone)

    scheduler.start()
    logger.info(f"run_scanner: serving on {config.server_host}:{config.server_port}")
    try:
        uvicorn.run(app, host=config.server_host, port=config.server_port, log_level="warning")
    finally:
        scheduler.shutdown()
        engine.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
