from __future__ import annotations

import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from wqapi.bootstrap import build_app_system
from wqapi.core.config.yaml_config import load_app_config
from wqapi.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _config_path(argv: List[str]) -> Optional[str]:
    if "--config" in argv:
        i = argv.index("--config")
        if i + 1 < len(argv):
            return argv[i + 1]
    return None


def main(argv: Optional[List[str]] = None) -> None:
    """
    Start the tick worker and the HTTP server.

    Notes
    -----
    - Loads configuration from `config.yaml` by default (or ``APP_CONFIG``,
      which a ``.env`` file in the working directory may set).
    - Optional CLI usage:
        python -m wqapi.dev.run_app --config path/to/config.yaml
    """
    argv = sys.argv[1:] if argv is None else argv
    load_dotenv()

    cfg = load_app_config(_config_path(argv))
    setup_logging(cfg.logging.level, cfg.logging.log_dir)

    wiring = build_app_system(cfg=cfg)
    wiring.ticker.start()
    try:
        logger.info("Serving on http://%s:%d", cfg.server.host, cfg.server.port)
        wiring.app.run(host=cfg.server.host, port=cfg.server.port, threaded=True, use_reloader=False)
    finally:
        wiring.ticker.stop()
        wiring.ticker.join()


if __name__ == "__main__":
    main()
