from __future__ import annotations

import logging

from rpos.application.container import build_container
from rpos.config import get_app_paths, load_settings
from rpos.logging_config import setup_logging
from rpos.ui.app import App

log = logging.getLogger(__name__)


def main() -> None:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    settings = load_settings()
    container = build_container(paths.db_path, settings)
    log.info("app_started backend=%s db=%s", settings.backend, paths.db_path)

    app = App(container, db_path=str(paths.db_path), logs_dir=str(paths.logs_dir))
    app.mainloop()


if __name__ == "__main__":
    main()
