from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from config import get_settings_module

from absensi.common.logging_setup import configure_logging
from absensi.database.bootstrap import DEMO_PASSWORD, apply_seed_sql, ensure_demo_users

logger = logging.getLogger("absensi.scripts.seed_db")


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    ensure_demo_users(db_config)
    logger.info(
        "Seeded %s@%s:%s/%s (demo password %r)",
        db_config.get("user"), db_config.get("host"), db_config.get("port", 3306),
        db_config.get("database"), DEMO_PASSWORD,
    )


if __name__ == "__main__":
    main()
