# services/communication-service/app/seeds/__init__.py
from __future__ import annotations

import logging

from app.config import settings
from app.seeds.seed_fields import seed_fields

log = logging.getLogger("app.seeds")


async def run_all_seeds() -> None:
    """
    Run all seeders in a safe, idempotent manner.
    Controlled by env flags:

      SEED_FIELDS=1   -> upsert the default field catalog (default: 1)
    """
    if settings.seed_fields:
        await seed_fields()
    else:
        log.info("[communication.seeds.fields] Skipped via env")
