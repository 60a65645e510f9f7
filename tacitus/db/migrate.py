from __future__ import annotations

import logging

from alembic import command
from alembic.config import Config

logger = logging.getLogger(__name__)


def upgrade_to_head(ini_path: str = "alembic.ini") -> None:
    """Apply pending Alembic revisions to the configured database."""
    logger.info("Applying database migrations from %s", ini_path)
    command.upgrade(Config(ini_path), "head")
