"""
Alembic runner for the hull_mes schema.

There is no alembic.ini: the script location is the ``migrations`` package next
to this module and the database URL comes from ``hull_mes.db.config``. The API
calls ``upgrade`` at startup when RUN_MIGRATIONS_ON_STARTUP is set; operators use
the command line:

    python -m hull_mes.db.run_migrations upgrade [revision]
    python -m hull_mes.db.run_migrations downgrade [revision]
    python -m hull_mes.db.run_migrations current
    python -m hull_mes.db.run_migrations history
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from alembic import command
from alembic.config import Config

from hull_mes.core.logging import configure_logging
from hull_mes.db.config import Settings, get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


# PUBLIC_INTERFACE
def alembic_config(settings: Optional[Settings] = None) -> Config:
    """Alembic configuration for this package's migrations and the configured database."""
    settings = settings or get_settings()
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # Only offline mode reads this; env.py builds its own async engine online.
    cfg.set_main_option("sqlalchemy.url", settings.sync_database_url)
    return cfg


# PUBLIC_INTERFACE
def upgrade(revision: str = "head", settings: Optional[Settings] = None) -> None:
    """Upgrade the schema to the given revision."""
    logger.info("Upgrading schema to %s", revision)
    command.upgrade(alembic_config(settings), revision)


def downgrade(revision: str = "-1", settings: Optional[Settings] = None) -> None:
    logger.info("Downgrading schema to %s", revision)
    command.downgrade(alembic_config(settings), revision)


def current(settings: Optional[Settings] = None) -> None:
    command.current(alembic_config(settings), verbose=True)


def history(settings: Optional[Settings] = None) -> None:
    command.history(alembic_config(settings))


COMMANDS: Dict[str, Callable[..., None]] = {
    "upgrade": upgrade,
    "downgrade": downgrade,
    "current": current,
    "history": history,
}


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m hull_mes.db.run_migrations")
    parser.add_argument("command", choices=sorted(COMMANDS))
    parser.add_argument("revision", nargs="?", help="Target revision for upgrade/downgrade")
    return parser


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None) -> None:
    """Command line entry point."""
    args = _parser().parse_args(argv)
    if args.command in ("upgrade", "downgrade") and args.revision:
        COMMANDS[args.command](args.revision)
    elif args.revision:
        _parser().error(f"{args.command} takes no revision")
    else:
        COMMANDS[args.command]()


if __name__ == "__main__":
    configure_logging(logging.INFO)
    main()
