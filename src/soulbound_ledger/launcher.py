"""Command line entry point for the soulbound ledger service."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn
from alembic import command
from alembic.config import Config as AlembicConfig

from .config import ConfigurationError, config_manager, get_database_url
from .db.database import get_engine, get_session_factory, init_database
from .store.event_store import EventStoreError
from .store.host import LedgerHost
from .store.transaction_log import TransactionLog
from .utils.logging_config import ComponentLogger, get_logger, initialize_logging, log_exception

logger = get_logger('main')

# Repository checkout layout: <root>/src/soulbound_ledger/launcher.py
ALEMBIC_DIR = Path(__file__).resolve().parents[2] / "alembic"


def alembic_config(database_url: str) -> AlembicConfig:
    """Alembic configuration pointed at the bundled migrations."""
    alembic_cfg = AlembicConfig()
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    return alembic_cfg


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API under uvicorn."""
    config = config_manager.require_valid()
    host = args.host or config.server.host
    port = args.port or config.server.port

    logger.info(f"Starting server on {host}:{port} (ledger '{config.ledger.ledger_name}')")
    uvicorn.run(
        "soulbound_ledger.main:app",
        host=host,
        port=port,
        reload=args.reload,
        log_level="debug" if config.server.debug else "info",
    )
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create the ledger tables."""
    config_manager.load_config()
    database_url = get_database_url()

    if args.migrate:
        command.upgrade(alembic_config(database_url), "head")
        logger.info(f"Applied migrations to {database_url}")
    else:
        init_database(get_engine())
        logger.info(f"Created tables in {database_url}")

    print(f"Database ready: {database_url}")
    return 0


def cmd_replay(args: argparse.Namespace) -> int:
    """Rebuild the ledger from the transaction log and report what it holds."""
    config = config_manager.require_valid()
    init_database(get_engine())
    host = LedgerHost.from_config(config, get_session_factory())

    summary = host.summary()
    with get_session_factory()() as session:
        transactions = TransactionLog(session, host.ledger_name).get_latest_sequence()

    print(f"Ledger:               {summary['ledger_name']}")
    print(f"Issuer:               {summary['issuer']}")
    print(f"Transactions replayed: {transactions}")
    print(f"Next token id:        {summary['next_token_id']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="soulbound-ledger",
        description="Soulbound multi-token ledger service",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default from config)")
    serve.add_argument("--port", type=int, default=None, help="Port (default from config)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve.set_defaults(func=cmd_serve)

    init_db = subparsers.add_parser("init-db", help="Create the database tables")
    init_db.add_argument(
        "--migrate", action="store_true", help="Use Alembic migrations instead of create_all"
    )
    init_db.set_defaults(func=cmd_init_db)

    replay = subparsers.add_parser("replay", help="Rebuild the ledger from its log")
    replay.set_defaults(func=cmd_replay)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line."""
    args = build_parser().parse_args(argv)
    if args.debug:
        # Loggers are configured on import; rebuild them at debug level
        ComponentLogger.shutdown()
        initialize_logging(debug=True)

    try:
        return args.func(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"[ERROR] Invalid configuration: {e}", file=sys.stderr)
        return 2
    except EventStoreError as e:
        log_exception('main', e, {"command": args.command})
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
