"""vela init — create the database and the global config file.

Usage:
  vela init
  vela init --db data/knowledge.db
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from vela.cli.errors import console
from vela.cli.session import resolve_db_path
from vela.config import ensure_global_config, load_config
from vela.db.connection import Database
from vela.db.schema import CURRENT_VERSION, initialize, schema_version


def init_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default: .vela.db or VELA_DB)."),
    ] = None,
    global_config: Annotated[
        Path | None,
        typer.Option("--global-config", hidden=True, help="Override ~/.vela/config.yaml (for testing)."),
    ] = None,
) -> None:
    """Create the Vela database (idempotent) and default global config."""
    cfg = load_config(global_config_path=global_config)
    db_path = resolve_db_path(db, cfg)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    existed = db_path.exists()
    with Database(db_path, timeout=cfg.database.timeout) as conn:
        before = schema_version(conn)
        initialize(conn)

    if existed and before == CURRENT_VERSION:
        console.print(f"[yellow]⚠[/]  {db_path} already initialized (schema v{before}).")
    else:
        console.print(f"  [green]✓[/] {db_path} (schema v{CURRENT_VERSION})")

    cfg_path = ensure_global_config(global_config)
    console.print(f"  [green]✓[/] {cfg_path} (global config)")

    console.print("\nNext steps:")
    console.print("  1. vela agents add --name <name> --tenant <user-id>")
    console.print("  2. vela qa add --agent <agent-id> -q <question> --answer <text>")
