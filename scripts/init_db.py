"""Create the database (if needed) and apply database/schema.sql.

    python scripts/init_db.py --env testing
"""
from __future__ import annotations

import sys
from pathlib import Path

import click

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import load_settings

from src.field_attendance.field_attendance.database.bootstrap import apply_schema, list_tables

DEFAULT_SCHEMA = REPO_ROOT / "database" / "schema.sql"


@click.command()
@click.option("--env", default=None, help="Settings environment; defaults to $APP_ENV.")
@click.option(
    "--schema",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=DEFAULT_SCHEMA,
    show_default=True,
)
def main(env, schema_path: Path) -> None:
    db_config = dict(load_settings(env).DB_CONFIG)
    apply_schema(db_config, schema_path=schema_path)

    tables = sorted(list_tables(db_config))
    target = f"{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    click.echo(f"{schema_path.name} applied to {target}")
    click.echo(f"tables ({len(tables)}): {', '.join(tables)}")


if __name__ == "__main__":
    main()
