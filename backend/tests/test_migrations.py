"""
SnipShare Backend: Migration Tests
====================================

What we test:
    ✅ `upgrade head` against a `-x url=...` target builds the users and
       snippets tables there, and `downgrade base` drops them again
    ✅ Offline mode renders SQL without touching the target database
"""

import argparse
import io
import sqlite3
from pathlib import Path

from alembic import command
from alembic.config import Config

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


def alembic_config(url: str, output_buffer=None) -> Config:
    # No ini file: fileConfig() would reset the loggers other tests capture.
    config = Config(
        cmd_opts=argparse.Namespace(x=[f"url={url}"]), output_buffer=output_buffer
    )
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    return config


def table_names(db_file: Path) -> set:
    with sqlite3.connect(db_file) as conn:
        return {
            row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }


class TestMigrations:

    def test_upgrade_and_downgrade(self, tmp_path):
        db_file = tmp_path / "migrated.db"
        config = alembic_config(f"sqlite+aiosqlite:///{db_file}")

        command.upgrade(config, "head")
        assert {"users", "snippets", "alembic_version"} <= table_names(db_file)

        command.downgrade(config, "base")
        assert not {"users", "snippets"} & table_names(db_file)

    def test_offline_sql_leaves_target_untouched(self, tmp_path):
        db_file = tmp_path / "untouched.db"
        rendered = io.StringIO()
        config = alembic_config(f"sqlite+aiosqlite:///{db_file}", rendered)

        command.upgrade(config, "head", sql=True)

        assert "CREATE TABLE users" in rendered.getvalue()
        assert not db_file.exists()
