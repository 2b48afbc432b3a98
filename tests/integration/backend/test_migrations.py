"""
Integration test for the alembic environment in offline (--sql) mode.

No database is needed: the URL comes from the -x override and the
migration is rendered as PostgreSQL DDL.
"""

import io
import os
from argparse import Namespace

from alembic import command
from alembic.config import Config

MIGRATIONS_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..', '..', 'backend', 'migrations'))


def render_upgrade(*x_args):
    buffer = io.StringIO()
    cfg = Config(output_buffer=buffer, cmd_opts=Namespace(x=list(x_args)))
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    command.upgrade(cfg, "head", sql=True)
    return buffer.getvalue()


def test_offline_upgrade_uses_url_override():
    sql = render_upgrade("url=postgresql://ops@db-harbour/housekeeping")

    assert "CREATE TABLE room_assignment" in sql
    assert "CREATE TABLE event_log" in sql
    assert "ck_room_assignment_dnd_completed" in sql
    assert "ix_room_assignment_worker_day_status" in sql
    assert "5f1c2a9d0b01" in sql
