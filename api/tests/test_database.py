"""
Tests for the Alembic wiring in publishing.database.
"""

from pathlib import Path

import pytest

from publishing import database


class TestMigrations:
    def test_config_points_at_bundled_scripts(self):
        config = database._alembic_config("sqlite+aiosqlite:///migrate.db")

        script_location = Path(config.get_main_option("script_location"))
        assert script_location.name == "alembic"
        assert (script_location / "env.py").exists()
        assert config.get_main_option("sqlalchemy.url") == "sqlite+aiosqlite:///migrate.db"

    async def test_init_db_upgrades_to_head(self, monkeypatch: pytest.MonkeyPatch):
        calls = []
        monkeypatch.setattr(
            database,
            "upgrade",
            lambda config, revision: calls.append(
                (config.get_main_option("sqlalchemy.url"), revision)
            ),
        )

        await database.init_db("postgresql+asyncpg://db/publishing")

        assert calls == [("postgresql+asyncpg://db/publishing", "head")]
