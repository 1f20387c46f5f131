"""CLI 命令测试 -- python -m opsdesk.gateway"""

import sys

import pytest
from opsdesk.core.models import StorageUnitStatus
from opsdesk.gateway import __main__ as cli


@pytest.fixture
def cli_env(monkeypatch, tmp_db_path, tmp_path):
    monkeypatch.setenv("OPSDESK_DB_PATH", str(tmp_db_path))
    monkeypatch.setenv("OPSDESK_PHOTOS_DIR", str(tmp_path / "photos"))
    monkeypatch.delenv("OPSDESK_STORAGE_MODE", raising=False)
    monkeypatch.delenv("OPSDESK_NOTIFY_MODE", raising=False)


class TestCli:
    async def test_init_db_creates_schema(self, cli_env, tmp_db_path, capsys):
        await cli.init_database()

        assert tmp_db_path.exists()
        assert "Schema" in capsys.readouterr().out

    async def test_pending_counts(self, cli_env, seeder, capsys):
        await seeder.storage_unit("BX-077", status=StorageUnitStatus.PENDING_CLEANING)
        await seeder.storage_unit("BX-078", status=StorageUnitStatus.PENDING_CLEANING)

        exit_code = await cli.pending_counts()

        assert exit_code == 0
        lines = capsys.readouterr().out.splitlines()
        rows = [line.split() for line in lines]
        counts = {row[0]: row[1] for row in rows if len(row) == 2}
        assert counts["pending-cleaning"] == "2"
        assert counts["total"] == "2"
        assert counts["critical"] == "0"

    def test_unknown_command_exits(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["opsdesk.gateway", "explode"])

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
        assert "explode" in capsys.readouterr().out

    def test_missing_command_prints_usage(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["opsdesk.gateway"])

        with pytest.raises(SystemExit):
            cli.main()
        assert "init-db" in capsys.readouterr().out
