"""Тесты операторского CLI (python -m src.market)."""

import json

import pytest

from src.market.__main__ import main


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "market.yaml"
    path.write_text(
        "market:\n"
        "  admin: operator\n"
        "  min_lock_seconds: 60\n"
        f"  state_path: {tmp_path / 'state.json'}\n"
        f"  transfer_journal: {tmp_path / 'transfers.jsonl'}\n"
        "  oracle_url: http://feed.invalid/latest\n"
        "  log_level: WARNING\n"
    )
    return path


def _run(capsys, *argv):
    code = main(list(argv))
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else None


class TestCli:
    def test_status_of_empty_market(self, capsys, config_path):
        code, output = _run(capsys, "--config", str(config_path), "status")

        assert code == 0
        assert output["current_epoch"] == 0
        assert output["phase"] is None
        assert output["round"] is None

    def test_start_persists_round(self, capsys, config_path):
        code, output = _run(capsys, "--config", str(config_path), "start", "--live", "30", "--lock", "60")
        assert code == 0
        assert output == {"epoch": 1}

        code, output = _run(capsys, "--config", str(config_path), "status")
        assert output["current_epoch"] == 1
        assert output["round"]["lock_interval_seconds"] == 60
        assert output["phase"] in ("CREATED", "LIVE")

    def test_short_lock_interval_fails(self, capsys, config_path):
        code, output = _run(capsys, "--config", str(config_path), "start", "--live", "30", "--lock", "59")

        assert code == 1
        assert output["error"] == "lock_interval_too_short"

    def test_second_start_fails(self, capsys, config_path):
        _run(capsys, "--config", str(config_path), "start", "--live", "30", "--lock", "60")
        code, output = _run(capsys, "--config", str(config_path), "start", "--live", "30", "--lock", "60")

        assert code == 1
        assert output["error"] == "previous_round_not_ended"

    def test_lock_too_early_does_not_query_feed(self, capsys, config_path):
        _run(capsys, "--config", str(config_path), "start", "--live", "3600", "--lock", "60")
        code, output = _run(capsys, "--config", str(config_path), "lock")

        assert code == 1
        assert output["error"] == "lock_too_early"

    def test_claim_empty_treasury(self, capsys, config_path, tmp_path):
        code, output = _run(capsys, "--config", str(config_path), "claim-treasury")

        assert code == 0
        assert output == {"amount": 0}
        assert not (tmp_path / "transfers.jsonl").exists()

    def test_config_error(self, capsys, tmp_path):
        path = tmp_path / "market.yaml"
        path.write_text("min_lock_seconds: 60\n")

        assert main(["--config", str(path), "status"]) == 2
        assert "admin" in capsys.readouterr().err

    def test_missing_config_file(self, tmp_path):
        assert main(["--config", str(tmp_path / "absent.yaml"), "status"]) == 2
