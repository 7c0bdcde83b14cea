import json

import pytest

from waypoint_core import runner
from waypoint_core.buffer import LocalBuffer
from waypoint_core.models import PositionRecord
from waypoint_core.store import KeyValueStore

from conftest import make_fix


@pytest.fixture
def cli(tmp_path):
    state = tmp_path / "state"
    log_file = tmp_path / "agent.log"

    def call(*argv):
        return runner.main(["--state-dir", str(state), "--log-file", str(log_file), *argv])

    call.state = state
    return call


def test_config_then_status(cli, capsys):
    assert cli("config", "--host", "https://wp.example.com/", "--key", "abc",
               "--max-buffer", "60", "--high-density", "on") == 0
    capsys.readouterr()

    assert cli("status") == 0
    status = json.loads(capsys.readouterr().out)
    assert status["serverHost"] == "https://wp.example.com"
    assert status["serverKey"] == "***"
    assert status["maxBufferSize"] == 60
    assert status["alwaysHighDensity"] is True
    assert status["bufferLength"] == 0


def test_invalid_buffer_size_rejected(cli):
    with pytest.raises(SystemExit):
        cli("config", "--max-buffer", "42")


def test_clear(cli, capsys):
    buf = LocalBuffer(KeyValueStore(cli.state))
    buf.append(PositionRecord.from_fix(make_fix(1.0)))
    assert cli("clear") == 0
    capsys.readouterr()
    cli("status")
    assert json.loads(capsys.readouterr().out)["bufferLength"] == 0


def test_replay_fills_buffer(cli, tmp_path, capsys):
    track = tmp_path / "track.jsonl"
    with track.open("w", encoding="utf-8") as f:
        for i in range(5):
            f.write(json.dumps({
                "timestamp": float(i), "latitude": i * 0.001, "longitude": 0.0,
                "horizontal_accuracy": 5.0, "speed": 3.0,
            }) + "\n")

    # no server configured, so nothing is uploaded on loop exit
    assert cli("run", "--replay", str(track)) == 0
    assert "5 records still buffered" in capsys.readouterr().out


def test_replay_leaves_tracking_settings_untouched(cli, tmp_path, capsys):
    track = tmp_path / "track.jsonl"
    track.write_text(json.dumps({
        "timestamp": 1.0, "latitude": 0.0, "longitude": 0.0, "horizontal_accuracy": 5.0,
    }) + "\n", encoding="utf-8")

    assert cli("run", "--replay", str(track)) == 0
    capsys.readouterr()

    cli("status")
    status = json.loads(capsys.readouterr().out)
    assert status["trackingActivated"] is False
    assert status["alwaysHighDensity"] is False
