"""Tests for the playsync CLI."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from playsync import __version__
from playsync.config import PlayerConfig
from playsync.main import app
from playsync.player import AudioPlayer
from tests.conftest import FakeFactory, FakeHandle

runner = CliRunner()


class AutoHandle(FakeHandle):
    """Handle that loads, plays and ends synchronously."""

    def load(self):
        super().load()
        if "broken" in str(self.source):
            self.fail_load("Unsupported format")
            return
        self.finish_load(duration=3.0)
        if self.options.autoplay:
            self.play()

    def play(self):
        super().play()
        self.start_playing()
        self._playing = False
        self.fire("end")


class AutoFactory(FakeFactory):
    handle_class = AutoHandle


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    PlayerConfig(log_dir=tmp_path / "logs").save(path)
    return path


@pytest.fixture
def auto_player():
    """Patch the CLI to build players around AutoHandle."""
    factory = AutoFactory()
    with patch(
        "playsync.main.AudioPlayer",
        side_effect=lambda config: AudioPlayer(config, factory=factory),
    ):
        yield factory


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestPlayCommand:
    """Tests for 'playsync play'."""

    def test_play_until_end(self, config_file, auto_player, tmp_path):
        result = runner.invoke(app, ["play", "song.mp3", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "playing" in result.output
        assert "stopped" in result.output
        handle = auto_player.created[0]
        assert handle.options.autoplay is True
        assert handle.unloaded is True
        assert (tmp_path / "logs" / "playsync.log").exists()

    def test_play_options_reach_handle(self, config_file, auto_player):
        result = runner.invoke(
            app,
            ["play", "song.mp3", "--volume", "0.3", "--rate", "1.5", "--mute", "--config", str(config_file)],
        )

        assert result.exit_code == 0, result.output
        options = auto_player.created[0].options
        assert options.volume == 0.3
        assert options.rate == 1.5
        assert options.mute is True
        assert options.loop is False

    def test_play_load_error(self, config_file, auto_player):
        result = runner.invoke(app, ["play", "broken.mp3", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Unsupported format" in result.output

    def test_play_missing_config(self, tmp_path, auto_player):
        result = runner.invoke(app, ["play", "song.mp3", "--config", str(tmp_path / "nope.toml")])

        assert result.exit_code == 1
        assert "Config file not found" in result.output
        assert auto_player.created == []


class TestInfoCommand:
    """Tests for 'playsync info'."""

    def test_info_shows_duration(self, config_file, auto_player):
        result = runner.invoke(app, ["info", "song.mp3", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "3.00s" in result.output
        assert "stopped" in result.output
        assert ("play",) not in auto_player.created[0].calls

    def test_info_load_error(self, config_file, auto_player):
        result = runner.invoke(app, ["info", "broken.mp3", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Unsupported" in result.output


class TestConfigCommands:
    """Tests for 'playsync config'."""

    def test_init_writes_file(self, tmp_path):
        path = tmp_path / "config.toml"

        result = runner.invoke(app, ["config", "init", "--config", str(path)])

        assert result.exit_code == 0, result.output
        assert path.exists()

    def test_init_refuses_overwrite(self, config_file):
        result = runner.invoke(app, ["config", "init", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_force(self, config_file):
        result = runner.invoke(app, ["config", "init", "--config", str(config_file), "--force"])

        assert result.exit_code == 0

    def test_show(self, config_file):
        result = runner.invoke(app, ["config", "show", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "buffer_ms" in result.output
        assert "200" in result.output
