"""Tests for the AudioPlayer control surface."""

from unittest.mock import MagicMock

import pytest

from playsync.config import PlayerConfig
from playsync.engine.handle import HandleOptions
from playsync.player import AudioPlayer
from playsync.state import AudioPlayerState


def _loaded(player, source="a.mp3", duration=10.0):
    handle = player.load(source)
    handle.finish_load(duration=duration)
    return handle


class TestWithoutResource:
    """Commands before anything is loaded."""

    def test_initial_state_is_unloaded(self, player):
        assert player.state == AudioPlayerState()
        assert player.get_handle() is None

    def test_get_position_returns_zero(self, player):
        assert player.get_position() == 0.0

    @pytest.mark.parametrize(
        "command, args",
        [
            ("play", ()),
            ("pause", ()),
            ("toggle_play_pause", ()),
            ("stop", ()),
            ("seek", (3.0,)),
            ("fade", (0.0, 1.0, 500)),
            ("set_rate", (1.5,)),
            ("set_volume", (0.5,)),
            ("mute", (True,)),
            ("loop", (True,)),
        ],
    )
    def test_commands_are_noops(self, player, fake_factory, command, args):
        getattr(player, command)(*args)

        assert player.state == AudioPlayerState()
        assert fake_factory.created == []


class TestLoad:
    """Load lifecycle."""

    def test_load_dispatches_start_load(self, player):
        handle = player.load("a.mp3")

        assert player.get_handle() is handle
        assert player.state.loading is True
        assert player.state.error is None

    def test_load_starts_decoding_after_listeners(self, player):
        handle = player.load("a.mp3")

        assert handle.calls[0] == ("load",)
        assert handle.listener_count("load") == 1

    def test_load_without_preload_does_not_decode(self, player):
        handle = player.load("a.mp3", HandleOptions(preload=False))

        assert ("load",) not in handle.calls
        assert player.state.loading is True

    def test_load_uses_config_defaults(self, fake_factory, tmp_path):
        config = PlayerConfig(volume=0.4, rate=1.5, loop=True, log_dir=tmp_path)
        with AudioPlayer(config, factory=fake_factory) as player:
            handle = player.load("a.mp3")

        assert handle.options.volume == 0.4
        assert handle.options.rate == 1.5
        assert handle.options.loop is True

    def test_load_event_updates_state(self, player):
        handle = player.load("a.mp3")

        handle.finish_load(duration=180.0)

        assert player.state.loading is False
        assert player.state.stopped is True
        assert player.state.duration == 180.0
        assert player.state.error is None

    def test_load_error_updates_state(self, player):
        handle = player.load("broken.mp3")

        handle.fail_load("Unsupported format")

        assert player.state.loading is False
        assert player.state.error == "Unsupported format"

    def test_reload_clears_error(self, player):
        player.load("broken.mp3").fail_load("nope")

        player.load("good.mp3")

        assert player.state.error is None
        assert player.state.loading is True

    def test_replacement_before_load_completes(self, player, fake_factory):
        """Replacing a resource through the player."""
        first = player.load("a.mp3")
        second = player.load("b.mp3")

        first.finish_load(duration=1.0)
        assert player.state.loading is True

        second.finish_load(duration=2.0)
        assert player.state.duration == 2.0
        assert first.unloaded is True
        assert first.listener_count("play") == 0
        assert second.listener_count("play") == 1


class TestPassthroughCommands:
    """Commands that only reach the engine."""

    def test_play_calls_engine_without_state_change(self, player):
        handle = _loaded(player)
        before = player.state

        player.play()

        assert ("play",) in handle.calls
        assert player.state == before

    def test_state_follows_engine_event(self, player):
        handle = _loaded(player)

        player.play()
        handle.start_playing()

        assert player.state.playing is True

    def test_end_event(self, player):
        """Natural end leaves the player stopped."""
        handle = _loaded(player)
        handle.start_playing()

        handle.fire("end")

        assert player.state.playing is False
        assert player.state.stopped is True

    def test_seek_and_position(self, player):
        handle = _loaded(player)

        player.seek(4.5)

        assert ("seek", 4.5) in handle.calls
        assert player.get_position() == 4.5

    def test_set_volume_waits_for_event(self, player):
        handle = _loaded(player)

        player.set_volume(0.2)
        assert player.state.volume == 1.0

        handle.fire("volume")
        assert player.state.volume == 0.2

    def test_other_passthroughs(self, player):
        handle = _loaded(player)

        player.pause()
        player.stop()
        player.fade(1.0, 0.0, 250)
        player.set_rate(2.0)
        player.mute(True)

        assert ("pause",) in handle.calls
        assert ("stop",) in handle.calls
        assert ("fade", 1.0, 0.0, 250) in handle.calls
        assert ("rate", 2.0) in handle.calls
        assert ("mute", True) in handle.calls


class TestLoop:
    """Loop affects both engine and state."""

    def test_loop_sets_engine_and_state(self, player):
        handle = _loaded(player)

        player.loop(True)

        assert ("loop", True) in handle.calls
        assert handle.loop() is True
        assert player.state.loop is True

    def test_loop_off(self, player):
        _loaded(player)
        player.loop(True)

        player.loop(False)

        assert player.state.loop is False


class TestTogglePlayPause:
    """Toggle round-trip."""

    def test_toggle_plays_when_not_playing(self, player):
        handle = _loaded(player)

        player.toggle_play_pause()

        assert handle.calls[-1] == ("play",)

    def test_toggle_round_trip(self, player):
        handle = _loaded(player)

        player.toggle_play_pause()
        handle.start_playing()
        assert player.state.playing is True

        player.toggle_play_pause()
        assert handle.calls[-1] == ("pause",)
        handle.fire("pause")

        assert player.state.playing is False

    def test_toggle_is_recomputed_on_playing_change(self, player):
        handle = _loaded(player)
        before = player.toggle_play_pause

        handle.start_playing()

        assert player.toggle_play_pause != before
        assert player.toggle_play_pause == player.pause

    def test_toggle_unchanged_by_unrelated_state(self, player):
        handle = _loaded(player)
        before = player.toggle_play_pause

        handle.fire("volume")

        assert player.toggle_play_pause == before


class TestListenersAndClose:
    """Tests for observing state and shutting down."""

    def test_add_and_remove_listener(self, player):
        callback = MagicMock()
        player.add_listener(callback)

        handle = player.load("a.mp3")
        player.remove_listener(callback)
        handle.finish_load()

        callback.assert_called_once()
        new_state, old_state = callback.call_args.args
        assert new_state.loading is True
        assert old_state.loading is False

    def test_close_without_load(self, player_config, fake_factory):
        """Closing an empty player twice does not raise."""
        player = AudioPlayer(player_config, factory=fake_factory)

        player.close()
        player.close()

    def test_close_detaches_and_destroys(self, player):
        handle = player.load("a.mp3")

        player.close()

        assert handle.unloaded is True
        assert player.get_handle() is None
        assert handle.listener_count("load") == 0
        assert handle.listener_count("play") == 0

    def test_events_after_close_are_ignored(self, player):
        handle = player.load("a.mp3")
        player.close()

        handle.finish_load()
        handle.fire("play")

        assert player.state.loading is True
        assert player.state.playing is False

    def test_context_manager_closes(self, player_config, fake_factory):
        with AudioPlayer(player_config, factory=fake_factory) as player:
            handle = player.load("a.mp3")

        assert handle.unloaded is True

    def test_load_after_close_is_torn_down_by_next_close(self, player):
        player.close()
        handle = player.load("a.mp3")

        player.close()

        assert handle.unloaded is True
        assert player.get_handle() is None
        assert handle.listener_count("load") == 0
        assert handle.listener_count("play") == 0
