from dataclasses import replace
from unittest.mock import call, patch

from dual_n_back.config import GameMode
from dual_n_back.state import SessionState
from dual_n_back.streaming.session import SessionStreamer


@patch("dual_n_back.streaming.base.udp_client.SimpleUDPClient")
class TestSessionStreamer:
    def test_client_target(self, mock_client_cls):
        streamer = SessionStreamer(ip="10.0.0.2", port=9000)
        mock_client_cls.assert_called_once_with("10.0.0.2", 9000)
        assert streamer.client is mock_client_cls.return_value

    def test_session_messages(self, mock_client_cls):
        """
        Steps, match reports and the end of a session map to OSC addresses.
        """
        client = mock_client_cls.return_value
        streamer = SessionStreamer()
        base = SessionState(mode=GameMode.AUDIO_VISUAL, n=2, sequence_length=3, running=True)

        streamer(replace(base, current_index=0, visual_value=4, audio_value=2, event_tic=1))
        step = SessionState(
            mode=GameMode.AUDIO_VISUAL, current_index=2, visual_value=4,
            audio_value=5, event_tic=3, running=True,
        )
        streamer(step)
        checked = SessionState(
            mode=GameMode.AUDIO_VISUAL, current_index=2, visual_value=4,
            audio_value=5, event_tic=3, running=True, score=1,
            visual_match_checked=True,
        )
        streamer(checked)
        end = SessionState(
            mode=GameMode.AUDIO_VISUAL, current_index=2, event_tic=3,
            running=False, score=1, highscore=1,
        )
        streamer(end)

        assert client.send_message.call_args_list == [
            call("/nback/step", [0, 4, 2, 1]),
            call("/nback/step", [2, 4, 5, 3]),
            call("/nback/score", [1, 1, 0]),
            call("/nback/end", [1, 1]),
        ]

    def test_idle_snapshots_are_not_sent(self, mock_client_cls):
        client = mock_client_cls.return_value
        streamer = SessionStreamer(prefix="/game/")
        streamer(SessionState(mode=GameMode.AUDIO))
        client.send_message.assert_not_called()

    def test_restart_sends_first_step(self, mock_client_cls):
        """
        A new session's step 0 is sent even if its tic equals the last one seen.
        """
        client = mock_client_cls.return_value
        streamer = SessionStreamer(prefix="/game/")
        streamer(SessionState(current_index=0, visual_value=1, event_tic=1, running=True))
        streamer(SessionState(current_index=0, event_tic=1, running=False))
        streamer(SessionState(current_index=0, visual_value=7, event_tic=1, running=True))

        assert client.send_message.call_args_list == [
            call("/game/step", [0, 1, -1, 1]),
            call("/game/end", [0, 0]),
            call("/game/step", [0, 7, -1, 1]),
        ]

    def test_restart_without_idle_snapshot_sends_step(self, mock_client_cls):
        client = mock_client_cls.return_value
        streamer = SessionStreamer()
        streamer(SessionState(current_index=0, visual_value=3, event_tic=1, running=True))
        streamer(SessionState(current_index=0, visual_value=8, event_tic=2, running=True))

        assert client.send_message.call_args_list == [
            call("/nback/step", [0, 3, -1, 1]),
            call("/nback/step", [0, 8, -1, 2]),
        ]
