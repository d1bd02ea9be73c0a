"""Tests for the ffmpeg decoder supervisor."""

import signal
import sys

import pytest

from gplay.config import PlayerConfig
from gplay.player.errors import SubprocessStartError
from gplay.player.transcoder import TranscodeSupervisor

from conftest import TONE_BYTES, ScriptSupervisor


def _read_all(stream, block=4096):
    total = 0
    while True:
        data = stream.read(block)
        if not data:
            return total
        total += len(data)


class TestBuildCommand:
    def test_default_command(self):
        cmd = TranscodeSupervisor().build_command("https://media.example/audio")
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-i") + 1] == "https://media.example/audio"
        assert cmd[cmd.index("-f") + 1] == "s16le"
        assert cmd[cmd.index("-ar") + 1] == "48000"
        assert cmd[cmd.index("-ac") + 1] == "2"
        assert cmd[cmd.index("-bufsize") + 1] == "64k"
        assert cmd[cmd.index("-loglevel") + 1] == "warning"
        assert cmd[-1] == "pipe:1"

    def test_reconnect_options(self):
        cmd = TranscodeSupervisor().build_command("u")
        assert cmd[cmd.index("-reconnect") + 1] == "1"
        assert cmd[cmd.index("-reconnect_streamed") + 1] == "1"
        assert cmd[cmd.index("-reconnect_delay_max") + 1] == "5"

    def test_video_disabled(self):
        cmd = TranscodeSupervisor().build_command("u")
        assert "-vn" in cmd
        assert "-nostdin" in cmd

    def test_config_overrides(self):
        config = PlayerConfig(
            ffmpeg_path="/opt/ffmpeg/bin/ffmpeg",
            sample_rate=44100,
            channels=1,
            ffmpeg_log_level="error",
        )
        cmd = TranscodeSupervisor(config).build_command("u")
        assert cmd[0] == "/opt/ffmpeg/bin/ffmpeg"
        assert cmd[cmd.index("-ar") + 1] == "44100"
        assert cmd[cmd.index("-ac") + 1] == "1"
        assert cmd[cmd.index("-loglevel") + 1] == "error"

    def test_grace_period_from_config(self):
        assert TranscodeSupervisor().grace_period == 0.05
        assert TranscodeSupervisor(PlayerConfig(grace_period=0.5)).grace_period == 0.5


class TestStart:
    def test_missing_binary(self):
        supervisor = TranscodeSupervisor(PlayerConfig(ffmpeg_path="/nonexistent/bin/ffmpeg"))
        with pytest.raises(SubprocessStartError, match="not found"):
            supervisor.start("https://media.example/audio")

    def test_stream_delivers_all_samples(self):
        supervisor = ScriptSupervisor()
        decoder = supervisor.start("tone")
        assert _read_all(decoder.stream) == TONE_BYTES
        assert supervisor.wait(decoder) == 0
        assert decoder.stream.bytes_read == TONE_BYTES
        decoder.close()

    def test_stderr_is_captured(self):
        supervisor = ScriptSupervisor()
        decoder = supervisor.start("broken")
        assert _read_all(decoder.stream) == 0
        assert supervisor.wait(decoder) == 1
        decoder.close()
        assert list(decoder.stderr_tail) == ["Server returned 403 Forbidden"]

    def test_is_running(self):
        supervisor = ScriptSupervisor()
        decoder = supervisor.start("endless")
        try:
            assert decoder.is_running() is True
            assert decoder.returncode is None
        finally:
            supervisor.terminate(decoder)
            decoder.close()
        assert decoder.is_running() is False


class TestTerminate:
    def test_terminate_running_decoder(self):
        supervisor = ScriptSupervisor()
        decoder = supervisor.start("endless")
        returncode = supervisor.terminate(decoder)
        decoder.close()
        assert returncode is not None
        assert decoder.token.cancelled is True
        assert decoder.is_running() is False

    def test_terminate_exited_decoder(self):
        supervisor = ScriptSupervisor()
        decoder = supervisor.start("tone")
        _read_all(decoder.stream)
        supervisor.wait(decoder)
        assert supervisor.terminate(decoder) == 0
        decoder.close()

    def test_terminate_is_idempotent(self):
        supervisor = ScriptSupervisor()
        decoder = supervisor.start("endless")
        first = supervisor.terminate(decoder)
        second = supervisor.terminate(decoder)
        decoder.close()
        assert first == second

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    def test_kill_after_grace_period(self):
        supervisor = ScriptSupervisor(grace_period=0.05)
        decoder = supervisor.start("stubborn")
        # First frame means the SIGTERM handler is installed
        assert decoder.stream.read(4) == b"\x00" * 4
        returncode = supervisor.terminate(decoder)
        decoder.close()
        assert returncode == -signal.SIGKILL

    def test_stream_reads_eof_after_close(self):
        supervisor = ScriptSupervisor()
        decoder = supervisor.start("endless")
        supervisor.terminate(decoder)
        decoder.close()
        assert decoder.stream.read(4096) == b""


class TestCancelToken:
    def test_cancel_is_idempotent(self):
        supervisor = ScriptSupervisor()
        decoder = supervisor.start("endless")
        try:
            assert decoder.token.cancelled is False
            decoder.token.cancel()
            decoder.token.cancel()
            assert decoder.token.cancelled is True
            assert supervisor.wait(decoder) is not None
        finally:
            supervisor.terminate(decoder)
            decoder.close()
