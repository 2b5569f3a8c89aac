import unittest
from unittest.mock import patch

from reelcut import sinks
from reelcut.sinks import FletAudioSink, _FletSink, to_seconds


class _FakeAudioControl:
    def __init__(self, duration_ms=3000):
        self.src = None
        self.volume = 1.0
        self.duration_ms = duration_ms
        self.calls = []
        self.updates = 0

    def update(self):
        self.updates += 1

    async def get_duration(self):
        return self.duration_ms

    async def get_current_position(self):
        return 1250

    async def play(self):
        self.calls.append(("play",))

    async def pause(self):
        self.calls.append(("pause",))

    async def seek(self, ms):
        self.calls.append(("seek", ms))


class TestToSeconds(unittest.TestCase):
    def test_milliseconds_and_durations(self):
        class Duration:
            in_milliseconds = 2500

        self.assertIsNone(to_seconds(None))
        self.assertEqual(to_seconds(1500), 1.5)
        self.assertEqual(to_seconds(Duration()), 2.5)
        self.assertEqual(to_seconds(-20), 0.0)
        self.assertIsNone(to_seconds("soon"))


class TestFletSinks(unittest.IsolatedAsyncioTestCase):
    def test_base_sink_is_abstract(self):
        with self.assertRaises(TypeError):
            _FletSink(object())

    async def test_audio_sink_drives_control(self):
        control = _FakeAudioControl()
        sink = FletAudioSink(control)
        await sink.load("m.mp3")
        self.assertEqual(control.src, "m.mp3")
        self.assertEqual(sink.src, "m.mp3")
        self.assertTrue(sink.paused)

        await sink.seek(1.5)
        await sink.play()
        self.assertFalse(sink.paused)
        self.assertEqual(control.calls, [("seek", 1500), ("play",)])
        self.assertEqual(await sink.position(), 1.25)

        await sink.set_volume(1.7)
        self.assertEqual(control.volume, 1.0)
        await sink.set_muted(True)
        self.assertEqual(control.volume, 0.0)

        await sink.pause()
        self.assertTrue(sink.paused)

    async def test_load_gives_up_when_media_never_ready(self):
        control = _FakeAudioControl(duration_ms=0)
        sink = FletAudioSink(control)
        with patch.object(sinks, "LOAD_TIMEOUT_SEC", 0.02), patch.object(sinks, "LOAD_POLL_SEC", 0.005):
            with self.assertLogs("reelcut.sinks", level="WARNING"):
                await sink.load("slow.mp3")
        self.assertEqual(sink.src, "slow.mp3")


if __name__ == "__main__":
    unittest.main()
