import unittest

from reelcut.model import (
    AUDIO_FALLBACK_DURATION,
    VIDEO_FALLBACK_DURATION,
    AudioTrack,
    Clip,
    EditorState,
    ExportSettings,
    Transition,
    clamp_trim,
    new_id,
)


class TestTransition(unittest.TestCase):
    def test_none_and_zero_duration_mean_absent(self):
        self.assertIsNone(Transition.from_dict({"type": "none", "duration": 1.0}))
        self.assertIsNone(Transition.from_dict({"type": "fade", "duration": 0}))
        self.assertIsNone(Transition.from_dict(None))
        self.assertIsNone(Transition.from_dict("fade"))

    def test_unknown_type_falls_back_to_fade(self):
        t = Transition.from_dict({"type": "spin", "duration": "1.5"})
        self.assertEqual(t, Transition("fade", 1.5))

    def test_active(self):
        self.assertTrue(Transition("dissolve", 0.3).active)
        self.assertFalse(Transition("none", 0.3).active)
        self.assertFalse(Transition("fade", 0.0).active)


class TestClampTrim(unittest.TestCase):
    def test_window_stays_inside_source(self):
        self.assertEqual(clamp_trim(-1.0, 20.0, 10.0), (0.0, 10.0))
        self.assertEqual(clamp_trim(9.9, 10.0, 10.0), (9.5, 10.0))
        self.assertEqual(clamp_trim(3.0, 3.1, 10.0), (3.0, 3.5))

    def test_short_source_keeps_full_length(self):
        self.assertEqual(clamp_trim(0.1, 0.2, 0.4), (0.0, 0.4))


class TestRecords(unittest.TestCase):
    def test_new_id_is_unique_and_prefixed(self):
        a, b = new_id("clip"), new_id("clip")
        self.assertNotEqual(a, b)
        self.assertTrue(a.startswith("clip-"))

    def test_clip_from_dict_tolerates_missing_fields(self):
        c = Clip.from_dict({"src": "a.mp4"})
        self.assertTrue(c.id)
        self.assertEqual(c.original_duration, VIDEO_FALLBACK_DURATION)
        self.assertEqual((c.trim_start, c.trim_end), (0.0, VIDEO_FALLBACK_DURATION))
        self.assertFalse(c.muted)
        self.assertIsNone(c.transition_out)

    def test_clip_from_dict_reclamps_trim(self):
        c = Clip.from_dict(
            {
                "id": "c1",
                "src": "a.mp4",
                "original_duration": 4.0,
                "trim_start": 3.9,
                "trim_end": 99,
                "transition_out": {"type": "wipeleft", "duration": 0.5},
                "scene_number": "3",
            }
        )
        self.assertAlmostEqual(c.trim_start, 3.5)
        self.assertAlmostEqual(c.trim_end, 4.0)
        self.assertEqual(c.transition_out, Transition("wipeleft", 0.5))
        self.assertEqual(c.scene_number, 3)

    def test_clip_from_dict_requires_src(self):
        with self.assertRaises(KeyError):
            Clip.from_dict({"id": "c1"})

    def test_clip_dict_keeps_transition(self):
        c = Clip("c1", "a.mp4", 6.0, 1.0, 5.0, muted=True, transition_out=Transition("zoom", 1.0))
        self.assertEqual(Clip.from_dict(c.to_dict()), c)

    def test_audio_from_dict_clamps_volume_and_offset(self):
        t = AudioTrack.from_dict({"src": "m.mp3", "volume": 3, "offset_sec": -2})
        self.assertEqual(t.volume, 1.0)
        self.assertEqual(t.offset_sec, 0.0)
        self.assertEqual(t.original_duration, AUDIO_FALLBACK_DURATION)
        self.assertAlmostEqual(t.end_sec, AUDIO_FALLBACK_DURATION)

    def test_state_lookups(self):
        c = Clip("c1", "a.mp4", 5.0, 0.0, 5.0)
        t = AudioTrack("t1", "m.mp3", 5.0, 0.0, 5.0)
        s = EditorState(clips=[c], audio_tracks=[t])
        self.assertIs(s.find_clip("c1"), c)
        self.assertEqual(s.clip_index("c1"), 0)
        self.assertEqual(s.clip_index("nope"), -1)
        self.assertIs(s.find_audio("t1"), t)
        self.assertIsNone(s.find_audio(None))
        self.assertFalse(s.is_empty)
        self.assertTrue(EditorState().is_empty)


class TestExportSettings(unittest.TestCase):
    def test_defaults_for_portrait_output(self):
        s = ExportSettings()
        self.assertEqual((s.width, s.height, s.fps), (1080, 1920, 30))

    def test_from_dict_ignores_garbage(self):
        s = ExportSettings.from_dict({"width": "wide", "fps": 0, "preset": "", "crf": "x"})
        self.assertEqual(s.width, 1080)
        self.assertEqual(s.fps, 30)
        self.assertEqual(s.preset, "medium")
        self.assertEqual(s.crf, 23)
        self.assertEqual(ExportSettings.from_dict(None), ExportSettings())


if __name__ == "__main__":
    unittest.main()
