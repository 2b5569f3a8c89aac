import unittest

from reelcut import editor
from reelcut.model import MIN_CLIP_DURATION, PLAY_ALL, PLAY_AUDIO, PLAY_NONE, PLAY_VIDEO, EditorState, Transition


def _with_clips(*durations: float) -> EditorState:
    s = editor.new_state()
    for i, d in enumerate(durations):
        s = editor.add_clip(s, f"clip{i}.mp4", d, scene_number=i + 1)
    return s


class TestClipReducers(unittest.TestCase):
    def test_add_clip_appends_full_length(self):
        s = _with_clips(5.0, 3.0)
        self.assertEqual([c.src for c in s.clips], ["clip0.mp4", "clip1.mp4"])
        self.assertEqual((s.clips[1].trim_start, s.clips[1].trim_end), (0.0, 3.0))
        self.assertAlmostEqual(s.total_duration, 8.0)

    def test_fade_between_clips_updates_total(self):
        s = _with_clips(5.0, 5.0)
        self.assertAlmostEqual(s.total_duration, 10.0)
        s = editor.set_transition(s, s.clips[0].id, "fade", 1.0)
        self.assertEqual(s.clips[0].transition_out, Transition("fade", 1.0))
        self.assertAlmostEqual(s.total_duration, 9.0)

        s = editor.set_transition(s, s.clips[0].id, "none", 1.0)
        self.assertIsNone(s.clips[0].transition_out)
        self.assertAlmostEqual(s.total_duration, 10.0)

    def test_transition_longer_than_neighbours_only_overlaps_what_fits(self):
        s = _with_clips(2.0, 2.0)
        s = editor.set_transition(s, s.clips[0].id, "dissolve", 2.0)
        self.assertEqual(s.clips[0].transition_out, Transition("dissolve", 2.0))
        self.assertAlmostEqual(s.total_duration, 2.5)

    def test_short_neighbour_during_trim_does_not_eat_transition(self):
        s = _with_clips(5.0, 5.0)
        s = editor.set_transition(s, s.clips[0].id, "fade", 2.0)
        second = s.clips[1].id
        self.assertAlmostEqual(s.total_duration, 8.0)

        s = editor.trim_clip(s, second, editor.SIDE_END, 0.0, 5.0, -160.0)
        self.assertAlmostEqual(s.clips[1].trim_end, 1.0)
        self.assertAlmostEqual(s.total_duration, 5.5)

        s = editor.trim_clip(s, second, editor.SIDE_END, 0.0, 5.0, 0.0)
        self.assertEqual(s.clips[0].transition_out, Transition("fade", 2.0))
        self.assertAlmostEqual(s.total_duration, 8.0)

    def test_split_at_playhead(self):
        s = _with_clips(4.0)
        s = editor.seek(s, 1.5)
        out, msg = editor.split_clip_at_playhead(s)
        self.assertEqual(msg, "Split")
        self.assertEqual(len(out.clips), 2)
        self.assertAlmostEqual(out.clips[0].dur, 1.5)
        self.assertAlmostEqual(out.clips[1].dur, 2.5)
        self.assertEqual(out.clips[0].src, out.clips[1].src)
        self.assertEqual(out.selected_clip_id, out.clips[1].id)
        self.assertAlmostEqual(out.total_duration, 4.0)

    def test_split_too_close_to_edge_is_rejected(self):
        s = editor.seek(_with_clips(4.0), 0.3)
        out, msg = editor.split_clip_at_playhead(s)
        self.assertIs(out, s)
        self.assertIn(str(MIN_CLIP_DURATION), msg)
        self.assertEqual(len(out.clips), 1)
        self.assertAlmostEqual(out.clips[0].dur, 4.0)

        s = editor.seek(s, 3.8)
        out, _msg = editor.split_clip_at_playhead(s)
        self.assertIs(out, s)

    def test_split_with_nothing_under_playhead(self):
        s = editor.new_state()
        out, msg = editor.split_clip_at_playhead(s)
        self.assertIs(out, s)
        self.assertEqual(msg, "")

    def test_split_keeps_transition_on_right_piece(self):
        s = _with_clips(4.0, 4.0)
        s = editor.set_transition(s, s.clips[0].id, "wiperight", 0.5)
        s = editor.seek(s, 1.5)
        out, _msg = editor.split_clip_at_playhead(s)
        self.assertEqual(len(out.clips), 3)
        self.assertIsNone(out.clips[0].transition_out)
        self.assertEqual(out.clips[1].transition_out, Transition("wiperight", 0.5))
        self.assertAlmostEqual(out.total_duration, 7.5)

    def test_delete_selected_clip_clears_selection(self):
        s = _with_clips(5.0, 5.0)
        s = editor.set_transition(s, s.clips[0].id, "fade", 1.0)
        second = s.clips[1].id
        s = editor.select_clip(s, second)
        self.assertEqual(s.selected_clip_id, second)

        s = editor.delete_clip(s, second)
        self.assertIsNone(s.selected_clip_id)
        self.assertEqual(len(s.clips), 1)
        # The blend into the removed clip is gone with it.
        self.assertIsNone(s.clips[0].transition_out)
        self.assertAlmostEqual(s.total_duration, 5.0)
        self.assertLessEqual(s.current_time, s.total_duration)

    def test_delete_keeps_other_selection_and_ignores_unknown(self):
        s = _with_clips(2.0, 3.0)
        first = s.clips[0].id
        s = editor.select_clip(s, first)
        s = editor.delete_clip(s, s.clips[1].id)
        self.assertEqual(s.selected_clip_id, first)
        self.assertIs(editor.delete_clip(s, "missing"), s)

    def test_trim_clip_clamps(self):
        s = _with_clips(5.0)
        cid = s.clips[0].id
        out = editor.trim_clip(s, cid, editor.SIDE_END, 0.0, 5.0, -80.0)
        self.assertAlmostEqual(out.clips[0].trim_end, 3.0)
        self.assertAlmostEqual(out.total_duration, 3.0)

        out = editor.trim_clip(s, cid, editor.SIDE_START, 0.0, 5.0, 400.0)
        self.assertAlmostEqual(out.clips[0].trim_start, 4.5)

        out = editor.trim_clip(s, cid, editor.SIDE_END, 0.0, 5.0, 400.0)
        self.assertAlmostEqual(out.clips[0].trim_end, 5.0)

        out = editor.trim_clip(s, cid, editor.SIDE_START, 1.0, 5.0, -200.0)
        self.assertAlmostEqual(out.clips[0].trim_start, 0.0)

        self.assertIs(editor.trim_clip(s, "missing", editor.SIDE_END, 0.0, 5.0, 10.0), s)

    def test_trim_on_source_shorter_than_minimum(self):
        s = _with_clips(0.3)
        cid = s.clips[0].id
        for side in (editor.SIDE_START, editor.SIDE_END):
            for delta in (-40.0, 0.0, 40.0):
                out = editor.trim_clip(s, cid, side, 0.0, 0.3, delta)
                clip = out.clips[0]
                self.assertEqual((clip.trim_start, clip.trim_end), (0.0, 0.3))

        s = editor.add_audio_track(editor.new_state(), "blip.mp3", 0.2)
        tid = s.audio_tracks[0].id
        out = editor.trim_audio_track(s, tid, editor.SIDE_START, 0.0, 0.2, 20.0)
        self.assertEqual((out.audio_tracks[0].trim_start, out.audio_tracks[0].trim_end), (0.0, 0.2))

    def test_reorder(self):
        s = _with_clips(1.0, 2.0, 3.0)
        a, b, c = (x.id for x in s.clips)
        out = editor.reorder_clip(s, c, a)
        self.assertEqual([x.id for x in out.clips], [c, a, b])
        out = editor.reorder_clip(s, a, c)
        self.assertEqual([x.id for x in out.clips], [b, c, a])
        self.assertIs(editor.reorder_clip(s, a, a), s)
        self.assertIs(editor.reorder_clip(s, a, "missing"), s)

    def test_reorder_keeps_total_duration(self):
        s = _with_clips(1.0, 2.0, 3.0)
        a, b, c = (x.id for x in s.clips)
        for moving, target in ((c, a), (a, c), (b, a)):
            self.assertAlmostEqual(editor.reorder_clip(s, moving, target).total_duration, 6.0)

        s = _with_clips(5.0, 5.0, 5.0)
        s = editor.set_transition(s, s.clips[0].id, "fade", 1.0)
        out = editor.reorder_clip(s, s.clips[2].id, s.clips[1].id)
        self.assertEqual(out.clips[0].id, s.clips[0].id)
        self.assertAlmostEqual(out.total_duration, s.total_duration)

    def test_reorder_round_trip_restores_transition_and_total(self):
        s = _with_clips(5.0, 5.0, 1.0)
        s = editor.set_transition(s, s.clips[0].id, "fade", 2.0)
        a, b, c = (x.id for x in s.clips)
        self.assertAlmostEqual(s.total_duration, 9.0)

        moved = editor.reorder_clip(s, c, b)
        self.assertEqual([x.id for x in moved.clips], [a, c, b])
        # Only half a second of the fade fits against the 1s clip.
        self.assertAlmostEqual(moved.total_duration, 10.5)
        self.assertEqual(moved.clips[0].transition_out, Transition("fade", 2.0))

        back = editor.reorder_clip(moved, b, c)
        self.assertEqual([x.id for x in back.clips], [a, b, c])
        self.assertEqual(back.clips[0].transition_out, Transition("fade", 2.0))
        self.assertAlmostEqual(back.total_duration, 9.0)

    def test_toggle_mute(self):
        s = _with_clips(2.0)
        cid = s.clips[0].id
        s = editor.toggle_clip_mute(s, cid)
        self.assertTrue(s.clips[0].muted)
        s = editor.toggle_clip_mute(s, cid)
        self.assertFalse(s.clips[0].muted)


class TestAudioReducers(unittest.TestCase):
    def _state(self) -> EditorState:
        s = _with_clips(5.0)
        return editor.add_audio_track(s, "music.mp3", 6.0, name="music")

    def test_add_audio_track_defaults(self):
        s = self._state()
        t = s.audio_tracks[0]
        self.assertEqual((t.offset_sec, t.volume, t.trim_start, t.trim_end), (0.0, 1.0, 0.0, 6.0))
        self.assertEqual(t.name, "music")
        self.assertAlmostEqual(s.total_duration, 6.0)

    def test_move_audio_floors_at_zero(self):
        s = self._state()
        tid = s.audio_tracks[0].id
        s = editor.move_audio_track(s, tid, 0.0, 80.0)
        self.assertAlmostEqual(s.audio_tracks[0].offset_sec, 2.0)
        self.assertAlmostEqual(s.total_duration, 8.0)
        s = editor.move_audio_track(s, tid, 2.0, -400.0)
        self.assertEqual(s.audio_tracks[0].offset_sec, 0.0)

    def test_volume_is_clamped(self):
        s = self._state()
        tid = s.audio_tracks[0].id
        self.assertEqual(editor.set_audio_volume(s, tid, 1.7).audio_tracks[0].volume, 1.0)
        self.assertEqual(editor.set_audio_volume(s, tid, -1).audio_tracks[0].volume, 0.0)
        self.assertAlmostEqual(editor.set_audio_volume(s, tid, 0.25).audio_tracks[0].volume, 0.25)
        self.assertIs(editor.set_audio_volume(s, "missing", 0.5), s)

    def test_trim_audio(self):
        s = self._state()
        tid = s.audio_tracks[0].id
        s = editor.trim_audio_track(s, tid, editor.SIDE_START, 0.0, 6.0, 40.0)
        self.assertAlmostEqual(s.audio_tracks[0].trim_start, 1.0)
        self.assertAlmostEqual(s.audio_tracks[0].dur, 5.0)
        self.assertAlmostEqual(s.total_duration, 5.0)

    def test_split_audio_at_playhead(self):
        s = self._state()
        tid = s.audio_tracks[0].id
        s = editor.move_audio_track(s, tid, 0.0, 80.0)
        s = editor.seek(s, 5.0)
        out, msg = editor.split_audio_at_playhead(s)
        self.assertEqual(msg, "Split")
        left, right = out.audio_tracks
        self.assertEqual((left.offset_sec, left.trim_start, left.trim_end), (2.0, 0.0, 3.0))
        self.assertEqual((right.offset_sec, right.trim_start, right.trim_end), (5.0, 3.0, 6.0))
        self.assertEqual(out.selected_audio_id, right.id)
        self.assertAlmostEqual(out.total_duration, 8.0)

    def test_split_audio_rejected_near_edge(self):
        s = editor.seek(self._state(), 0.2)
        out, msg = editor.split_audio_at_playhead(s)
        self.assertIs(out, s)
        self.assertTrue(msg)

    def test_delete_selected_audio(self):
        s = self._state()
        tid = s.audio_tracks[0].id
        s = editor.select_audio(s, tid)
        self.assertEqual(s.selected_audio_id, tid)
        s = editor.delete_audio_track(s, tid)
        self.assertIsNone(s.selected_audio_id)
        self.assertEqual(s.audio_tracks, [])
        self.assertAlmostEqual(s.total_duration, 5.0)


class TestSelectionAndPlayhead(unittest.TestCase):
    def test_select_clip_toggles_and_moves_playhead(self):
        s = editor.add_audio_track(_with_clips(5.0, 5.0), "m.mp3", 3.0)
        s = editor.select_audio(s, s.audio_tracks[0].id)
        second = s.clips[1].id
        s = editor.select_clip(s, second)
        self.assertEqual(s.selected_clip_id, second)
        self.assertIsNone(s.selected_audio_id)
        self.assertAlmostEqual(s.current_time, 5.0)
        s = editor.select_clip(s, second)
        self.assertIsNone(s.selected_clip_id)

    def test_select_audio_clears_clip_selection(self):
        s = editor.add_audio_track(_with_clips(5.0), "m.mp3", 3.0)
        s = editor.select_clip(s, s.clips[0].id)
        s = editor.select_audio(s, s.audio_tracks[0].id)
        self.assertIsNone(s.selected_clip_id)
        self.assertIs(editor.select_audio(s, "missing"), s)

    def test_seek_clamps_and_selects_clip(self):
        s = _with_clips(5.0, 5.0)
        out = editor.seek(s, 100.0)
        self.assertAlmostEqual(out.current_time, 10.0)
        out = editor.seek(s, -3.0)
        self.assertEqual(out.current_time, 0.0)
        self.assertEqual(out.selected_clip_id, s.clips[0].id)
        out = editor.seek(s, 7.0)
        self.assertEqual(out.selected_clip_id, s.clips[1].id)

    def test_set_current_time_has_no_selection_side_effects(self):
        s = _with_clips(5.0, 5.0)
        out = editor.set_current_time(s, 7.0)
        self.assertAlmostEqual(out.current_time, 7.0)
        self.assertIsNone(out.selected_clip_id)
        self.assertIs(editor.set_current_time(out, 7.0), out)
        self.assertAlmostEqual(editor.set_current_time(s, 50.0).current_time, 10.0)

    def test_enter_clip_and_finish(self):
        s = _with_clips(5.0, 5.0)
        out = editor.enter_clip(s, s.clips[1].id, 5.0)
        self.assertEqual(out.selected_clip_id, s.clips[1].id)
        self.assertAlmostEqual(out.current_time, 5.0)

        playing = editor.play(s, PLAY_ALL)
        done = editor.finish_playback(playing)
        self.assertFalse(done.is_playing)
        self.assertEqual(done.play_mode, PLAY_NONE)
        self.assertAlmostEqual(done.current_time, 10.0)
        self.assertAlmostEqual(editor.finish_playback(playing, 4.0).current_time, 4.0)


class TestPlayToggle(unittest.TestCase):
    def test_play_requires_media_for_mode(self):
        empty = editor.new_state()
        self.assertIs(editor.play(empty, PLAY_ALL), empty)
        clips_only = _with_clips(3.0)
        self.assertIs(editor.play(clips_only, PLAY_AUDIO), clips_only)
        audio_only = editor.add_audio_track(empty, "m.mp3", 3.0)
        self.assertIs(editor.play(audio_only, PLAY_VIDEO), audio_only)
        self.assertTrue(editor.play(audio_only, PLAY_AUDIO).is_playing)

    def test_same_mode_toggles_off(self):
        s = editor.play(_with_clips(3.0), PLAY_VIDEO)
        self.assertTrue(s.is_playing)
        self.assertEqual(s.play_mode, PLAY_VIDEO)
        s = editor.play(s, PLAY_VIDEO)
        self.assertFalse(s.is_playing)
        self.assertEqual(s.play_mode, PLAY_NONE)

    def test_other_mode_switches(self):
        s = editor.add_audio_track(_with_clips(3.0), "m.mp3", 3.0)
        s = editor.play(s, PLAY_VIDEO)
        s = editor.play(s, PLAY_ALL)
        self.assertTrue(s.is_playing)
        self.assertEqual(s.play_mode, PLAY_ALL)
        self.assertFalse(editor.play(s, "bogus").is_playing)

    def test_play_starts_from_selected_clip(self):
        s = _with_clips(5.0, 5.0)
        s = editor.select_clip(s, s.clips[1].id)
        s = editor.set_current_time(s, 1.0)
        out = editor.play(s, PLAY_VIDEO)
        # Playhead outside the selected clip restarts it.
        self.assertAlmostEqual(out.current_time, 5.0)
        self.assertEqual(out.selected_clip_id, s.clips[1].id)

    def test_active_clip_position(self):
        self.assertIsNone(editor.active_clip_position(editor.new_state()))
        s = editor.set_current_time(_with_clips(5.0, 5.0), 2.0)
        self.assertEqual(editor.active_clip_position(s), (0, 2.0))
        s = editor.select_clip(s, s.clips[1].id)
        s = editor.set_current_time(s, 6.5)
        idx, local = editor.active_clip_position(s)
        self.assertEqual(idx, 1)
        self.assertAlmostEqual(local, 1.5)

    def test_stop_is_identity_when_idle(self):
        s = _with_clips(2.0)
        self.assertIs(editor.stop(s), s)


if __name__ == "__main__":
    unittest.main()
