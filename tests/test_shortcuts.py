import unittest

from reelcut.shortcuts import (
    ACTION_DELETE,
    ACTION_EXPORT,
    ACTION_SHOW_SHORTCUTS,
    ACTION_SPLIT,
    ACTION_STOP,
    ACTION_TOGGLE_PLAY_ALL,
    ACTION_TOGGLE_PLAY_AUDIO,
    ACTION_TOGGLE_PLAY_VIDEO,
    resolve_shortcut_action,
    shortcut_legend,
)


class TestShortcuts(unittest.TestCase):
    def test_plain_actions(self):
        self.assertEqual(resolve_shortcut_action(key="Delete"), ACTION_DELETE)
        self.assertEqual(resolve_shortcut_action(key="Backspace"), ACTION_DELETE)
        self.assertEqual(resolve_shortcut_action(key="del"), ACTION_DELETE)
        self.assertEqual(resolve_shortcut_action(key="s"), ACTION_SPLIT)
        self.assertEqual(resolve_shortcut_action(key="space"), ACTION_TOGGLE_PLAY_ALL)
        self.assertEqual(resolve_shortcut_action(key=" "), ACTION_TOGGLE_PLAY_ALL)
        self.assertEqual(resolve_shortcut_action(key="v"), ACTION_TOGGLE_PLAY_VIDEO)
        self.assertEqual(resolve_shortcut_action(key="A"), ACTION_TOGGLE_PLAY_AUDIO)
        self.assertEqual(resolve_shortcut_action(key="Escape"), ACTION_STOP)
        self.assertIsNone(resolve_shortcut_action(key="q"))
        self.assertIsNone(resolve_shortcut_action(key=""))

    def test_primary_modifier_actions_ctrl_or_meta(self):
        self.assertEqual(resolve_shortcut_action(key="e", ctrl=True), ACTION_EXPORT)
        self.assertEqual(resolve_shortcut_action(key="E", meta=True), ACTION_EXPORT)
        # Other modified keys are left to the host.
        self.assertIsNone(resolve_shortcut_action(key="s", ctrl=True))
        self.assertIsNone(resolve_shortcut_action(key="Delete", meta=True))

    def test_typing_focus_blocks_plain_shortcuts(self):
        self.assertIsNone(resolve_shortcut_action(key="s", typing_focus=True))
        self.assertIsNone(resolve_shortcut_action(key="space", typing_focus=True))
        self.assertIsNone(resolve_shortcut_action(key="backspace", typing_focus=True))
        # Modifier shortcuts should still work while typing.
        self.assertEqual(resolve_shortcut_action(key="e", ctrl=True, typing_focus=True), ACTION_EXPORT)

    def test_help_shortcuts(self):
        self.assertEqual(resolve_shortcut_action(key="f1"), ACTION_SHOW_SHORTCUTS)
        self.assertEqual(resolve_shortcut_action(key="?", typing_focus=True), ACTION_SHOW_SHORTCUTS)
        self.assertEqual(resolve_shortcut_action(key="/", shift=True), ACTION_SHOW_SHORTCUTS)

    def test_alt_is_ignored(self):
        self.assertIsNone(resolve_shortcut_action(key="s", alt=True))
        self.assertIsNone(resolve_shortcut_action(key="e", ctrl=True, alt=True))

    def test_legend_lists_every_binding(self):
        keys = [k for k, _desc in shortcut_legend()]
        self.assertIn("Space", keys)
        self.assertIn("Ctrl/Cmd + E", keys)
        self.assertEqual(len(keys), len(set(keys)))


if __name__ == "__main__":
    unittest.main()
