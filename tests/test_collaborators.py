"""Tests for the tip, notification and cue collaborators."""

import io
import random
import threading
import unittest
from unittest.mock import Mock

from kairo.cues import BellCuePlayer, Cue, NullAmbient
from kairo.modes import FOCUS_MODES, SessionFamily, build_catalog
from kairo.notifier import DesktopNotifier, completion_message
from kairo.tips import FALLBACK_INSIGHT, FALLBACK_TIPS, TipService, insight_prompt, time_of_day


class TestTipService(unittest.TestCase):
    def test_no_generator_uses_fallbacks(self):
        service = TipService(rng=random.Random(7))
        self.assertIn(service.fetch_tip(25), FALLBACK_TIPS)
        self.assertEqual(service.fetch_insight(25, SessionFamily.FOCUS, hour=9), FALLBACK_INSIGHT)

    def test_generator_text_is_stripped(self):
        prompts = []

        def generate(prompt):
            prompts.append(prompt)
            return "  Stillness speaks.\n"

        service = TipService(generator=generate)
        try:
            self.assertEqual(service.fetch_tip(25), "Stillness speaks.")
        finally:
            service.close()
        self.assertIn("25 minute session", prompts[0])

    def test_failing_or_empty_generator_falls_back(self):
        for generate in (Mock(side_effect=RuntimeError("quota")), Mock(return_value=""), Mock(return_value=None)):
            service = TipService(generator=generate)
            try:
                self.assertIn(service.fetch_tip(5), FALLBACK_TIPS)
                self.assertEqual(service.fetch_insight(5, SessionFamily.BREAK, hour=20), FALLBACK_INSIGHT)
            finally:
                service.close()

    def test_slow_generator_times_out(self):
        release = threading.Event()

        def generate(prompt):
            release.wait(5)
            return "too late"

        service = TipService(generator=generate, timeout_s=0.05)
        try:
            self.assertIn(service.fetch_tip(25), FALLBACK_TIPS)
            hung = [t for t in threading.enumerate() if t.name == "kairo-tips" and t.is_alive()]
            self.assertTrue(hung)
            self.assertTrue(all(t.daemon for t in hung))
        finally:
            release.set()
            service.close()

    def test_closed_service_stops_calling_the_generator(self):
        generate = Mock(return_value="Breathe.")
        service = TipService(generator=generate)
        service.close()
        self.assertIn(service.fetch_tip(25), FALLBACK_TIPS)
        generate.assert_not_called()

    def test_request_tip_calls_back_off_thread(self):
        got = []
        service = TipService(generator=lambda prompt: "Flow like water.")
        try:
            service.request_tip(25, got.append).join(timeout=2)
        finally:
            service.close()
        self.assertEqual(got, ["Flow like water."])

    def test_insight_prompt_mentions_time_of_day(self):
        self.assertEqual(time_of_day(8), "morning")
        self.assertEqual(time_of_day(12), "afternoon")
        self.assertEqual(time_of_day(18), "evening")
        self.assertIn("1.5 minute BREAK session in the evening", insight_prompt(1.5, SessionFamily.BREAK, 21))


class TestDesktopNotifier(unittest.TestCase):
    def test_send_uses_backend(self):
        backend = Mock()
        t = DesktopNotifier(backend=backend).send("KAIRO", "done")
        t.join(timeout=2)
        backend.notify.assert_called_once_with(title="KAIRO", message="done", timeout=6, app_name="KAIRO")

    def test_disabled_sends_nothing(self):
        backend = Mock()
        self.assertIsNone(DesktopNotifier(enabled=False, backend=backend).send("KAIRO", "done"))
        backend.notify.assert_not_called()

    def test_backend_failure_is_contained(self):
        backend = Mock()
        backend.notify.side_effect = NotImplementedError("no dbus")
        t = DesktopNotifier(backend=backend).send("KAIRO", "done")
        t.join(timeout=2)
        self.assertFalse(t.is_alive())

    def test_completion_message(self):
        self.assertEqual(completion_message(FOCUS_MODES[2]), ("KAIRO", "Your 25 minute session is complete."))
        custom = build_catalog(SessionFamily.FOCUS, 90)[0]
        self.assertEqual(completion_message(custom), ("KAIRO", "Your 1m 30s session is complete."))


class TestCues(unittest.TestCase):
    def test_bell_rings_for_start_and_completion_only(self):
        out = io.StringIO()
        player = BellCuePlayer(stream=out)
        for cue in Cue:
            player.play(cue)
        self.assertEqual(out.getvalue(), "\a\a")

    def test_disabled_bell_is_silent(self):
        out = io.StringIO()
        BellCuePlayer(enabled=False, stream=out).play(Cue.COMPLETED)
        self.assertEqual(out.getvalue(), "")

    def test_null_ambient_tracks_current(self):
        ambient = NullAmbient()
        ambient.start("DEEP_SPACE")
        self.assertEqual(ambient.current, "DEEP_SPACE")
        ambient.stop()
        self.assertIsNone(ambient.current)


if __name__ == "__main__":
    unittest.main()
