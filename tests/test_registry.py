"""
Channel Registry Tests — multiset bookkeeping and drain detection.
"""

import unittest


def make_registration(channel="c", event="userLogin"):
    from typed_pubsub.registry import Registration
    return Registration(channel=channel, event=event, handler=lambda payload: None)


class TestRegistration(unittest.TestCase):
    def test_defaults(self):
        reg = make_registration()
        self.assertTrue(reg.active)
        self.assertTrue(len(reg.registration_id) > 0)
        self.assertGreater(reg.created_at, 0)

    def test_unique_ids(self):
        self.assertNotEqual(make_registration().registration_id, make_registration().registration_id)


class TestChannelRegistry(unittest.TestCase):
    def setUp(self):
        from typed_pubsub.registry import ChannelRegistry
        self.registry = ChannelRegistry()

    def test_first_add_creates_channel(self):
        self.assertTrue(self.registry.add(make_registration()))
        self.assertFalse(self.registry.add(make_registration()))
        self.assertTrue(self.registry.has_channel("c"))
        self.assertEqual(self.registry.event_kinds("c"), ["userLogin", "userLogin"])

    def test_remove_missing_channel(self):
        self.assertEqual(self.registry.remove("nope", "userLogin"), (None, False))

    def test_remove_missing_event(self):
        self.registry.add(make_registration(event="a"))
        self.assertEqual(self.registry.remove("c", "b"), (None, False))
        self.assertEqual(self.registry.event_kinds("c"), ["a"])

    def test_remove_one_entry_only(self):
        first = make_registration(event="a")
        second = make_registration(event="a")
        other = make_registration(event="b")
        for reg in (first, other, second):
            self.registry.add(reg)

        removed, drained = self.registry.remove("c", "a")

        self.assertIs(removed, first)
        self.assertFalse(drained)
        self.assertFalse(first.active)
        self.assertTrue(second.active)
        self.assertTrue(other.active)
        self.assertEqual(self.registry.event_kinds("c"), ["b", "a"])

    def test_drain(self):
        self.registry.add(make_registration(event="a"))
        self.registry.add(make_registration(event="b"))

        self.assertFalse(self.registry.remove("c", "a")[1])
        removed, drained = self.registry.remove("c", "b")

        self.assertEqual(removed.event, "b")
        self.assertTrue(drained)
        self.assertFalse(self.registry.has_channel("c"))
        self.assertEqual(self.registry.channels(), [])
        self.assertEqual(self.registry.event_kinds("c"), [])

    def test_channels_independent(self):
        self.registry.add(make_registration(channel="x"))
        self.registry.add(make_registration(channel="y"))
        _, drained = self.registry.remove("x", "userLogin")
        self.assertTrue(drained)
        self.assertEqual(self.registry.channels(), ["y"])

    def test_restore(self):
        reg = make_registration()
        self.registry.add(reg)
        self.registry.remove("c", "userLogin")

        self.registry.restore(reg)

        self.assertTrue(reg.active)
        self.assertEqual(self.registry.registrations("c"), [reg])

    def test_restore_goes_first(self):
        restored = make_registration(event="a")
        later = make_registration(event="a")
        self.registry.add(restored)
        self.registry.remove("c", "a")
        self.registry.add(later)

        self.registry.restore(restored)

        self.assertIs(self.registry.remove("c", "a")[0], restored)

    def test_count(self):
        for event in ("a", "a", "b"):
            self.registry.add(make_registration(event=event))
        self.assertEqual(self.registry.count("c"), 3)
        self.assertEqual(self.registry.count("c", "a"), 2)
        self.assertEqual(self.registry.count("c", "z"), 0)
        self.assertEqual(self.registry.count("missing"), 0)
        self.assertEqual(len(self.registry), 3)

    def test_status(self):
        self.registry.add(make_registration(channel="auth", event="userLogin"))
        self.registry.add(make_registration(channel="auth", event="userLogout"))
        self.assertEqual(
            self.registry.status(),
            [{"channel": "auth", "events": ["userLogin", "userLogout"]}],
        )

    def test_clear(self):
        reg = make_registration()
        self.registry.add(reg)
        self.registry.clear()
        self.assertFalse(reg.active)
        self.assertEqual(len(self.registry), 0)
        self.assertEqual(self.registry.channels(), [])

    def test_discard_exact_registration(self):
        kept = make_registration(event="a")
        failed = make_registration(event="a")
        self.registry.add(kept)
        self.registry.add(failed)

        self.assertFalse(self.registry.discard(failed))

        self.assertFalse(failed.active)
        self.assertTrue(kept.active)
        self.assertEqual(self.registry.registrations("c"), [kept])

    def test_discard_last_drops_channel(self):
        reg = make_registration()
        self.registry.add(reg)
        self.assertTrue(self.registry.discard(reg))
        self.assertFalse(self.registry.has_channel("c"))

    def test_discard_unknown(self):
        self.assertFalse(self.registry.discard(make_registration()))
        self.assertEqual(self.registry.channels(), [])

    def test_logs_under_registry_subsystem(self):
        with self.assertLogs("typed_pubsub.registry", level="INFO") as captured:
            self.registry.add(make_registration(channel="auth"))
            self.registry.remove("auth", "userLogin")
        self.assertEqual(
            [r.getMessage() for r in captured.records],
            ["[REGISTRY] Channel active: auth", "[REGISTRY] Channel drained: auth"],
        )
        self.assertTrue(all(r.subsystem == "registry" for r in captured.records))
