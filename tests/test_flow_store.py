import asyncio
import unittest

from emetals.flows.login import LoginFlow
from emetals.flows.store import FlowStore
from tests.fakes import FakeAuthClient

VALID = {
    "name": "Jane Doe",
    "email": "jane@emetals.io",
    "password": "Str0ng!Pass",
    "confirm_password": "Str0ng!Pass",
}


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestFlowStore(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.clock = FakeClock()
        self.auth = FakeAuthClient()
        self.store = FlowStore(redirect_delay=0, ttl_seconds=600, completed_ttl_seconds=30, clock=self.clock)

    async def asyncTearDown(self):
        self.store.close_all()

    async def test_create_and_get(self):
        flow_id, flow = self.store.create("login", self.auth)
        self.assertIsInstance(flow, LoginFlow)
        self.assertIn(flow_id, self.store)
        self.assertIs(self.store.get(flow_id), flow)

    async def test_unknown_kind_and_id(self):
        with self.assertRaises(KeyError):
            self.store.create("checkout", self.auth)
        with self.assertRaises(KeyError):
            self.store.get("missing")

    async def test_idle_flows_expire(self):
        stale_id, stale = self.store.create("register", self.auth)
        self.clock.now += 400
        live_id, _ = self.store.create("login", self.auth)

        self.clock.now += 250
        self.assertEqual(self.store.expire(), 1)
        self.assertNotIn(stale_id, self.store)
        self.assertIn(live_id, self.store)
        self.assertTrue(stale.closed)

    async def test_lookup_keeps_flow_alive(self):
        flow_id, _ = self.store.create("register", self.auth)
        for _ in range(3):
            self.clock.now += 500
            self.store.get(flow_id)
        self.assertIn(flow_id, self.store)

        self.clock.now += 601
        with self.assertRaises(KeyError):
            self.store.get(flow_id)
        self.assertEqual(len(self.store), 0)

    async def test_completed_flow_is_closed_and_swept(self):
        flow_id, flow = self.store.create("register", self.auth)
        await flow.submit(VALID)
        await flow.verify("123456")
        self.assertEqual(flow.step.key, "success")

        await asyncio.sleep(0.01)
        self.assertEqual(flow.redirect_to, "/dashboard")
        self.assertTrue(flow.closed)
        self.assertIs(self.store.get(flow_id), flow)

        # Reading a finished flow does not extend its lifetime
        self.clock.now += 20
        self.store.get(flow_id)
        self.clock.now += 11
        self.assertEqual(self.store.expire(), 1)
        self.assertNotIn(flow_id, self.store)

    async def test_many_finished_journeys_do_not_accumulate(self):
        for _ in range(5):
            flow_id, flow = self.store.create("register", self.auth)
            await flow.submit(VALID)
            await flow.verify("123456")
            flow.redirect_now()
        self.assertEqual(len(self.store), 5)

        self.clock.now += 31
        self.store.create("login", self.auth)
        self.assertEqual(len(self.store), 1)

    async def test_discard_and_close_all(self):
        flow_id, flow = self.store.create("forgot-password", self.auth)
        self.assertTrue(self.store.discard(flow_id))
        self.assertFalse(self.store.discard(flow_id))
        self.assertTrue(flow.closed)

        self.store.create("login", self.auth)
        self.store.create("register", self.auth)
        self.store.close_all()
        self.assertEqual(len(self.store), 0)


if __name__ == "__main__":
    unittest.main()
