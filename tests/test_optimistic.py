import unittest

from utils.errors import InvalidTransitionError
from utils.optimistic import optimistic_update


class OptimisticUpdateTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_success_keeps_local_change(self):
        state = {"status": "pending"}
        calls = []

        def apply():
            state["status"] = "preparing"

        async def commit():
            calls.append("commit")
            return "ok"

        async def reload():
            calls.append("reload")

        result = await optimistic_update(apply, commit, reload)
        self.assertEqual(result, "ok")
        self.assertEqual(state["status"], "preparing")
        self.assertEqual(calls, ["commit"])

    async def test_failure_reloads_and_reraises(self):
        state = {"status": "pending"}

        def apply():
            state["status"] = "preparing"

        async def commit():
            raise InvalidTransitionError("rejected")

        async def reload():
            state["status"] = "pending"

        with self.assertRaises(InvalidTransitionError):
            await optimistic_update(apply, commit, reload)
        self.assertEqual(state["status"], "pending")

    async def test_unexpected_errors_are_not_swallowed(self):
        reloaded = []

        async def commit():
            raise RuntimeError("boom")

        async def reload():
            reloaded.append(True)

        with self.assertRaises(RuntimeError):
            await optimistic_update(lambda: None, commit, reload)
        self.assertEqual(reloaded, [])
