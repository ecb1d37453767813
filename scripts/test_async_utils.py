from __future__ import annotations

import asyncio
import logging
import unittest

from dex_gateway.common.async_utils import best_effort, run_uncancellable

LOGGER = logging.getLogger("test.async_utils")


class RunUncancellableTests(unittest.IsolatedAsyncioTestCase):
    async def _cancel_midway(self, work: asyncio.Event, outcome: BaseException | None) -> asyncio.Task[str]:
        async def swap() -> str:
            await work.wait()
            if outcome is not None:
                raise outcome
            return "0xfeed"

        outer = asyncio.create_task(
            run_uncancellable(
                swap(),
                logger=LOGGER,
                event="swap_finished_after_cancel",
                message="cancelled while in flight",
                backend="uniswap",
            )
        )
        await asyncio.sleep(0)
        outer.cancel()
        await asyncio.sleep(0)
        return outer

    async def test_returns_inner_result_when_not_cancelled(self) -> None:
        async def swap() -> str:
            return "0xfeed"

        result = await run_uncancellable(swap(), logger=LOGGER, event="unused", message="unused")

        self.assertEqual(result, "0xfeed")

    async def test_cancel_waits_for_failed_swap_and_logs_its_error(self) -> None:
        release = asyncio.Event()
        outer = await self._cancel_midway(release, RuntimeError("execution reverted"))
        self.assertFalse(outer.done())

        release.set()
        with self.assertLogs(LOGGER, level="WARNING") as captured:
            with self.assertRaises(asyncio.CancelledError):
                await outer

        record = captured.records[0]
        self.assertEqual(record.event, "swap_finished_after_cancel")  # type: ignore[attr-defined]
        self.assertEqual(record.outcome, "failed")  # type: ignore[attr-defined]
        self.assertIn("execution reverted", record.error)  # type: ignore[attr-defined]
        self.assertEqual(record.error_type, "RuntimeError")  # type: ignore[attr-defined]
        self.assertEqual(record.backend, "uniswap")  # type: ignore[attr-defined]

    async def test_cancel_waits_for_completed_swap_and_logs_it(self) -> None:
        release = asyncio.Event()
        outer = await self._cancel_midway(release, None)

        release.set()
        with self.assertLogs(LOGGER, level="WARNING") as captured:
            with self.assertRaises(asyncio.CancelledError):
                await outer

        self.assertEqual(captured.records[0].outcome, "completed")  # type: ignore[attr-defined]


class BestEffortTests(unittest.IsolatedAsyncioTestCase):
    async def test_failure_is_logged_and_default_returned(self) -> None:
        async def check() -> bool:
            raise ConnectionError("rpc down")

        with self.assertLogs(LOGGER, level="WARNING") as captured:
            result = await best_effort(
                check,
                logger=LOGGER,
                event="ledger_check_failed",
                message="check failed",
                default=False,
            )

        self.assertFalse(result)
        self.assertEqual(captured.records[0].error_type, "ConnectionError")  # type: ignore[attr-defined]


if __name__ == "__main__":
    unittest.main()
