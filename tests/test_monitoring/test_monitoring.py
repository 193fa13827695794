"""
Tests for liveness monitoring, the status page, notifiers and the exit log.

Run from project root: python -m pytest tests/test_monitoring -v
"""

import asyncio
import socket
import sys
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

import aiohttp.web
from aiohttp.test_utils import TestClient, TestServer

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from relay.enums import EndpointState
from relay.errors import ProbeError
from relay.exit_log import write_exit_log
from relay.monitoring import (
    BACKEND,
    GAME,
    LivenessMonitor,
    LivenessRecord,
    MonitoredEndpoint,
    StatusPage,
    probe_port,
)
from relay.notify import LogNotifier, WebhookNotifier


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    async def send(self, message: str) -> None:
        self.messages.append(message)


class ScriptedProbe:
    """Returns queued results per port; an exception in the script is raised."""

    def __init__(self, script: dict[int, list]):
        self.script = {port: list(results) for port, results in script.items()}

    async def __call__(self, host: str, port: int) -> bool:
        result = self.script[port].pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def endpoints() -> list[MonitoredEndpoint]:
    return [
        MonitoredEndpoint(key=BACKEND, component="Backend", port=3551, interval=0.5),
        MonitoredEndpoint(key=GAME, component="Gameserver", port=7777, interval=0.5),
    ]


# =============================================================================
# Liveness Records
# =============================================================================

class TestLivenessRecord(unittest.TestCase):

    def test_starts_unknown(self):
        record = LivenessRecord()
        self.assertIs(record.state, EndpointState.UNKNOWN)
        self.assertFalse(record.is_up)

    def test_first_down_is_silent_first_up_is_announced(self):
        self.assertFalse(LivenessRecord().observe(False))
        self.assertTrue(LivenessRecord().observe(True))

    def test_steady_state_is_silent(self):
        record = LivenessRecord()
        record.observe(True)

        self.assertFalse(record.observe(True))
        self.assertIs(record.previous, EndpointState.UNKNOWN)

    def test_transition_tracks_previous(self):
        record = LivenessRecord()
        record.observe(True)

        self.assertTrue(record.observe(False))
        self.assertIs(record.state, EndpointState.DOWN)
        self.assertIs(record.previous, EndpointState.UP)
        self.assertIsNotNone(record.changed_at)


# =============================================================================
# Liveness Monitor
# =============================================================================

class TestLivenessMonitor(unittest.IsolatedAsyncioTestCase):

    async def test_debounces_probe_sequence(self):
        notifier = RecordingNotifier()
        probe = ScriptedProbe({7777: [False, False, True, True, False], 3551: []})
        monitor = LivenessMonitor(endpoints(), notifier, probe=probe)

        for _ in range(5):
            await monitor.poll_once(GAME)

        self.assertEqual(notifier.messages, ["Gameserver is ON", "Gameserver is OFF"])

    async def test_eligibility_follows_game_endpoint(self):
        probe = ScriptedProbe({7777: [True, False], 3551: [True]})
        monitor = LivenessMonitor(endpoints(), RecordingNotifier(), probe=probe)
        self.assertFalse(monitor.is_eligible(GAME))

        await monitor.poll_once(BACKEND)
        self.assertFalse(monitor.is_eligible(GAME))
        self.assertTrue(monitor.is_eligible(BACKEND))

        await monitor.poll_once(GAME)
        self.assertTrue(monitor.is_eligible(GAME))

        await monitor.poll_once(GAME)
        self.assertFalse(monitor.is_eligible(GAME))

    async def test_endpoints_are_independent(self):
        notifier = RecordingNotifier()
        probe = ScriptedProbe({7777: [True], 3551: [True, False]})
        monitor = LivenessMonitor(endpoints(), notifier, probe=probe)

        await monitor.poll_once(BACKEND)
        await monitor.poll_once(GAME)
        await monitor.poll_once(BACKEND)

        self.assertEqual(
            notifier.messages,
            ["Backend is ON", "Gameserver is ON", "Backend is OFF"],
        )

    async def test_probe_error_counts_as_down(self):
        notifier = RecordingNotifier()
        error = ProbeError(7777, PermissionError("denied"))
        probe = ScriptedProbe({7777: [True, error, error], 3551: []})
        monitor = LivenessMonitor(endpoints(), notifier, probe=probe)

        for _ in range(3):
            await monitor.poll_once(GAME)

        self.assertFalse(monitor.is_eligible(GAME))
        self.assertEqual(notifier.messages, ["Gameserver is ON", "Gameserver is OFF"])

    async def test_unexpected_probe_failure_is_logged_as_down(self):
        notifier = RecordingNotifier()
        probe = ScriptedProbe({7777: [True, RuntimeError("boom")], 3551: []})
        monitor = LivenessMonitor(endpoints(), notifier, probe=probe)
        await monitor.poll_once(GAME)

        with self.assertLogs("relay.monitoring.liveness", level="ERROR"):
            await monitor.poll_once(GAME)

        self.assertFalse(monitor.is_eligible(GAME))
        self.assertEqual(notifier.messages, ["Gameserver is ON", "Gameserver is OFF"])

    async def test_polling_survives_a_failing_notifier(self):
        announced = asyncio.Event()

        class FlakyNotifier(RecordingNotifier):
            async def send(self, message: str) -> None:
                if not self.messages:
                    self.messages.append(None)
                    raise RuntimeError("notifier down")
                await super().send(message)
                announced.set()

        states = iter([True, False] * 10)

        async def probe(host, port):
            return port == 7777 and next(states)

        notifier = FlakyNotifier()
        monitor = LivenessMonitor(
            [MonitoredEndpoint(key=GAME, component="Gameserver", port=7777, interval=0.01)],
            notifier,
            probe=probe,
        )

        with self.assertLogs("relay.monitoring.liveness", level="ERROR"):
            monitor.start()
            await asyncio.wait_for(announced.wait(), timeout=1.0)
            await monitor.stop()

        self.assertEqual(notifier.messages[1], "Gameserver is OFF")

    async def test_snapshot(self):
        probe = ScriptedProbe({7777: [True], 3551: []})
        monitor = LivenessMonitor(endpoints(), RecordingNotifier(), probe=probe)
        await monitor.poll_once(GAME)

        snapshot = monitor.snapshot()

        self.assertEqual(list(snapshot), [BACKEND, GAME])
        self.assertEqual(snapshot[GAME]["state"], "UP")
        self.assertEqual(snapshot[GAME]["port"], 7777)
        self.assertEqual(snapshot[BACKEND]["state"], "UNKNOWN")

    async def test_start_polls_until_stopped(self):
        announced = asyncio.Event()

        class EventNotifier(RecordingNotifier):
            async def send(self, message: str) -> None:
                await super().send(message)
                announced.set()

        async def probe(host, port):
            return port == 7777

        notifier = EventNotifier()
        monitor = LivenessMonitor(endpoints(), notifier, probe=probe)
        monitor.start()
        await asyncio.wait_for(announced.wait(), timeout=1.0)
        await monitor.stop()

        self.assertEqual(notifier.messages, ["Gameserver is ON"])
        self.assertTrue(monitor.is_eligible(GAME))


class TestProbePort(unittest.IsolatedAsyncioTestCase):

    async def test_detects_listener(self):
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen()
        port = listener.getsockname()[1]

        try:
            self.assertTrue(await probe_port("127.0.0.1", port))
        finally:
            listener.close()

        self.assertFalse(await probe_port("127.0.0.1", port))


# =============================================================================
# Status Page
# =============================================================================

class TestStatusPage(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        probe = ScriptedProbe({7777: [True], 3551: [False]})
        self.monitor = LivenessMonitor(endpoints(), RecordingNotifier(), probe=probe)
        self.page = StatusPage(self.monitor, lambda: {"queued": 2}, title="Relay")

    async def test_index_before_first_probe(self):
        async with TestClient(TestServer(self.page.app)) as client:
            text = await (await client.get("/")).text()

        self.assertEqual(
            text,
            "Relay Status:<br>Matchmaker is Online!!!<br>"
            "Backend is Not Detected<br>Gameserver is Not Detected",
        )

    async def test_index_after_probes(self):
        await self.monitor.poll_once(GAME)
        await self.monitor.poll_once(BACKEND)

        async with TestClient(TestServer(self.page.app)) as client:
            text = await (await client.get("/")).text()

        self.assertIn("Backend is OFF", text)
        self.assertIn("Gameserver is ON", text)

    async def test_status_json(self):
        await self.monitor.poll_once(GAME)

        async with TestClient(TestServer(self.page.app)) as client:
            body = await (await client.get("/status")).json()

        self.assertEqual(body["liveness"][GAME]["state"], "UP")
        self.assertEqual(body["relay"], {"queued": 2})


# =============================================================================
# Notifiers
# =============================================================================

class TestWebhookNotifier(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.received = []
        self.status = 204

        async def hook(request):
            self.received.append(await request.json())
            return aiohttp.web.Response(status=self.status)

        app = aiohttp.web.Application()
        app.router.add_post("/hook", hook)
        self.server = TestServer(app)
        await self.server.start_server()

    async def asyncTearDown(self):
        await self.server.close()

    async def test_posts_content(self):
        notifier = WebhookNotifier(str(self.server.make_url("/hook")), timeout=2.0)

        await notifier.send("Gameserver is ON")

        self.assertEqual(self.received, [{"content": "Gameserver is ON"}])

    async def test_shared_session(self):
        async with aiohttp.ClientSession() as session:
            notifier = WebhookNotifier(
                str(self.server.make_url("/hook")), timeout=2.0, http_client=session
            )
            await notifier.send("one")
            await notifier.send("two")
            self.assertFalse(session.closed)

        self.assertEqual([m["content"] for m in self.received], ["one", "two"])

    async def test_error_status_is_swallowed(self):
        self.status = 500
        notifier = WebhookNotifier(str(self.server.make_url("/hook")), timeout=2.0)

        with self.assertLogs("relay.notify.notifier", level="ERROR"):
            await notifier.send("Backend is OFF")

    async def test_unreachable_webhook_is_swallowed(self):
        notifier = WebhookNotifier("http://127.0.0.1:9/hook", timeout=1.0)

        with self.assertLogs("relay.notify.notifier", level="ERROR"):
            await notifier.send("Backend is OFF")


class TestLogNotifier(unittest.IsolatedAsyncioTestCase):

    async def test_logs_message(self):
        with self.assertLogs("relay.notify.notifier", level="INFO") as logs:
            await LogNotifier().send("Backend is ON")

        self.assertIn("Backend is ON", logs.output[0])


# =============================================================================
# Exit Log
# =============================================================================

class TestExitLog(unittest.TestCase):

    def test_writes_timestamped_file(self):
        now = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)

        with tempfile.TemporaryDirectory() as tmp:
            path = write_exit_log(Path(tmp) / "logs", now=now)

            self.assertEqual(path.name, "log_2024-03-05_14-07-09.txt")
            self.assertEqual(
                path.read_text(), "[2024-03-05T14:07:09+00:00] Application exited\n"
            )


if __name__ == "__main__":
    unittest.main(verbosity=2)
