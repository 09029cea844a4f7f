"""Tests for the pool session state machine."""

import asyncio
import hashlib
import socket

from duco_miner.client.backoff import BackoffPolicy
from duco_miner.client.errors import ErrorKind, PoolLocatorError
from duco_miner.client.session import PoolSession, SessionState
from duco_miner.client.worker import Worker
from duco_miner.protocol.messages import Accepted, FeedbackKind, Rejected


def job_line(base: str, nonce: int, difficulty: int) -> str:
    return f"{base},{hashlib.sha1(f'{base}{nonce}'.encode()).hexdigest()},{difficulty}"


def free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class FailingLocator:
    async def locate(self):
        raise PoolLocatorError("discovery endpoint unreachable")


def make_session(config, shares: list, run_id: int = 12345, **kwargs) -> PoolSession:
    return PoolSession(
        config, 0, run_id, on_share=lambda fb, sol: shares.append((fb, sol)), **kwargs
    )


class TestSessionCycle:
    async def test_solves_submits_and_reports_feedback(self, make_config, fake_pool):
        pool, address = await fake_pool([job_line("seed1", 42, 100)])
        config = make_config(pool={"static_address": address})
        shares = []

        error = await make_session(config, shares).run()

        assert pool.requests[0] == "JOB,tester,LOW,secret"
        assert len(pool.submissions) == 1
        nonce, rate, client, rig, run_id = pool.submissions[0].split(",")
        assert nonce == "42"
        assert float(rate) >= 0
        assert rate.count(".") == 1 and len(rate.split(".")[1]) == 2
        assert client == "DucoAsyncMiner"
        assert rig == "rig-a"
        assert run_id == "12345"
        assert shares[0][0] == Accepted()
        assert shares[0][1].nonce == 42
        # Pool hangs up when out of jobs
        assert error.kind is ErrorKind.SESSION_IO

    async def test_end_to_end_accepted_counter(self, make_config, fake_pool):
        pool, address = await fake_pool([job_line("seed1", 42, 100)], feedback=["GOOD"])
        config = make_config(pool={"static_address": address})
        worker = Worker(0, config, 12345)

        await worker.new_session().run()

        assert worker.counters.accepted == 1
        assert worker.counters.rejected == 0

    async def test_rejection_reason_passed_through(self, make_config, fake_pool):
        _, address = await fake_pool([job_line("b", 3, 1)], feedback=["BAD,stale share"])
        config = make_config(pool={"static_address": address})
        shares = []

        await make_session(config, shares).run()

        assert shares[0][0] == Rejected(reason="stale share")

    async def test_multiple_jobs_on_one_connection(self, make_config, fake_pool):
        jobs = [job_line("a", 1, 1), job_line("b", 2, 1), job_line("c", 3, 1)]
        pool, address = await fake_pool(jobs, feedback=["GOOD", "BLOCK", "HELLO"])
        config = make_config(pool={"static_address": address})
        shares = []

        session = make_session(config, shares)
        await session.run()

        assert pool.connections == 1
        assert [s[1].nonce for s in shares] == [1, 2, 3]
        assert [s[0].kind for s in shares] == [
            FeedbackKind.ACCEPTED, FeedbackKind.NEW_BLOCK, FeedbackKind.OTHER,
        ]
        assert session.jobs_received == 3
        assert session.shares_submitted == 3

    async def test_difficulty_sent_as_configured(self, make_config, fake_pool):
        pool, address = await fake_pool([])
        config = make_config(difficulty="extreme", pool={"static_address": address})

        await make_session(config, []).run()

        assert pool.requests == ["JOB,tester,extreme,secret"]


class TestJobHandling:
    async def test_malformed_jobs_are_skipped_without_reconnect(
        self, make_config, fake_pool, log_messages
    ):
        jobs = ["abc,def", "a,b,c,d", job_line("ok", 9, 1)]
        pool, address = await fake_pool(jobs)
        config = make_config(pool={"static_address": address})
        shares = []

        session = make_session(config, shares)
        await session.run()

        assert pool.connections == 1
        # 3 jobs handed out plus the final request that found the queue empty
        assert len(pool.requests) == 4
        assert len(pool.submissions) == 1
        assert shares[0][1].nonce == 9
        assert session.jobs_received == 1
        assert sum("malformed_job" in m for m in log_messages) == 2

    async def test_unsolvable_job_is_abandoned(self, make_config, fake_pool):
        # nonce 101 lies outside 0..difficulty*100 for difficulty 1
        jobs = [job_line("far", 101, 1), job_line("near", 5, 1)]
        pool, address = await fake_pool(jobs)
        config = make_config(pool={"static_address": address})
        shares = []

        await make_session(config, shares).run()

        assert len(pool.submissions) == 1
        assert pool.submissions[0].startswith("5,")
        assert len(pool.requests) == 3

    async def test_undecodable_fields_are_masked(self, make_config, fake_pool, log_messages):
        pool, address = await fake_pool(["base,zz,notanumber"])
        config = make_config(pool={"static_address": address})

        session = make_session(config, [])
        await session.run()

        assert session.jobs_received == 1
        assert pool.submissions == []
        assert any("field_decode" in m for m in log_messages)


class TestHandshake:
    async def test_banner_is_logged(self, make_config, fake_pool, log_messages):
        _, address = await fake_pool([], banner="4.3")
        config = make_config(pool={"static_address": address})

        await make_session(config, []).run()

        assert any("server v4.3" in m for m in log_messages)

    async def test_missing_banner_does_not_abort(self, make_config, fake_pool, log_messages):
        pool, address = await fake_pool([job_line("nb", 4, 1)], banner=None)
        config = make_config(pool={"static_address": address, "read_timeout": 0.3})
        shares = []

        await make_session(config, shares).run()

        assert any("No server version" in m for m in log_messages)
        assert shares[0][1].nonce == 4


class TestFailures:
    async def test_discovery_failure(self, make_config):
        session = make_session(make_config(), [], locator=FailingLocator())

        error = await session.run()

        assert error.kind is ErrorKind.DISCOVERY
        assert "unreachable" in error.message
        assert session.state is SessionState.DISCONNECTED

    async def test_connect_failure(self, make_config):
        config = make_config(pool={"static_address": f"127.0.0.1:{free_port()}"})

        error = await make_session(config, []).run()

        assert error.kind is ErrorKind.CONNECT

    async def test_read_timeout_ends_session(self, make_config):
        async def silent(reader, writer):
            writer.write(b"3.0\n")
            await writer.drain()
            await reader.read()
            writer.close()

        server = await asyncio.start_server(silent, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        config = make_config(pool={"static_address": f"127.0.0.1:{port}", "read_timeout": 0.2})
        try:
            session = make_session(config, [])
            error = await session.run()
        finally:
            server.close()

        assert error.kind is ErrorKind.SESSION_IO
        assert "Timed out" in error.message
        assert not session.connected

    async def test_malformed_job_delay_comes_from_policy(self, make_config, fake_pool, monkeypatch):
        delays = []
        real_sleep = asyncio.sleep

        async def record_sleep(delay, *args, **kwargs):
            delays.append(delay)
            await real_sleep(0)

        monkeypatch.setattr("duco_miner.client.session.asyncio.sleep", record_sleep)
        _, address = await fake_pool(["only,two"])
        config = make_config(pool={"static_address": address})
        backoff = BackoffPolicy(malformed_job=0.0)

        await make_session(config, [], backoff=backoff).run()

        assert delays == [0.0]
