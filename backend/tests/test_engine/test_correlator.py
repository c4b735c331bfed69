"""Tests for request correlation, timeouts and retry."""

from __future__ import annotations

import asyncio

import pytest

from app.engine.analyzer import TreeAnalyzer
from app.engine.config import CritiqueConfig
from app.engine.correlator import RequestCorrelator
from app.engine.errors import CritiqueError, ErrorCode, ErrorKind
from app.transport.channel import ChannelClosedError
from tests.conftest import TEXT_NODE, VALID_KEY, FakePort, error_reply, ok_reply


RECORD = TreeAnalyzer().analyze([TEXT_NODE])


def make_correlator(port, config, sleeper=None) -> RequestCorrelator:
    correlator = RequestCorrelator(port, config, sleep=sleeper or asyncio.sleep)
    port.target = correlator.handle_reply
    return correlator


async def wait_for_dispatches(port: FakePort, n: int) -> None:
    for _ in range(100):
        if len(port.dispatches) >= n:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {n} dispatches, saw {len(port.dispatches)}")


@pytest.mark.asyncio
async def test_success(config, sleeper):
    port = FakePort([ok_reply("Great layout", model="gpt-3.5-turbo", usage={"total_tokens": 42})])
    correlator = make_correlator(port, config, sleeper)

    critique = await correlator.get_critique(RECORD, VALID_KEY, "Landing page")

    assert critique.content == "Great layout"
    assert critique.model == "gpt-3.5-turbo"
    assert critique.usage == {"total_tokens": 42}
    assert correlator.pending_count == 0
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_dispatch_message_shape(config, sleeper):
    port = FakePort([ok_reply()])
    correlator = make_correlator(port, config, sleeper)
    await correlator.get_critique(RECORD.to_wire(), VALID_KEY)

    (message,) = port.dispatches
    assert message["credential"] == VALID_KEY
    assert message["deadline"] == config.request_timeout
    assert message["payload"]["model"] == config.model
    assert message["payload"]["max_tokens"] == config.max_tokens
    assert [m["role"] for m in message["payload"]["messages"]] == ["system", "user"]
    assert len(message["correlationId"]) == 32


@pytest.mark.asyncio
async def test_retry_500_500_200(config, sleeper):
    port = FakePort([error_reply(500), error_reply(500), ok_reply("Third time")])
    correlator = make_correlator(port, config, sleeper)

    critique = await correlator.get_critique(RECORD, VALID_KEY)

    assert critique.content == "Third time"
    assert len(port.dispatches) == 3
    assert len({m["correlationId"] for m in port.dispatches}) == 3
    assert sleeper.delays == [1.0, 2.0]
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_401_fails_without_retry(config, sleeper):
    port = FakePort([error_reply(401, code="OPENAI_API_ERROR"), ok_reply()])
    correlator = make_correlator(port, config, sleeper)

    with pytest.raises(CritiqueError) as exc:
        await correlator.get_critique(RECORD, VALID_KEY)

    assert exc.value.kind is ErrorKind.REMOTE
    assert exc.value.status_code == 401
    assert exc.value.code == "OPENAI_API_ERROR"
    assert len(port.dispatches) == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_exhausted_retries(config, sleeper):
    port = FakePort([error_reply(500), error_reply(502), error_reply(503)])
    correlator = make_correlator(port, config, sleeper)

    with pytest.raises(CritiqueError) as exc:
        await correlator.get_critique(RECORD, VALID_KEY)

    err = exc.value
    assert err.kind is ErrorKind.REQUEST_FAILED
    assert err.code == ErrorCode.API_REQUEST_FAILED
    assert err.message == "API request failed after 3 attempts"
    assert err.status_code == 503
    assert err.details["attempts"] == 3
    assert len(port.dispatches) == 3


@pytest.mark.asyncio
async def test_missing_status_is_retryable(config, sleeper):
    port = FakePort([error_reply(None, code="NETWORK_ERROR"), ok_reply()])
    correlator = make_correlator(port, config, sleeper)
    critique = await correlator.get_critique(RECORD, VALID_KEY)
    assert critique.content == "Looks good"
    assert len(port.dispatches) == 2


@pytest.mark.asyncio
async def test_timeout_then_retry_succeeds(config, sleeper):
    port = FakePort([None, ok_reply("After timeout")])
    correlator = make_correlator(port, config, sleeper)

    critique = await correlator.get_critique(RECORD, VALID_KEY)

    assert critique.content == "After timeout"
    assert len(port.dispatches) == 2
    assert sleeper.delays == [1.0]


@pytest.mark.asyncio
async def test_late_reply_after_timeout_is_discarded(sleeper):
    config = CritiqueConfig(request_timeout=0.01, retry_attempts=1)
    port = FakePort([None])
    correlator = make_correlator(port, config, sleeper)

    with pytest.raises(CritiqueError) as exc:
        await correlator.get_critique(RECORD, VALID_KEY)
    assert exc.value.kind is ErrorKind.REQUEST_FAILED
    assert exc.value.details["last_error"]["code"] == ErrorCode.API_TIMEOUT

    late = {**ok_reply("Too late"), "correlationId": port.dispatches[0]["correlationId"]}
    assert correlator.handle_reply(late) is False
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_reply_wins_over_timer(sleeper):
    config = CritiqueConfig(request_timeout=0.02)
    port = FakePort([ok_reply("On time")])
    correlator = make_correlator(port, config, sleeper)

    critique = await correlator.get_critique(RECORD, VALID_KEY)
    # Let the first deadline pass; the cancelled timer must not fire
    await asyncio.sleep(0.05)

    assert critique.content == "On time"
    assert len(port.dispatches) == 1


@pytest.mark.asyncio
async def test_out_of_order_replies_match_by_id():
    config = CritiqueConfig(request_timeout=5.0)
    port = FakePort()
    correlator = RequestCorrelator(port, config)

    first = asyncio.create_task(correlator.get_critique(RECORD, VALID_KEY, "first"))
    second = asyncio.create_task(correlator.get_critique(RECORD, VALID_KEY, "second"))
    await wait_for_dispatches(port, 2)
    first_id, second_id = (m["correlationId"] for m in port.dispatches)
    assert correlator.pending_count == 2

    assert correlator.handle_reply({**ok_reply("for second"), "correlationId": second_id})
    assert correlator.handle_reply({**ok_reply("for first"), "correlationId": first_id})

    assert (await first).content == "for first"
    assert (await second).content == "for second"
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_duplicate_reply_is_ignored():
    port = FakePort()
    correlator = RequestCorrelator(port, CritiqueConfig(request_timeout=5.0))

    task = asyncio.create_task(correlator.get_critique(RECORD, VALID_KEY))
    await wait_for_dispatches(port, 1)
    reply = {**ok_reply("once"), "correlationId": port.dispatches[0]["correlationId"]}

    assert correlator.handle_reply(reply) is True
    assert correlator.handle_reply(reply) is False
    assert (await task).content == "once"


def test_unknown_and_malformed_replies():
    correlator = RequestCorrelator(FakePort())
    assert correlator.handle_reply({**ok_reply(), "correlationId": "nope"}) is False
    both = {**ok_reply(), "error": {"message": "x", "code": "y"}, "correlationId": "nope"}
    assert correlator.handle_reply(both) is False
    assert correlator.handle_reply({"type": "api-response"}) is False


@pytest.mark.asyncio
async def test_short_credential_fails_before_dispatch(config):
    port = FakePort([ok_reply()])
    correlator = make_correlator(port, config)

    with pytest.raises(CritiqueError) as exc:
        await correlator.get_critique(RECORD, "short")

    assert exc.value.kind is ErrorKind.VALIDATION
    assert exc.value.code == ErrorCode.INVALID_API_KEY
    assert port.sent == []


@pytest.mark.asyncio
async def test_incomplete_record_fails_before_dispatch(config):
    port = FakePort([ok_reply()])
    correlator = make_correlator(port, config)
    wire = RECORD.to_wire()
    del wire["fonts"]

    with pytest.raises(CritiqueError) as exc:
        await correlator.get_critique(wire, VALID_KEY)

    assert exc.value.kind is ErrorKind.VALIDATION
    assert port.sent == []


@pytest.mark.asyncio
async def test_post_failure_is_retried_then_fails(config, sleeper):
    port = FakePort()
    port.fail_with = ChannelClosedError("closed")
    correlator = make_correlator(port, config, sleeper)

    with pytest.raises(CritiqueError) as exc:
        await correlator.get_critique(RECORD, VALID_KEY)

    assert exc.value.kind is ErrorKind.REQUEST_FAILED
    assert exc.value.details["last_error"]["code"] == ErrorCode.NETWORK_ERROR
    assert sleeper.delays == [1.0, 2.0]
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_cancelled_caller_releases_entry():
    port = FakePort()
    correlator = RequestCorrelator(port, CritiqueConfig(request_timeout=5.0))

    task = asyncio.create_task(correlator.get_critique(RECORD, VALID_KEY))
    await wait_for_dispatches(port, 1)
    assert correlator.pending_count == 1

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_cancel_all():
    port = FakePort()
    correlator = RequestCorrelator(port, CritiqueConfig(request_timeout=5.0))

    tasks = [asyncio.create_task(correlator.get_critique(RECORD, VALID_KEY)) for _ in range(3)]
    await wait_for_dispatches(port, 3)

    assert correlator.cancel_all() == 3
    results = await asyncio.gather(*tasks, return_exceptions=True)
    assert all(isinstance(r, asyncio.CancelledError) for r in results)
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_correlation_ids_come_from_factory(config, sleeper):
    ids = iter(["a1", "a2"])
    port = FakePort([error_reply(500), ok_reply()])
    correlator = RequestCorrelator(port, config, id_factory=lambda: next(ids), sleep=sleeper)
    port.target = correlator.handle_reply

    await correlator.get_critique(RECORD, VALID_KEY)

    assert [m["correlationId"] for m in port.dispatches] == ["a1", "a2"]
