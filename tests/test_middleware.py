import logging
from unittest.mock import AsyncMock

import pytest

from arkwallet.core.envelope import NOT_INITIALIZED_TEXT, text_response
from arkwallet.core.middleware import LoggingMiddleware, WalletGateMiddleware
from arkwallet.core.tools import Tool, ToolRegistry, ToolSpec
from arkwallet.core.validation import NoParams
from arkwallet.wallet.state import Network, WalletStateStore


@pytest.fixture
def state_store(tmp_path, clock):
    return WalletStateStore.in_dir(tmp_path, clock=clock)


class TestWalletGateMiddleware:
    async def test_blocks_when_uninitialized(self, state_store):
        call_next = AsyncMock()
        gate = WalletGateMiddleware(state_store)

        result = await gate.wrap("get_balance", call_next)(NoParams(), None)

        call_next.assert_not_called()
        assert result.is_error is True
        assert result.text() == NOT_INITIALIZED_TEXT
        assert [t.name for t in result.suggested_tools] == ["setup_wallet"]
        assert [r.uri for r in result.suggested_resources] == ["bitcoin://wallet/status"]

    async def test_passes_through_when_ready(self, state_store):
        state_store.mark_initialized(Network.MUTINYNET)
        call_next = AsyncMock(return_value=text_response("ok"))
        gate = WalletGateMiddleware(state_store)

        result = await gate.wrap("get_balance", call_next)(NoParams(), None)

        call_next.assert_awaited_once()
        assert result.text() == "ok"

    async def test_reads_state_on_every_call(self, state_store):
        gate = WalletGateMiddleware(state_store)
        assert gate.is_ready() is False

        state_store.mark_initialized(Network.SIGNET)
        assert gate.is_ready() is True

    async def test_gate_never_changes_state(self, state_store):
        gate = WalletGateMiddleware(state_store)

        await gate.wrap("send_bitcoin", AsyncMock())(NoParams(), None)

        assert not state_store.path.exists()

    async def test_not_initialized_envelope_is_fresh_per_call(self, state_store):
        gate = WalletGateMiddleware(state_store)
        call = gate.wrap("get_address", AsyncMock())

        first = await call(NoParams(), None)
        second = await call(NoParams(), None)

        assert first == second
        assert first is not second

    async def test_gated_dispatch_while_uninitialized(self, state_store):
        handler = AsyncMock()
        registry = ToolRegistry(wallet_gate=WalletGateMiddleware(state_store))
        registry.register(Tool(spec=ToolSpec(name="get_balance", description="x"), handler=handler))

        wire = await registry.call("get_balance", {})

        handler.assert_not_called()
        assert wire == {
            "content": [{"type": "text", "text": NOT_INITIALIZED_TEXT}],
            "suggestedTools": [
                {"name": "setup_wallet", "description": "Create or restore a Bitcoin wallet"}
            ],
            "suggestedResources": [
                {"uri": "bitcoin://wallet/status", "description": "Check wallet status"}
            ],
            "isError": True,
        }


class TestLoggingMiddleware:
    async def test_logs_start_and_finish(self, caplog):
        mw = LoggingMiddleware(include_args=True)
        call = mw.wrap("echo", AsyncMock(return_value=text_response("ok")))

        with caplog.at_level(logging.DEBUG, logger="arkwallet.core.middleware"):
            result = await call(NoParams(), None)

        assert result.text() == "ok"
        messages = [r.getMessage() for r in caplog.records]
        assert any("Tool echo start" in m for m in messages)
        assert any("Tool echo ok in" in m for m in messages)

    async def test_logs_and_reraises_errors(self, caplog):
        mw = LoggingMiddleware()
        call = mw.wrap("echo", AsyncMock(side_effect=RuntimeError("boom")))

        with caplog.at_level(logging.DEBUG, logger="arkwallet.core.middleware"):
            with pytest.raises(RuntimeError):
                await call(NoParams(), None)

        assert any("Tool echo failed" in r.getMessage() for r in caplog.records)

    async def test_only_and_exclude_skip_logging(self, caplog):
        call_next = AsyncMock(return_value=text_response("ok"))
        skipped = [
            LoggingMiddleware(only={"other"}).wrap("echo", call_next),
            LoggingMiddleware(exclude={"echo"}).wrap("echo", call_next),
        ]

        with caplog.at_level(logging.DEBUG, logger="arkwallet.core.middleware"):
            for call in skipped:
                await call(NoParams(), None)

        assert call_next.await_count == 2
        assert not caplog.records
