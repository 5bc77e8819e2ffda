"""
Unit tests for the Logfire monitoring module.

This test suite covers:
- Initialization skipped when disabled or without a token
- Initialization with instrumentation, including failing instrumentors
- Logging helpers as no-ops until configured
- Logging helpers forwarding to Logfire once configured
"""

from unittest.mock import patch

import pytest

from agentflow_ai.core import monitoring


@pytest.fixture(autouse=True)
def _reset_configured(monkeypatch):
    monkeypatch.setattr(monitoring, "_configured", False)


class TestInitializeLogfire:
    """Test initialize_logfire."""

    def test_disabled_by_default(self):
        with patch.object(monitoring.logfire, "configure") as configure:
            assert monitoring.initialize_logfire(enabled=False) is False

        configure.assert_not_called()
        assert monitoring.is_logfire_configured() is False

    def test_enabled_without_token_is_skipped(self, monkeypatch):
        monkeypatch.setattr(monitoring.settings, "logfire_token", None)
        with patch.object(monitoring.logfire, "configure") as configure:
            assert monitoring.initialize_logfire(enabled=True) is False

        configure.assert_not_called()

    def test_configures_and_instruments(self):
        with patch.object(monitoring.logfire, "configure") as configure, patch.object(
            monitoring.logfire, "instrument_pydantic_ai"
        ) as pai, patch.object(monitoring.logfire, "instrument_sqlalchemy") as sqla, patch.object(
            monitoring.logfire, "instrument_httpx"
        ) as hx:
            assert monitoring.initialize_logfire(token="tok", service_name="svc", environment="test", enabled=True)

        configure.assert_called_once_with(token="tok", service_name="svc", environment="test")
        pai.assert_called_once()
        sqla.assert_called_once()
        hx.assert_called_once()
        assert monitoring.is_logfire_configured() is True

    def test_failing_instrumentation_does_not_block_initialization(self):
        with patch.object(monitoring.logfire, "configure"), patch.object(
            monitoring.logfire, "instrument_pydantic_ai", side_effect=RuntimeError("missing extra")
        ), patch.object(monitoring.logfire, "instrument_sqlalchemy"), patch.object(
            monitoring.logfire, "instrument_httpx"
        ):
            assert monitoring.initialize_logfire(token="tok", enabled=True) is True

    def test_configure_failure_leaves_logfire_unconfigured(self):
        with patch.object(monitoring.logfire, "configure", side_effect=ValueError("bad token")):
            assert monitoring.initialize_logfire(token="tok", enabled=True) is False


class TestLoggingHelpers:
    """Test the run and tool logging helpers."""

    def test_helpers_are_noops_until_configured(self):
        with patch.object(monitoring.logfire, "info") as info, patch.object(monitoring.logfire, "error") as error:
            monitoring.log_run_started("r1", "u", "graph")
            monitoring.log_run_completed("r1", "succeeded", 3, 12.5)
            monitoring.log_tool_call("r1", "llm", "done", 3, 10, 5)
            monitoring.log_error("ToolExecutionError", "boom")

        info.assert_not_called()
        error.assert_not_called()

    def test_helpers_forward_when_configured(self, monkeypatch):
        monkeypatch.setattr(monitoring, "_configured", True)
        with patch.object(monitoring.logfire, "info") as info, patch.object(monitoring.logfire, "error") as error:
            monitoring.log_run_started("r1", "u", "linear", goal="g")
            monitoring.log_tool_call("r1", "llm", "done", 3, 10, 5)
            monitoring.log_error("ToolExecutionError", "boom", {"run_id": "r1"})

        assert info.call_args_list[0].kwargs == {"run_id": "r1", "user_id": "u", "mode": "linear", "goal": "g"}
        assert info.call_args_list[1].kwargs["tool"] == "llm"
        error.assert_called_once_with("ToolExecutionError: boom", run_id="r1")

    def test_logfire_failures_are_swallowed(self, monkeypatch):
        monkeypatch.setattr(monitoring, "_configured", True)
        with patch.object(monitoring.logfire, "info", side_effect=RuntimeError("exporter down")):
            monitoring.log_run_completed("r1", "failed", 0, 1.0)
