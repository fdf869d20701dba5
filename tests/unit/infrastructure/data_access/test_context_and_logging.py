"""Unit tests for call contexts and structured log output."""

import logging

import pytest

from dalkit.infrastructure.data_access.context import OperationContext
from dalkit.infrastructure.structured_logger import StructuredLogger


class TestOperationContext:

    def test_defaults(self):
        ctx = OperationContext()
        assert ctx.request_id is None
        assert ctx.timeout is None
        assert ctx.log_fields() == {}

    def test_background_has_request_id(self):
        first = OperationContext.background()
        second = OperationContext.background()
        assert first.request_id
        assert first.request_id != second.request_id

    def test_derived_contexts_leave_original_untouched(self):
        ctx = OperationContext(request_id="r1")

        bounded = ctx.with_timeout(0.5)
        tagged = ctx.with_fields(tenant="acme").with_fields(user=7)

        assert ctx.timeout is None
        assert bounded.timeout == 0.5
        assert tagged.log_fields() == {"tenant": "acme", "user": 7, "request_id": "r1"}
        assert ctx.log_fields() == {"request_id": "r1"}

    def test_fields_are_read_only(self):
        ctx = OperationContext().with_fields(tenant="acme")
        with pytest.raises(TypeError):
            ctx.fields["tenant"] = "other"


class TestStructuredLogger:

    def test_renders_step_message_and_fields(self, caplog):
        caplog.set_level(logging.DEBUG, logger="dalkit.database")
        ctx = OperationContext(request_id="r2").with_fields(tenant="acme")

        StructuredLogger().warning(ctx, "counting records", "Slow database operation", elapsed_ms=250.0)

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == (
            "[counting records] Slow database operation tenant=acme request_id=r2 elapsed_ms=250.0"
        )
        assert record.step == "counting records"
        assert record.request_id == "r2"
        assert record.fields["elapsed_ms"] == 250.0

    def test_without_context(self, caplog):
        caplog.set_level(logging.DEBUG, logger="dalkit.database")

        StructuredLogger().info(None, "transaction", "Started")

        record = caplog.records[-1]
        assert record.getMessage() == "[transaction] Started"
        assert record.request_id is None

    def test_disabled_level_is_skipped(self, caplog):
        caplog.set_level(logging.ERROR, logger="dalkit.database")

        StructuredLogger().debug(None, "transaction", "Started")

        assert caplog.records == []

    def test_custom_logger(self, caplog):
        custom = logging.getLogger("app.repository")
        caplog.set_level(logging.INFO, logger="app.repository")

        adapter = StructuredLogger(custom)
        adapter.error(None, "creating record", "Failed", error="boom")

        assert adapter.logger is custom
        assert caplog.records[-1].name == "app.repository"
