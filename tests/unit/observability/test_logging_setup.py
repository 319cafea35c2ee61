"""Tests for structured logging."""

import json
from io import StringIO

import structlog
from structlog.testing import capture_logs

from upshift.observability.logging import (
    SecretRedactor,
    bound_plan_context,
    get_logger,
    setup_logging,
)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_json_format(self) -> None:
        """Should configure JSON format for production."""
        setup_logging(level="INFO", format="json", redact_secrets=False)
        # Should not raise
        get_logger("test").info("test_message")

    def test_setup_console_format(self) -> None:
        """Should configure console format for development."""
        setup_logging(level="DEBUG", format="console")
        get_logger("test").debug("test_message")

    def test_events_keep_fields(self) -> None:
        setup_logging(level="INFO", format="json")

        with capture_logs() as logs:
            get_logger("test").info("upgrade_step_completed", step_id="backup")

        assert logs == [
            {"event": "upgrade_step_completed", "step_id": "backup", "log_level": "info"}
        ]


class TestPlanContext:
    """Tests for bound_plan_context."""

    def test_binds_and_unbinds_plan_id(self) -> None:
        with bound_plan_context("upgrade-v2-to-v3-1-abcdef"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["plan_id"] == "upgrade-v2-to-v3-1-abcdef"

        assert "plan_id" not in structlog.contextvars.get_contextvars()

    def test_plan_id_in_rendered_output(self) -> None:
        """Bound plan_id is merged into JSON events."""
        output = StringIO()
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                SecretRedactor(),
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(0),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(output),
            cache_logger_on_first_use=False,
        )

        logger = structlog.get_logger("test")
        with bound_plan_context("upgrade-v2-to-v3-1-abcdef"):
            logger.info("upgrade_step_failed", target="mysql://root:pw@db/app")

        parsed = json.loads(output.getvalue().strip())
        assert parsed["plan_id"] == "upgrade-v2-to-v3-1-abcdef"
        assert parsed["target"] == "mysql://[REDACTED]@db/app"


class TestSecretRedactor:
    """Tests for SecretRedactor processor."""

    def _redact(self, **event: object) -> dict[str, object]:
        return dict(SecretRedactor()(None, "info", dict(event)))

    def test_sensitive_keys(self) -> None:
        redacted = self._redact(event="x", password="p", API_KEY="k", step_id="backup")

        assert redacted["password"] == "[REDACTED]"
        assert redacted["API_KEY"] == "[REDACTED]"
        assert redacted["step_id"] == "backup"

    def test_url_credentials(self) -> None:
        redacted = self._redact(event="x", target="postgres://admin:s3cret@db:5432/app")

        assert redacted["target"] == "postgres://[REDACTED]@db:5432/app"

    def test_bearer_tokens(self) -> None:
        redacted = self._redact(event="x", header="Bearer abc.def.ghi")

        assert redacted["header"] == "Bearer [REDACTED]"

    def test_nested_values(self) -> None:
        redacted = self._redact(
            event="x",
            data={"dsn": "postgres://u:p@h/db", "rows": 3},
            warnings=["retry with https://u:p@mirror/pkg"],
        )

        assert redacted["data"] == {"dsn": "[REDACTED]", "rows": 3}
        assert redacted["warnings"] == ["retry with https://[REDACTED]@mirror/pkg"]

    def test_preserves_plain_events(self) -> None:
        event = {"event": "upgrade_plan_completed", "completed_steps": ["a", "b"], "count": 2}

        assert self._redact(**event) == event
