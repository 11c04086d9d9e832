# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging helpers."""

import pytest
import structlog

from src.core.config.settings import Settings
from src.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    mask_student_refs,
    setup_logging,
)


class TestMaskStudentRefs:
    """Tests for the student reference masking processor."""

    def test_masks_student_ref(self) -> None:
        """Test that references are replaced by a digest."""
        event_dict = {"event": "applied", "student_ref": "s-123"}

        result = mask_student_refs(None, "info", event_dict)

        assert result["student_ref"].startswith("sr_")
        assert "s-123" not in result["student_ref"]

    def test_masking_is_stable(self) -> None:
        """Test that one reference always maps to one digest."""
        first = mask_student_refs(None, "info", {"studentRef": "s-123"})
        second = mask_student_refs(None, "info", {"studentRef": "s-123"})

        assert first["studentRef"] == second["studentRef"]

    def test_other_keys_untouched(self) -> None:
        """Test that unrelated keys pass through."""
        event_dict = {"event": "applied", "objective_id": "algebra-1"}

        result = mask_student_refs(None, "info", dict(event_dict))

        assert result == event_dict


class TestSetupLogging:
    """Tests for logging setup."""

    def test_setup_development(self) -> None:
        """Test that development setup configures structlog."""
        setup_logging(Settings(environment="development", log_level="DEBUG"))

        assert structlog.is_configured()

    def test_bind_and_clear_context(self) -> None:
        """Test context variables are bound and cleared."""
        bind_context(batch_id="b1")
        assert structlog.contextvars.get_contextvars()["batch_id"] == "b1"

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_get_logger_masks_student_refs(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that structured log lines never carry raw student references."""
        setup_logging(Settings(environment="staging"))

        get_logger("src.test").info("Event applied", student_ref="s-secret-ref")

        output = capsys.readouterr().out
        assert "Event applied" in output
        assert "s-secret-ref" not in output
        assert "sr_" in output

    def test_get_logger_tags_module_name(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that structured lines name the module that logged them."""
        setup_logging(Settings(environment="staging"))

        get_logger("src.domains.engine.service").info("Batch ingested", accepted=3)

        output = capsys.readouterr().out
        assert '"logger": "src.domains.engine.service"' in output
        assert '"accepted": 3' in output
