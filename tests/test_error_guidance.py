"""Tests for error guidance and exit codes."""

import io

import pytest
from rich.console import Console

from project_upgrader.display import display_error
from project_upgrader.error_guidance import GuidanceProvider, exit_code_for
from project_upgrader.errors import (
    AmbiguousTargetError,
    CleanupError,
    ConfigPersistError,
    CopyError,
    DuplicateStateConflict,
    NoSourcesFoundError,
    PreconditionError,
    ResyncError,
    StateCopyAlreadyCompleted,
    StoreIOError,
    StoreUnavailable,
    UpgradeError,
)


class TestExitCodes:
    """Tests for exit_code_for."""

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (PreconditionError("x"), 2),
            (NoSourcesFoundError("x"), 2),
            (StateCopyAlreadyCompleted("x"), 2),
            (AmbiguousTargetError("x"), 2),
            (ResyncError("x"), 3),
            (StoreUnavailable("x"), 1),
            (StoreIOError("x"), 1),
            (CopyError("x"), 1),
            (ConfigPersistError("x"), 1),
        ],
    )
    def test_exit_code(self, error: UpgradeError, code: int) -> None:
        assert exit_code_for(error) == code


class TestGuidance:
    """Tests for GuidanceProvider.for_error."""

    def test_resync_points_to_resync_command(self) -> None:
        guidance = GuidanceProvider.for_error(ResyncError("boom"))

        assert guidance is not None
        assert guidance.examples == ["project-upgrader resync"]

    def test_filesystem_errors_include_message(self) -> None:
        guidance = GuidanceProvider.for_error(CleanupError("removing original /x: denied"))

        assert guidance is not None
        assert "removing original /x: denied" in guidance.checks

    def test_duplicate_state(self) -> None:
        guidance = GuidanceProvider.for_error(DuplicateStateConflict("2 records"))

        assert guidance is not None
        assert guidance.checks[0] == "2 records"

    def test_generic_precondition_has_no_guidance(self) -> None:
        assert GuidanceProvider.for_error(PreconditionError("x")) is None


class TestErrorMessages:
    """Tests for step tagging and error display."""

    def test_step_prefix(self) -> None:
        error = CopyError("moving a to b").with_step("reorganize")

        assert str(error) == "reorganize: moving a to b"
        assert error.message == "moving a to b"

    def test_step_not_overwritten(self) -> None:
        error = ResyncError("x", step="metadata-resync").with_step("config-rewrite")

        assert error.step == "metadata-resync"

    def test_display_error(self) -> None:
        output = io.StringIO()

        display_error(ResyncError("export failed", step="metadata-resync"), Console(file=output, width=120))

        text = output.getvalue()
        assert "Error: metadata-resync: export failed" in text
        assert "Suggestion" in text
