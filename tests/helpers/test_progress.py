"""Tests for progress bar utilities."""

from io import StringIO

from rich.console import Console
from rich.progress import Progress

from stakedrop.helpers.progress import create_standard_progress, track_progress


class TestCreateStandardProgress:
    """Tests for create_standard_progress function."""

    def test_creates_progress_instance(self) -> None:
        """Test that function creates Progress instance."""
        assert isinstance(create_standard_progress(), Progress)

    def test_uses_provided_console(self) -> None:
        """Test that function uses provided console."""
        console = Console()
        progress = create_standard_progress(console=console)
        assert progress.console == console

    def test_has_time_columns(self) -> None:
        """Test that elapsed and remaining time are shown."""
        column_types = [type(col).__name__ for col in create_standard_progress().columns]

        assert "TimeElapsedColumn" in column_types
        assert "TimeRemainingColumn" in column_types


class TestTrackProgress:
    """Tests for track_progress context manager."""

    def test_yields_task_with_total(self) -> None:
        """Test the task is created with the given total and can advance."""
        console = Console(file=StringIO(), force_terminal=False)

        with track_progress("Fetching logs", total=3, console=console) as (progress, task):
            progress.update(task, advance=2)
            state = progress.tasks[0]

            assert state.total == 3
            assert state.completed == 2
            assert state.description == "Fetching logs"

    def test_stops_on_exit(self) -> None:
        """Test the live display is stopped when the block ends."""
        console = Console(file=StringIO(), force_terminal=False)

        with track_progress("Work", total=1, console=console) as (progress, _task):
            pass

        assert progress.live.is_started is False
