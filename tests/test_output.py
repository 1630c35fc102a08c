"""Tests for OutputSink."""

from __future__ import annotations

import io
import os
import threading
from pathlib import Path

from rmlinks.output import OutputSink


def _sink() -> tuple[OutputSink, io.StringIO, io.StringIO]:
    out = io.StringIO()
    err = io.StringIO()
    return OutputSink(out, err), out, err


class TestOutputSink:
    """Tests for line formatting and stream routing."""

    def test_unlinked_line(self) -> None:
        sink, out, err = _sink()
        sink.unlinked(Path("/d/sub/b"))

        assert out.getvalue() == "Unlinked /d/sub/b\n"
        assert err.getvalue() == ""
        assert sink.removed == 1

    def test_symlink_line(self) -> None:
        sink, out, _ = _sink()
        sink.removed_symlink(Path("/d/link"))

        assert out.getvalue() == "Removed symbolic link /d/link\n"

    def test_summary_line(self) -> None:
        sink, out, _ = _sink()
        sink.summary(1, 2)

        assert out.getvalue() == "Successfully removed 1 of 2 links\n"

    def test_failure_uses_strerror(self) -> None:
        """Test that failures are reported with the OS error text on stderr."""
        sink, out, err = _sink()
        sink.failure("failed to unlink", Path("/d/b"), PermissionError(13, "Permission denied"))

        assert out.getvalue() == ""
        assert err.getvalue() == "rmlinks: failed to unlink /d/b (Permission denied).\n"
        assert sink.errors == 1

    def test_paths_printed_verbatim(self) -> None:
        """Test that markup-like and emoji-like path text is not interpreted."""
        sink, out, _ = _sink()
        path = Path("/d/[bold]x[/bold] :smile: " + "y" * 200)
        sink.unlinked(path)

        assert out.getvalue() == f"Unlinked {path}\n"

    def test_control_characters_kept(self) -> None:
        """Test that tabs and carriage returns in names reach the stream unchanged."""
        sink, out, _ = _sink()
        sink.unlinked(Path("/d/x\ty\rz"))

        assert out.getvalue() == "Unlinked /d/x\ty\rz\n"

    def test_undecodable_name_written_as_raw_bytes(self) -> None:
        """Test that a name with invalid UTF-8 is written as its original bytes."""
        out = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
        err = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
        sink = OutputSink(out, err)
        path = Path(os.fsdecode(b"/d/bad\xff"))

        sink.unlinked(path)
        sink.failure("failed to unlink", path, PermissionError(13, "Permission denied"))

        assert out.buffer.getvalue() == b"Unlinked /d/bad\xff\n"
        assert err.buffer.getvalue() == b"rmlinks: failed to unlink /d/bad\xff (Permission denied).\n"

    def test_concurrent_lines_do_not_interleave(self) -> None:
        """Test that lines written from many threads stay whole."""
        sink, out, _ = _sink()

        def write(n: int) -> None:
            for i in range(50):
                sink.unlinked(Path(f"/tree/{n}/{i}"))

        threads = [threading.Thread(target=write, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        lines = out.getvalue().splitlines()
        assert len(lines) == 400
        assert all(line.startswith("Unlinked /tree/") for line in lines)
        assert sink.removed == 400
