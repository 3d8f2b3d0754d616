"""
Streaming gzip export of profile records.

The output is newline-delimited JSON compressed with gzip: the run metadata
line, the error log line, then one line per exported commit in walk order.

The error log must precede the commits but is only complete once the walk
has finished, so commit lines are compressed as they arrive into an
anonymous spool file next to the output. Finalizing writes a gzip member
holding the metadata and error log lines to the output file and appends the
spool, which is itself a complete gzip member. gzip readers concatenate
members transparently, so consumers see a single line stream. Memory use
does not grow with the size of the history.
"""

import gzip
import logging
import shutil
import tempfile
from pathlib import Path
from typing import IO, Iterable, List, Optional

from ..errors import OutputSinkError
from ..models import CommitRecord, ErrorLog, RunMetadata, to_json_line

logger = logging.getLogger(__name__)

COMPRESSION_LEVEL = 6


def _gzip_writer(fileobj: IO[bytes]) -> gzip.GzipFile:
    # Fixed mtime and no embedded file name keep reruns byte-identical
    return gzip.GzipFile(
        filename="",
        mode="wb",
        compresslevel=COMPRESSION_LEVEL,
        fileobj=fileobj,
        mtime=0,
    )


class StreamExporter:
    """Owns the compressed output sink for one run.

    Use as a context manager. Leaving the block finalizes the output even
    when the walk raised, so an aborted run leaves a readable file with an
    incomplete commit sequence.
    """

    def __init__(self, output_path: Path, metadata: RunMetadata):
        self.output_path = Path(output_path)
        self.metadata = metadata
        self.errors: List[str] = []
        self.commits_written = 0

        self._output: Optional[IO[bytes]] = None
        self._spool: Optional[IO[bytes]] = None
        self._spool_gzip: Optional[gzip.GzipFile] = None
        self._finalized = False

    def open(self) -> None:
        """Create the output file and the commit spool.

        Raises:
            OutputSinkError: If either file cannot be created
        """
        try:
            self._output = open(self.output_path, "wb")
        except OSError as e:
            raise OutputSinkError(
                f"Cannot create output file {self.output_path}", e.strerror
            )

        try:
            self._spool = tempfile.TemporaryFile(
                dir=self.output_path.resolve().parent, prefix=".devprofiler-spool-"
            )
        except OSError as e:
            self._output.close()
            self.output_path.unlink(missing_ok=True)
            raise OutputSinkError(
                f"Cannot create spool file next to {self.output_path}", e.strerror
            )

        self._spool_gzip = _gzip_writer(self._spool)
        logger.debug(f"Opened output {self.output_path}")

    def __enter__(self) -> "StreamExporter":
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        if exc_type is None:
            self.finalize()
            return False

        try:
            self.finalize()
            logger.warning(
                f"Export aborted after {self.commits_written} commits; "
                f"{self.output_path} is incomplete"
            )
        except OutputSinkError as e:
            logger.error(f"Failed to finalize {self.output_path}: {e}")
        return False

    def add_errors(self, errors: Iterable[str]) -> None:
        """Queue recoverable error messages for the error log line."""
        self.errors.extend(errors)

    def write_commit(self, record: CommitRecord) -> None:
        """Compress one commit record into the spool.

        Raises:
            OutputSinkError: If the exporter is not open or the write fails
        """
        if self._spool_gzip is None or self._finalized:
            raise OutputSinkError("Exporter is not open")
        try:
            self._spool_gzip.write(to_json_line(record).encode("utf-8"))
        except OSError as e:
            raise OutputSinkError("Failed to write commit record", e.strerror)
        self.commits_written += 1

    def finalize(self) -> Path:
        """Write metadata and error log, append the commits and close everything.

        Returns:
            The output path

        Raises:
            OutputSinkError: If writing the output fails
        """
        if self._finalized:
            return self.output_path
        if self._output is None or self._spool is None or self._spool_gzip is None:
            raise OutputSinkError("Exporter is not open")

        self._finalized = True
        try:
            self._spool_gzip.close()

            header = _gzip_writer(self._output)
            header.write(to_json_line(self.metadata).encode("utf-8"))
            header.write(to_json_line(ErrorLog(errors=self.errors)).encode("utf-8"))
            header.close()

            if self.commits_written:
                self._spool.seek(0)
                shutil.copyfileobj(self._spool, self._output)

            self._output.flush()
        except OSError as e:
            raise OutputSinkError(f"Failed to write {self.output_path}", e.strerror)
        finally:
            self._output.close()
            self._spool.close()

        logger.info(
            f"Wrote {self.commits_written} commit records and "
            f"{len(self.errors)} errors to {self.output_path}"
        )
        return self.output_path
