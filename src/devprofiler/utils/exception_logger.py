"""Centralized exception logger for devprofiler.

Writes one JSON entry per logged exception, with the stack trace and any
command context, to a timestamped file so that a failed export can be
diagnosed after the process has exited.
"""

import json
import os
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


class ExceptionLogger:
    """Process-wide exception log.

    The log lives in ``<base_dir>/.devprofiler/error_<timestamp>_<pid>.log``.
    The file is created lazily on the first logged exception so a clean run
    leaves nothing behind.
    """

    _instance: Optional["ExceptionLogger"] = None
    LOG_DIR_NAME = ".devprofiler"

    def __init__(self, log_file_path: Path):
        """Initialize exception logger with specific log file path.

        Args:
            log_file_path: Path to the log file for writing exceptions
        """
        self.log_file_path = log_file_path
        self._lock = threading.Lock()

    @classmethod
    def initialize(cls, base_dir: Path) -> "ExceptionLogger":
        """Initialize the global exception logger (idempotent singleton).

        Tests that need a fresh instance should call ``reset()`` first.

        Args:
            base_dir: Directory under which the ``.devprofiler`` log dir lives

        Returns:
            Initialized ExceptionLogger instance (singleton)
        """
        if cls._instance is not None:
            return cls._instance

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        pid = os.getpid()
        log_file_path = base_dir / cls.LOG_DIR_NAME / f"error_{timestamp}_{pid}.log"

        cls._instance = cls(log_file_path)
        return cls._instance

    @classmethod
    def get_instance(cls) -> Optional["ExceptionLogger"]:
        """Get the current exception logger instance, if any."""
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton instance."""
        cls._instance = None

    def log_exception(
        self,
        exception: BaseException,
        thread_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an exception with full context.

        Args:
            exception: The exception to log
            thread_name: Name of the thread where exception occurred (optional)
            context: Additional context data to include in log (optional)
        """
        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "thread": thread_name or threading.current_thread().name,
            "exception_type": type(exception).__name__,
            "exception_message": str(exception),
            "stack_trace": "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            ),
            "context": context or {},
        }

        with self._lock:
            self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file_path, "a") as f:
                f.write(json.dumps(log_entry, indent=2, default=str))
                f.write("\n---\n")

    def install_thread_exception_hook(self) -> None:
        """Capture uncaught exceptions raised in diff worker threads."""

        def global_thread_exception_handler(args):
            self.log_exception(
                exception=args.exc_value,
                thread_name=args.thread.name if args.thread else None,
                context={
                    "exc_type": args.exc_type.__name__,
                    "thread_identifier": args.thread.ident if args.thread else None,
                },
            )

        threading.excepthook = global_thread_exception_handler
