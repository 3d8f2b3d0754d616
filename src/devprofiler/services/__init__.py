"""Profiling pipeline services."""

from .anonymizer import anonymize_filename, anonymize_path, hash_identifier
from .diff_summarizer import DiffSummarizer
from .history_walker import HistoryWalker
from .language_mapper import LanguageMapper
from .stream_exporter import StreamExporter

__all__ = [
    "anonymize_filename",
    "anonymize_path",
    "hash_identifier",
    "DiffSummarizer",
    "HistoryWalker",
    "LanguageMapper",
    "StreamExporter",
]
