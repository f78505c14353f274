"""Core functionality for mediaprint.

This package exposes the scan pipeline: classification of discovered files,
filename parsing, title resolution and the orchestrator tying them together.
"""

from mediaprint.core.classifier import CLASSIFIER_RULES, classify, classify_file
from mediaprint.core.filename import ParsedName, parse_filename
from mediaprint.core.orchestrator import ScanOrchestrator
from mediaprint.core.progress import ProgressTracker, weighted_progress
from mediaprint.core.title_resolver import TitleResolver

__all__ = [
    "CLASSIFIER_RULES",
    "ParsedName",
    "ProgressTracker",
    "ScanOrchestrator",
    "TitleResolver",
    "classify",
    "classify_file",
    "parse_filename",
    "weighted_progress",
]
