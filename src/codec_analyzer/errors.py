"""
Analyzer Errors
===============

Exception hierarchy for the codec analyzer.

None of these are raised from the analyzer's event entry points. They are
raised by frame constructors, reference sources and direct executor use,
and are caught and logged where they cross into the analyzer.
"""


class AnalyzerError(Exception):
    """Base class for all codec analyzer errors."""
    pass


class FrameFormatError(AnalyzerError):
    """Raised when frame planes do not describe a valid I420 picture."""
    pass


class ReferenceUnavailableError(AnalyzerError):
    """Raised by a reference source that cannot supply a frame."""
    pass


class ExecutorClosedError(AnalyzerError):
    """Raised when work is submitted to a closed executor."""
    pass
