"""Report generation for the Definition of Done gate."""

from typing import Dict, Optional, Type

from .base_reporter import BaseReporter, ReportData
from .json_reporter import JSONReporter
from .markdown_reporter import MarkdownReporter

REPORTERS: Dict[str, Type[BaseReporter]] = {
    "json": JSONReporter,
    "markdown": MarkdownReporter,
}


def get_reporter(format_name: str, output_dir: Optional[str] = None) -> BaseReporter:
    """Create a reporter for a format name.

    Raises:
        ValueError: If the format is not supported
    """
    try:
        reporter_class = REPORTERS[format_name]
    except KeyError:
        raise ValueError(
            f"Unsupported report format: {format_name} (available: {', '.join(sorted(REPORTERS))})"
        ) from None
    return reporter_class(output_dir)


__all__ = [
    "BaseReporter",
    "ReportData",
    "JSONReporter",
    "MarkdownReporter",
    "REPORTERS",
    "get_reporter",
]
