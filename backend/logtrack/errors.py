from typing import Optional

class LogAnalysisError(Exception):
    """Base class for failures surfaced to the caller of analyze()"""

    def to_dict(self) -> dict:
        return {"error": str(self)}

class InputEmpty(LogAnalysisError):
    def __init__(self):
        super().__init__("Log content is empty")

class NoParseableLines(LogAnalysisError):
    """
    Raised when no line of the input produced a canonical event.
    Carries enough context to diagnose a format mismatch.
    """

    def __init__(self, detected_format: str, total_lines: int, skipped_lines: int, message: Optional[str] = None):
        self.detected_format = detected_format
        self.total_lines = total_lines
        self.skipped_lines = skipped_lines

        if message is None:
            if total_lines == 0:
                message = (
                    f"No log entries found: input contains no data lines "
                    f"(detected format: {detected_format})"
                )
            else:
                message = (
                    f"No valid log entries found: none of {total_lines} lines matched "
                    f"the '{detected_format}' format ({skipped_lines} skipped). "
                    f"Please check the log format."
                )
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "detected_format": self.detected_format,
            "total_lines": self.total_lines,
            "skipped_lines": self.skipped_lines,
        }

class UnsupportedFormat(LogAnalysisError):
    """Raised for a format hint that names no known log format"""

    def __init__(self, format_hint):
        self.format_hint = format_hint
        super().__init__(f"Unsupported log format: {format_hint!r}")

    def to_dict(self) -> dict:
        return {"error": str(self), "format_hint": str(self.format_hint)}
