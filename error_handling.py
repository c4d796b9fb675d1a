"""
Error reporting for UPL
Parse errors are collected as values and rendered here; runtime mistakes
never reach this module because they travel as Error objects
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class ParseError:
    """A single structural error found while parsing"""
    message: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return self.message


def format_parse_errors(errors: Sequence[ParseError]) -> str:
    """Render a list of parse errors as one aggregate report"""
    noun = "error" if len(errors) == 1 else "errors"
    lines = [f"{len(errors)} {noun} occurred:"]
    for error in errors:
        lines.append(f"\t* {error.message}")
    return '\n'.join(lines)


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 1) -> str:
    """Get source lines around an error with a caret under the offending column"""
    lines = source_text.split('\n')
    if not 1 <= line_num <= len(lines):
        return ""

    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        context_parts.append(f"{i + 1:4d}: {lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * max(col_num - 1, 0)}^")

    return '\n'.join(context_parts)


def describe_parse_error(error: ParseError, source_text: str, filename: str = "<input>") -> str:
    """Format a parse error with its location and the surrounding source"""
    if not error.line:
        return f"{filename}: {error.message}"

    result = f"{filename}:{error.line}:{error.column}: {error.message}"
    context = get_context_lines(source_text, error.line, error.column)
    if context:
        result += f"\n{context}"
    return result


# ============================================================================
# EXCEPTIONS
# ============================================================================

class UPLParseError(Exception):
    """Raised by file-level entry points when a source cannot be parsed"""

    def __init__(self, message: str, errors: Optional[List[ParseError]] = None,
                 filename: str = "<input>", source_text: str = ""):
        self.message = message
        self.errors = list(errors or [])
        self.filename = filename
        self.source_text = source_text
        super().__init__(message)

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        if self.source_text:
            handler = UPLErrorHandler(self.source_text, self.filename)
            return f"{self.message}\n{handler.describe_all(self.errors)}"
        return f"{self.message}\n{format_parse_errors(self.errors)}"


class UPLRuntimeError(Exception):
    """Host-level fault in the interpreter itself, not in the interpreted program"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UPLErrorHandler:
    """Binds a source text so its parse errors can be described with context"""

    def __init__(self, source_text: str, filename: str = "<input>"):
        self.source_text = source_text
        self.filename = filename

    def describe(self, error: ParseError) -> str:
        return describe_parse_error(error, self.source_text, self.filename)

    def describe_all(self, errors: Sequence[ParseError]) -> str:
        parts = [format_parse_errors(errors)]
        parts.extend(self.describe(error) for error in errors)
        return '\n'.join(parts)
