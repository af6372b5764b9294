"""
Error reporting for the SLIM front-end
Structured parse-error records, source context rendering and the exception
types raised by the tokenizer and the parser
"""

from typing import Dict, List, Optional


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    line: int,
    column: int,
    got: Optional[str] = None,
    context: Optional[str] = None,
    filename: str = "<input>"
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'line': line,
        'column': column,
        'got': got,
        'context': context,
        'filename': filename
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as a single diagnostic line"""
    where = "at end" if error['got'] is None else f"at '{error['got']}'"
    return f"[line {error['line']}, col {error['column']}] Error {where}: {error['message']}"


def format_parse_error_with_context(error: Dict) -> str:
    """Format parse error followed by the source lines around it"""
    error_msg = format_parse_error(error)
    if error['context']:
        error_msg += "\n" + error['context']
    return error_msg


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:  # Error line
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")

    return '\n'.join(context_parts)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class SlimTokenizerError(Exception):
    """Lexical error: a character or literal no token rule accepts"""

    def __init__(self, message: str, span=None):
        self.message = message
        self.span = span
        super().__init__(f"Lexical error at {span}: {message}" if span else f"Lexical error: {message}")


class SlimParseError(Exception):
    """One syntax fault, tied to the token where it was detected"""

    def __init__(self, token, message: str):
        self.token = token
        self.message = message
        super().__init__(message)

    @property
    def line(self) -> int:
        return self.token.span.start_line

    @property
    def column(self) -> int:
        return self.token.span.start_col

    def to_dict(self, source_text: Optional[str] = None) -> Dict:
        context = None
        if source_text is not None:
            context = get_context_lines(source_text, self.line, self.column)
        return make_parse_error(
            message=self.message,
            line=self.line,
            column=self.column,
            got=None if self.token.is_eof else self.token.lexeme,
            context=context,
            filename=self.token.span.filename
        )

    def __str__(self) -> str:
        return format_parse_error(self.to_dict())


class SlimSyntaxError(Exception):
    """Every parse error recorded for one source text"""

    def __init__(self, errors: List[SlimParseError], source_text: Optional[str] = None):
        self.errors = list(errors)
        self.source_text = source_text
        super().__init__(f"{len(self.errors)} syntax error(s)")

    def format_errors(self, with_context: bool = False) -> List[str]:
        if with_context:
            return [format_parse_error_with_context(e.to_dict(self.source_text))
                    for e in self.errors]
        return [format_parse_error(e.to_dict()) for e in self.errors]

    def __str__(self) -> str:
        return "\n".join(self.format_errors())
