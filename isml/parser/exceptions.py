"""
Exceptions raised by the ISML parser.

Syntax problems inside a template are never raised while parsing; they are
collected as diagnostics on the Document. These exceptions cover caller
contract violations and callers that choose to fail fast.
"""


class ISMLError(Exception):
    """Base error for the ISML parser."""

    def __init__(self, message: str, source_name: str = None):
        self.message = message
        self.source_name = source_name
        super().__init__(self.message)

    def __str__(self):
        if self.source_name:
            return f"[{self.source_name}] {self.message}"
        return self.message


class InvalidSourceError(ISMLError):
    """The template source is missing or not text."""
    pass


class ISMLSyntaxError(ISMLError):
    """Raised by Document.raise_for_errors() when a template is invalid."""

    def __init__(self, diagnostics: list, source_name: str = None):
        self.diagnostics = diagnostics
        details = '\n'.join(str(d) for d in diagnostics)
        message = f"{len(diagnostics)} problem(s) in template"
        if details:
            message = f"{message}:\n{details}"
        super().__init__(message, source_name)
