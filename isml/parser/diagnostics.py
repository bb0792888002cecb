"""
Diagnostics for ISML parsing.

Recoverable problems are recorded as data instead of being raised, so a
single parse always yields a complete tree plus everything that is wrong
with it.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from isml.parser.source import SourceSpan

logger = logging.getLogger(__name__)


class Severity(Enum):
    ERROR = 'error'
    WARNING = 'warning'


class DiagnosticCode(Enum):
    """Stable identifiers, usable in suppression rules and tests."""
    UNTERMINATED_TAG = 'unterminated-tag'
    UNTERMINATED_EXPRESSION = 'unterminated-expression'
    UNTERMINATED_COMMENT = 'unterminated-comment'
    UNEXPECTED_CLOSING_TAG = 'unexpected-closing-tag'
    MISMATCHED_NESTING = 'mismatched-nesting'
    UNTERMINATED_ELEMENT = 'unterminated-element'
    MALFORMED_ATTRIBUTE = 'malformed-attribute'
    MALFORMED_CLOSING_TAG = 'malformed-closing-tag'


DEFAULT_SEVERITIES = {
    DiagnosticCode.UNTERMINATED_TAG: Severity.ERROR,
    DiagnosticCode.UNTERMINATED_EXPRESSION: Severity.ERROR,
    DiagnosticCode.UNTERMINATED_COMMENT: Severity.ERROR,
    DiagnosticCode.UNEXPECTED_CLOSING_TAG: Severity.ERROR,
    DiagnosticCode.MISMATCHED_NESTING: Severity.ERROR,
    DiagnosticCode.UNTERMINATED_ELEMENT: Severity.ERROR,
    DiagnosticCode.MALFORMED_ATTRIBUTE: Severity.ERROR,
    DiagnosticCode.MALFORMED_CLOSING_TAG: Severity.WARNING,
}


@dataclass(frozen=True)
class Diagnostic:
    """A syntax problem anchored at a source span."""
    severity: Severity
    message: str
    span: SourceSpan
    code: DiagnosticCode
    source_name: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> Dict:
        return {
            'severity': self.severity.value,
            'code': self.code.value,
            'message': self.message,
            'line': self.span.start_line,
            'column': self.span.start_column,
            'span': self.span.to_dict(),
        }

    def __str__(self):
        location = f"{self.span.start_line}:{self.span.start_column}"
        if self.source_name:
            location = f"{self.source_name}:{location}"
        return f"{location}: {self.severity.value}: {self.message} [{self.code.value}]"


class DiagnosticsCollector:
    """
    Accumulates diagnostics during one parse.

    Recording never interrupts the parse. freeze() hands out the final,
    position-ordered tuple; nothing can be added afterwards.
    """

    def __init__(self, source_name: Optional[str] = None):
        self.source_name = source_name
        self._diagnostics: List[Diagnostic] = []
        self._frozen = False

    def report(
        self,
        code: DiagnosticCode,
        message: str,
        span: SourceSpan,
        severity: Optional[Severity] = None
    ) -> Diagnostic:
        if self._frozen:
            raise RuntimeError("Diagnostics are immutable once parsing has finished")

        diagnostic = Diagnostic(
            severity=severity or DEFAULT_SEVERITIES[code],
            message=message,
            span=span,
            code=code,
            source_name=self.source_name
        )
        self._diagnostics.append(diagnostic)
        logger.debug(f"ISML diagnostic: {diagnostic}")
        return diagnostic

    @property
    def error_count(self) -> int:
        return sum(1 for d in self._diagnostics if d.is_error)

    def __len__(self):
        return len(self._diagnostics)

    def freeze(self) -> Tuple[Diagnostic, ...]:
        self._frozen = True
        # sorted() is stable: diagnostics at the same offset keep report order
        return tuple(sorted(self._diagnostics, key=lambda d: d.span.start_offset))
