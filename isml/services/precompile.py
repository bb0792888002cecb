"""
Precompile Check

Walks a template source directory the way the storefront build does: the
first level holds language directories (default/, en_US/, impex/, ...) and
every *.isml file below them is a template. Each template is parsed and the
reports are collected so a build can fail before templates are deployed.

Usage:
    precompiler = TemplatePrecompiler('cartridge/templates')
    result = precompiler.run()
    if result.failed:
        ...
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from isml.config import Config, ParserConfig
from isml.parser.exceptions import ISMLError
from isml.services.validation import TemplateReport, TemplateValidationService

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = '.isml'


@dataclass
class UnreadableTemplate:
    source_name: str
    reason: str

    def to_dict(self) -> Dict:
        return {'source_name': self.source_name, 'reason': self.reason}


@dataclass
class PrecompileResult:
    """Outcome of checking a whole template directory."""
    src_dir: str
    reports: List[TemplateReport] = field(default_factory=list)
    unreadable: List[UnreadableTemplate] = field(default_factory=list)
    fail_on_warning: bool = False

    @property
    def checked(self) -> int:
        return len(self.reports)

    @property
    def failed_reports(self) -> List[TemplateReport]:
        return [r for r in self.reports if r.failed(self.fail_on_warning)]

    @property
    def error_count(self) -> int:
        return sum(len(r.errors) for r in self.reports)

    @property
    def warning_count(self) -> int:
        return sum(len(r.warnings) for r in self.reports)

    @property
    def failed(self) -> bool:
        return bool(self.unreadable) or bool(self.failed_reports)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'src_dir': self.src_dir,
            'failed': self.failed,
            'stats': {
                'templates': self.checked,
                'failed': len(self.failed_reports),
                'unreadable': len(self.unreadable),
                'errors': self.error_count,
                'warnings': self.warning_count,
            },
            'templates': [r.to_dict(include_outline=False) for r in self.reports],
            'unreadable': [u.to_dict() for u in self.unreadable],
        }


def is_template_file(path: Path) -> bool:
    """A regular file ending in .isml with a non-empty stem."""
    return path.is_file() and path.name.lower().endswith(TEMPLATE_SUFFIX) and len(path.name) > len(TEMPLATE_SUFFIX)


def language_dirs(src_dir: Path) -> List[Path]:
    """First-level directories of the source directory, sorted by name."""
    return sorted(p for p in src_dir.iterdir() if p.is_dir())


def template_files(language_dir: Path) -> List[Path]:
    """All templates below a language directory, recursively, sorted."""
    return sorted(p for p in language_dir.rglob('*') if is_template_file(p))


class TemplatePrecompiler:
    """
    Parses every template of a source directory in parallel.

    Templates are independent, so they are spread over a thread pool; each
    worker uses the shared TemplateValidationService, which keeps no state
    between parse calls.
    """

    def __init__(
        self,
        src_dir: Union[str, Path],
        config: ParserConfig = None,
        encoding: str = None,
        max_workers: Optional[int] = None,
        fail_on_warning: bool = None
    ):
        self.src_dir = Path(src_dir)
        self.config = config or ParserConfig.from_object()
        self.encoding = encoding or Config.ISML_TEMPLATE_ENCODING
        self.max_workers = max_workers if max_workers is not None else Config.ISML_MAX_WORKERS
        self.fail_on_warning = Config.ISML_FAIL_ON_WARNING if fail_on_warning is None else fail_on_warning
        self.service = TemplateValidationService(self.config)

    def collect(self) -> List[Tuple[str, Path]]:
        """
        List the templates to check.

        Returns:
            (source_name, path) pairs; source_name is the path relative to
            src_dir with forward slashes, e.g. 'default/product/tile.isml'

        Raises:
            ISMLError: If src_dir is not a directory
        """
        if not self.src_dir.is_dir():
            raise ISMLError(f"Template source directory not found: {self.src_dir}")

        templates = []
        for language_dir in language_dirs(self.src_dir):
            for path in template_files(language_dir):
                templates.append((path.relative_to(self.src_dir).as_posix(), path))
        return templates

    def check_file(self, source_name: str, path: Path) -> Union[TemplateReport, UnreadableTemplate]:
        try:
            source = path.read_bytes().decode(self.encoding)
        except (OSError, UnicodeDecodeError, LookupError) as e:
            logger.warning(f"Cannot read template {source_name}: {e}")
            return UnreadableTemplate(source_name=source_name, reason=str(e))

        report = self.service.validate(source, source_name)
        if report.errors:
            logger.info(f"{source_name}: {len(report.errors)} error(s), {len(report.warnings)} warning(s)")
        return report

    def run(self) -> PrecompileResult:
        """Check every template and collect the results in file order."""
        templates = self.collect()
        logger.info(f"Checking {len(templates)} templates in {self.src_dir}")

        result = PrecompileResult(src_dir=str(self.src_dir), fail_on_warning=self.fail_on_warning)
        if not templates:
            return result

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            outcomes = list(executor.map(lambda item: self.check_file(*item), templates))

        for outcome in outcomes:
            if isinstance(outcome, UnreadableTemplate):
                result.unreadable.append(outcome)
            else:
                result.reports.append(outcome)

        logger.info(
            f"Checked {result.checked} templates: {len(result.failed_reports)} failed, "
            f"{len(result.unreadable)} unreadable"
        )
        return result
