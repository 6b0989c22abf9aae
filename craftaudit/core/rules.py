"""
Detector framework for the template auditor.

Every pattern has one detector. Detectors are stateless: whatever they
need to remember across lines lives in the ``ScanState`` the scanner hands
them, so one set of detector instances can serve many concurrent scans.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Generator, List, Optional, Type

from craftaudit.core.context import ScanState
from craftaudit.core.findings import Finding, Fix, Pattern, Severity


@dataclass(frozen=True)
class DetectorMetadata:
    """Metadata for a detector."""
    pattern: Pattern
    name: str
    severity: Severity
    order: int
    description: str = ""


@dataclass(frozen=True)
class LineContext:
    """The line currently being scanned."""
    number: int
    text: str

    @property
    def code(self) -> str:
        return self.text.strip()


class Detector(ABC):
    """
    Base class for all template detectors.

    ``check_line`` runs once per line after the scanner has updated the
    shared state; ``finish`` runs once after the last line.
    """

    @property
    @abstractmethod
    def metadata(self) -> DetectorMetadata:
        """Return detector metadata."""
        pass

    @abstractmethod
    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        """
        Inspect one line and yield findings.

        Args:
            line: The current line and its 1-based number.
            state: Cross-line state for the file being scanned.
        """
        pass

    def finish(self, state: ScanState) -> Generator[Finding, None, None]:
        """Yield findings that can only be decided at end of file."""
        yield from ()

    @property
    def pattern(self) -> Pattern:
        return self.metadata.pattern

    def is_suppressed(self, state: ScanState, line_number: int) -> bool:
        return state.suppressions.is_suppressed(line_number, self.pattern)

    def create_finding(
        self,
        state: ScanState,
        line: int,
        message: str,
        suggestion: str,
        code: str,
        severity: Optional[Severity] = None,
        fix: Optional[Fix] = None,
    ) -> Finding:
        """Create a finding using the detector's metadata as defaults."""
        return Finding(
            severity=severity or self.metadata.severity,
            pattern=self.pattern,
            file=state.file_path,
            line=line,
            message=message,
            suggestion=suggestion,
            code=code,
            fix=fix,
        )


class DetectorRegistry:
    """
    Registry of detector classes, one per pattern.

    Detectors are returned sorted by their ``order`` so the per-line
    sequence never depends on import order.
    """

    _instance: Optional["DetectorRegistry"] = None

    def __init__(self):
        self._detectors: Dict[Pattern, Type[Detector]] = {}
        self._instances: Dict[Pattern, Detector] = {}

    @classmethod
    def get_instance(cls) -> "DetectorRegistry":
        """Get the singleton registry instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def register(self, detector_class: Type[Detector]) -> Type[Detector]:
        """
        Register a detector class.

        Can be used as a decorator:

        @registry.register
        class MyDetector(Detector):
            ...
        """
        instance = detector_class()
        pattern = instance.metadata.pattern
        if pattern in self._detectors and self._detectors[pattern] is not detector_class:
            raise ValueError(f"Duplicate detector for pattern {pattern.value}")
        self._detectors[pattern] = detector_class
        self._instances[pattern] = instance
        return detector_class

    def get_detector(self, pattern: Pattern) -> Optional[Detector]:
        return self._instances.get(pattern)

    def get_detectors(self) -> List[Detector]:
        """Get every registered detector in execution order."""
        return sorted(self._instances.values(), key=lambda d: d.metadata.order)

    @property
    def patterns(self) -> List[Pattern]:
        return [d.pattern for d in self.get_detectors()]

    @property
    def detector_count(self) -> int:
        return len(self._detectors)


# Global registry instance
registry = DetectorRegistry.get_instance()


def detector(cls: Type[Detector]) -> Type[Detector]:
    """
    Decorator to register a detector with the global registry.

    Usage:
        @detector
        class MyDetector(Detector):
            ...
    """
    return registry.register(cls)
