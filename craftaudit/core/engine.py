"""
Main scanning engine for craft-audit.

This module finds template files, hands each one to the single-file
scanner on a thread pool, and assembles the results in a stable order.
"""

import fnmatch
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from craftaudit.core.findings import Finding, Pattern, ScanResult, Severity
from craftaudit.core.scanner import TemplateScanner

logger = logging.getLogger(__name__)


DEFAULT_EXTENSIONS = [".twig", ".html"]

# Directories never worth descending into
SKIP_DIRECTORIES = {
    ".git",
    ".svn",
    ".hg",
    "node_modules",
    "vendor",
    "__pycache__",
}


def is_excluded(rel_path: str, patterns: Sequence[str], is_dir: bool = False) -> bool:
    """Check a relative POSIX path against fnmatch-style exclude patterns."""
    candidates = [rel_path, os.path.basename(rel_path)]
    if is_dir:
        candidates.append(rel_path + "/")
    return any(fnmatch.fnmatch(c, pattern) for pattern in patterns for c in candidates)


def iter_template_files(
    root: str,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    exclude_patterns: Sequence[str] = (),
    max_file_size: Optional[int] = None,
) -> Iterator[str]:
    """
    Yield template files under ``root`` in sorted order.

    A single file is yielded as-is when it has a template extension.
    """
    extensions = tuple(ext.lower() for ext in extensions)
    root_path = Path(root)

    if root_path.is_file():
        if root_path.suffix.lower() in extensions:
            yield str(root_path)
        return

    for current, dirs, files in os.walk(root_path):
        rel_dir = Path(current).relative_to(root_path).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir

        dirs[:] = sorted(
            d for d in dirs
            if d not in SKIP_DIRECTORIES
            and not is_excluded(f"{rel_dir}/{d}".lstrip("/"), exclude_patterns, is_dir=True)
        )

        for name in sorted(files):
            if os.path.splitext(name)[1].lower() not in extensions:
                continue
            rel_path = f"{rel_dir}/{name}".lstrip("/")
            if is_excluded(rel_path, exclude_patterns):
                continue

            file_path = os.path.join(current, name)
            if max_file_size is not None:
                try:
                    if os.path.getsize(file_path) > max_file_size:
                        logger.debug("Skipping %s: larger than %d bytes", rel_path, max_file_size)
                        continue
                except OSError:
                    continue
            yield file_path


class ScanEngine:
    """
    Orchestrates a scan over a template tree.

    The engine:
    1. Discovers template files under the target
    2. Reads each file and scans it on a worker pool
    3. Concatenates per-file findings in sorted file order
    4. Drops findings below the severity threshold or for disabled rules
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.scanner = TemplateScanner()

        # Configuration options
        self.extensions = self.config.get("extensions", DEFAULT_EXTENSIONS)
        self.exclude_patterns = self.config.get("exclude_patterns", [])
        self.max_file_size = self.config.get("max_file_size", 1024 * 1024)
        self.max_workers = self.config.get("max_workers", 4)
        self.severity_threshold = Severity(self.config.get("severity_threshold", "info"))
        self.disabled_patterns = {Pattern(p) for p in self.config.get("disabled_patterns", [])}

    def discover_files(self, target_path: str) -> List[str]:
        """Discover all template files to scan in the target path."""
        return list(iter_template_files(
            target_path,
            extensions=self.extensions,
            exclude_patterns=self.exclude_patterns,
            max_file_size=self.max_file_size,
        ))

    @staticmethod
    def relative_path(file_path: str, target_path: str) -> str:
        target = Path(target_path)
        base = target.parent if target.is_file() else target
        return Path(os.path.relpath(file_path, base)).as_posix()

    def read_file(self, file_path: str) -> Tuple[Optional[str], Optional[str]]:
        """Read a file's contents, returning ``(content, error)``."""
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                return f.read(), None
        except OSError as e:
            logger.warning("Could not read %s: %s", file_path, e)
            return None, f"Error reading {file_path}: {e}"

    def scan_file(self, file_path: str, display_path: str) -> Tuple[List[Finding], Optional[str]]:
        """Scan a single file and return its findings and any read error."""
        content, error = self.read_file(file_path)
        if content is None:
            return [], error
        return self.scanner.scan(display_path, content), None

    def filter_findings(self, findings: List[Finding]) -> List[Finding]:
        """Apply the severity threshold and disabled rules, keeping order."""
        return [
            f for f in findings
            if f.severity >= self.severity_threshold and f.pattern not in self.disabled_patterns
        ]

    def scan(self, target_path: str) -> ScanResult:
        """
        Scan a target path and return results.

        Args:
            target_path: Path to a template or a directory of templates.

        Returns:
            ScanResult containing all findings and metadata.
        """
        start_time = time.time()
        all_findings: List[Finding] = []
        errors: List[str] = []
        files_scanned = 0

        files = self.discover_files(target_path)
        jobs = [(f, self.relative_path(f, target_path)) for f in files]
        logger.debug("Discovered %d template files under %s", len(files), target_path)

        if len(jobs) > 1 and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(self.scan_file, path, rel) for path, rel in jobs]
                # Collect in submission order so output never depends on timing
                results = [future.result() for future in futures]
        else:
            results = [self.scan_file(path, rel) for path, rel in jobs]

        for findings, error in results:
            if error is not None:
                errors.append(error)
                continue
            files_scanned += 1
            all_findings.extend(self.filter_findings(findings))

        elapsed_time = time.time() - start_time

        return ScanResult(
            findings=all_findings,
            files_scanned=files_scanned,
            scan_time_seconds=round(elapsed_time, 3),
            errors=errors,
        )

    def scan_content(self, content: str, file_path: str = "<string>") -> List[Finding]:
        """
        Scan template content directly without reading from a file.

        Useful for editor integrations and testing.
        """
        return self.filter_findings(self.scanner.scan(file_path, content))


def create_engine(config_path: Optional[str] = None, **kwargs) -> ScanEngine:
    """
    Create a scan engine with configuration.

    Args:
        config_path: Optional path to a configuration file.
        **kwargs: Additional engine options.

    Returns:
        Configured ScanEngine instance.
    """
    config: Dict[str, Any] = {}

    if config_path:
        from craftaudit.config import load_scan_config
        config = load_scan_config(config_path).to_engine_config()

    config.update(kwargs)

    return ScanEngine(config)
