"""
Quality metrics from the XML reports of a JVM build.

Report locations are relative to the build directory::

    reports/jacoco/test/jacocoTestReport.xml     coverage
    reports/checkstyle/{main,test}.xml           style violations
    reports/pmd/{main,test}.xml                  static analysis issues
    reports/spotbugs/{main,test}.xml             bug patterns
    test-results/test/*.xml                      JUnit results

A missing or unparsable report contributes nothing; the site still renders
with zero counts for it.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from xml.parsers.expat import ExpatError

import xmltodict

from docpublisher.utils.logging import get_logger

logger = get_logger("docpublisher.site.reports")

JACOCO_XML = "reports/jacoco/test/jacocoTestReport.xml"
CHECKSTYLE_XML = ("reports/checkstyle/main.xml", "reports/checkstyle/test.xml")
PMD_XML = ("reports/pmd/main.xml", "reports/pmd/test.xml")
SPOTBUGS_XML = ("reports/spotbugs/main.xml", "reports/spotbugs/test.xml")
TEST_RESULTS_DIR = "test-results/test"

# PMD priorities outside 1..5 (or unparsable) are counted as medium
PMD_DEFAULT_PRIORITY = 3


@dataclass(frozen=True)
class CoverageMetrics:
    """JaCoCo totals as percentages; None when the counter is absent or empty."""

    lines: Optional[float] = None
    branches: Optional[float] = None
    instructions: Optional[float] = None


@dataclass(frozen=True)
class CheckstyleMetrics:
    errors: int = 0
    warnings: int = 0
    infos: int = 0
    total: int = 0


@dataclass(frozen=True)
class PmdMetrics:
    priority1: int = 0
    priority2: int = 0
    priority3: int = 0
    priority4: int = 0
    priority5: int = 0
    total: int = 0

    @property
    def priority45(self) -> int:
        return self.priority4 + self.priority5


@dataclass(frozen=True)
class SpotBugsMetrics:
    high: int = 0
    medium: int = 0
    low: int = 0
    total: int = 0


@dataclass(frozen=True)
class TestMetrics:
    """JUnit totals. ``failed`` counts both failures and errors."""

    __test__ = False  # not a pytest test class

    total: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def passed(self) -> int:
        return max(self.total - self.failed - self.skipped, 0)


@dataclass(frozen=True)
class QualityMetrics:
    coverage: CoverageMetrics = field(default_factory=CoverageMetrics)
    checkstyle: CheckstyleMetrics = field(default_factory=CheckstyleMetrics)
    pmd: PmdMetrics = field(default_factory=PmdMetrics)
    spotbugs: SpotBugsMetrics = field(default_factory=SpotBugsMetrics)
    tests: TestMetrics = field(default_factory=TestMetrics)


def parse_report(path: Path) -> Optional[tuple[str, Any]]:
    """
    Parse an XML report.

    Returns:
        (root tag, root element as produced by xmltodict), or None when the
        file is missing or is not well-formed XML
    """
    if not path.is_file():
        return None
    try:
        document = xmltodict.parse(path.read_bytes())
    except (ExpatError, OSError) as e:
        logger.warning(f"Skipping unreadable report {path}: {e}")
        return None
    tag, root = next(iter(document.items()))
    return tag, root


def iter_elements(node: Any, tag: str) -> Iterator[dict]:
    """Depth-first walk yielding every descendant element named ``tag``."""
    if not isinstance(node, dict):
        return
    for key, value in node.items():
        if key.startswith("@") or key == "#text":
            continue
        for child in value if isinstance(value, list) else [value]:
            if key == tag:
                # Elements with neither attributes nor children come back as str/None
                yield child if isinstance(child, dict) else {}
            yield from iter_elements(child, tag)


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _percent(counter: Optional[dict]) -> Optional[float]:
    if counter is None:
        return None
    missed = _int(counter.get("@missed"))
    covered = _int(counter.get("@covered"))
    total = missed + covered
    if total <= 0:
        return None
    return covered / total * 100


def extract_coverage(xml_file: Path) -> CoverageMetrics:
    """
    Line, branch and instruction coverage from a JaCoCo report.

    JaCoCo writes per-package and per-class counters before the report-level
    ones, so the last counter of each type in document order is the total.
    """
    parsed = parse_report(xml_file)
    if parsed is None:
        return CoverageMetrics()

    last: dict[str, dict] = {}
    for counter in iter_elements(parsed[1], "counter"):
        last[counter.get("@type", "")] = counter
    return CoverageMetrics(
        lines=_percent(last.get("LINE")),
        branches=_percent(last.get("BRANCH")),
        instructions=_percent(last.get("INSTRUCTION")),
    )


def _elements(files: tuple[Path, ...], tag: str) -> Iterator[dict]:
    for xml_file in files:
        parsed = parse_report(xml_file)
        if parsed is not None:
            yield from iter_elements(parsed[1], tag)


def extract_checkstyle(*xml_files: Path) -> CheckstyleMetrics:
    """Checkstyle violations by severity, summed over the given reports."""
    counts: Counter = Counter()
    for error in _elements(xml_files, "error"):
        counts[error.get("@severity")] += 1
        counts["total"] += 1
    return CheckstyleMetrics(
        errors=counts["error"], warnings=counts["warning"], infos=counts["info"], total=counts["total"]
    )


def extract_pmd(*xml_files: Path) -> PmdMetrics:
    """PMD violations by priority (1 = highest), summed over the given reports."""
    counts: Counter = Counter()
    for violation in _elements(xml_files, "violation"):
        priority = _int(violation.get("@priority"), PMD_DEFAULT_PRIORITY)
        if not 1 <= priority <= 5:
            priority = PMD_DEFAULT_PRIORITY
        counts[priority] += 1
        counts["total"] += 1
    return PmdMetrics(
        priority1=counts[1],
        priority2=counts[2],
        priority3=counts[3],
        priority4=counts[4],
        priority5=counts[5],
        total=counts["total"],
    )


def extract_spotbugs(*xml_files: Path) -> SpotBugsMetrics:
    """SpotBugs bug instances by priority (1 high, 2 medium, 3 low)."""
    counts: Counter = Counter()
    for bug in _elements(xml_files, "BugInstance"):
        counts[bug.get("@priority")] += 1
        counts["total"] += 1
    return SpotBugsMetrics(high=counts["1"], medium=counts["2"], low=counts["3"], total=counts["total"])


def extract_tests(results_dir: Path) -> TestMetrics:
    """JUnit totals over every ``*.xml`` file directly inside ``results_dir``."""
    if not results_dir.is_dir():
        return TestMetrics()

    total = failed = skipped = 0
    for xml_file in sorted(results_dir.glob("*.xml")):
        parsed = parse_report(xml_file)
        if parsed is None:
            continue
        tag, root = parsed
        suites = [root if isinstance(root, dict) else {}] if tag == "testsuite" else iter_elements(root, "testsuite")
        for suite in suites:
            total += _int(suite.get("@tests"))
            failed += _int(suite.get("@failures")) + _int(suite.get("@errors"))
            skipped += _int(suite.get("@skipped"))
    return TestMetrics(total=total, failed=failed, skipped=skipped)


def collect_metrics(build_dir: Path) -> QualityMetrics:
    """All metrics available under ``build_dir``."""
    build_dir = Path(build_dir)
    return QualityMetrics(
        coverage=extract_coverage(build_dir / JACOCO_XML),
        checkstyle=extract_checkstyle(*(build_dir / p for p in CHECKSTYLE_XML)),
        pmd=extract_pmd(*(build_dir / p for p in PMD_XML)),
        spotbugs=extract_spotbugs(*(build_dir / p for p in SPOTBUGS_XML)),
        tests=extract_tests(build_dir / TEST_RESULTS_DIR),
    )


def coverage_color(percent: Optional[float]) -> str:
    """Green at 90%+, yellow at 75%+, orange at 50%+, red below (and when unknown)."""
    if percent is None:
        return "#dc3545"
    if percent >= 90.0:
        return "#28a745"
    if percent >= 75.0:
        return "#ffc107"
    if percent >= 50.0:
        return "#fd7e14"
    return "#dc3545"


def violation_color(count: int) -> str:
    """Green for none, yellow up to 10, orange up to 50, red beyond."""
    if count == 0:
        return "#28a745"
    if count <= 10:
        return "#ffc107"
    if count <= 50:
        return "#fd7e14"
    return "#dc3545"
