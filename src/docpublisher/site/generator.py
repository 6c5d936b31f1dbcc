"""
Documentation site generation.

Builds the static site that ``stage`` copies and ``publish`` uploads: an
``index.html`` summarizing quality metrics, plus the HTML reports the build
already produced (Javadoc, coverage, test results, static analysis).

Single-module builds render straight into the site directory. Multi-module
builds render each module into ``<site>/<module>/`` and a root run writes an
index linking to every module.
"""

from __future__ import annotations

import html
import re
import shutil
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from importlib.resources import files
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from docpublisher import __version__
from docpublisher.exceptions import ConfigurationError
from docpublisher.site.reports import QualityMetrics, collect_metrics, coverage_color, violation_color
from docpublisher.utils.logging import get_logger

logger = get_logger("docpublisher.site.generator")

SITE_TEMPLATE = "site-index.html"
AGGREGATED_TEMPLATE = "aggregated-site-index.html"

# Build directory path -> path inside the site, in link order
REPORT_DIRS = {
    "docs/javadoc": "javadoc",
    "reports/jacoco/test/html": "coverage",
    "reports/tests/test": "tests",
    "reports/checkstyle": "checkstyle",
    "reports/pmd": "pmd",
    "reports/spotbugs": "spotbugs",
    "reports/project": "reports/project",
}

REPORT_TITLES = {
    "javadoc": "API Documentation",
    "coverage": "Coverage Report",
    "tests": "Test Results",
    "checkstyle": "Checkstyle Report",
    "pmd": "PMD Report",
    "spotbugs": "SpotBugs Report",
    "reports/project": "Project Reports",
}

# Top-level site entries written by a single-module run; never module names
RESERVED_NAMES = frozenset(dest.split("/")[0] for dest in REPORT_DIRS.values())

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


@dataclass(frozen=True)
class SiteInfo:
    """Project facts shown in the site header."""

    project_name: str
    project_version: str
    build_tool_version: Optional[str] = None
    build_date: datetime = field(default_factory=datetime.now)


def load_template(name: str) -> str:
    """Read a bundled HTML template."""
    resource = files("docpublisher.site").joinpath("templates").joinpath(name)
    try:
        return resource.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError(f"Site template not found: {name}") from e


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left untouched."""
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def copy_reports(build_dir: Path, target_dir: Path) -> list[str]:
    """
    Copy the build's HTML reports into the site.

    Returns:
        Site paths of the reports that existed and were copied
    """
    copied = []
    for source, dest in REPORT_DIRS.items():
        source_dir = build_dir / source
        if not source_dir.is_dir():
            continue
        shutil.copytree(source_dir, target_dir / dest, dirs_exist_ok=True)
        copied.append(dest)
        logger.debug(f"Copied {source_dir} -> {target_dir / dest}")
    return copied


def _header_values(info: SiteInfo) -> dict[str, str]:
    return {
        "projectName": html.escape(info.project_name),
        "projectVersion": html.escape(info.project_version),
        "buildDate": info.build_date.strftime("%Y-%m-%d %H:%M:%S"),
        "buildToolVersion": html.escape(info.build_tool_version or "n/a"),
        "generatorVersion": __version__,
    }


def _percent(value: Optional[float]) -> str:
    return f"{value if value is not None else 0.0:.1f}"


def metric_values(metrics: QualityMetrics) -> dict[str, str]:
    """Template values for the metric cards."""
    coverage = metrics.coverage
    return {
        "linesCoverage": _percent(coverage.lines),
        "branchesCoverage": _percent(coverage.branches),
        "instructionsCoverage": _percent(coverage.instructions),
        "coverageColor": coverage_color(coverage.lines),
        "branchCoverageColor": coverage_color(coverage.branches),
        "instructionCoverageColor": coverage_color(coverage.instructions),
        "checkstyleTotal": str(metrics.checkstyle.total),
        "checkstyleErrors": str(metrics.checkstyle.errors),
        "checkstyleWarnings": str(metrics.checkstyle.warnings),
        "checkstyleInfos": str(metrics.checkstyle.infos),
        "checkstyleViolationColor": violation_color(metrics.checkstyle.total),
        "pmdTotal": str(metrics.pmd.total),
        "pmdPriority1": str(metrics.pmd.priority1),
        "pmdPriority2": str(metrics.pmd.priority2),
        "pmdPriority3": str(metrics.pmd.priority3),
        "pmdPriority45": str(metrics.pmd.priority45),
        "pmdViolationColor": violation_color(metrics.pmd.total),
        "spotbugsTotal": str(metrics.spotbugs.total),
        "spotbugsHigh": str(metrics.spotbugs.high),
        "spotbugsMedium": str(metrics.spotbugs.medium),
        "spotbugsLow": str(metrics.spotbugs.low),
        "spotbugsViolationColor": violation_color(metrics.spotbugs.total),
        "testsTotal": str(metrics.tests.total),
        "testsPassed": str(metrics.tests.passed),
        "testsFailed": str(metrics.tests.failed),
        "testsSkipped": str(metrics.tests.skipped),
        "testFailureColor": violation_color(metrics.tests.failed),
    }


def _report_links(copied: Iterable[str]) -> str:
    links = [
        f'<a href="./{dest}/index.html" class="report-link">{html.escape(REPORT_TITLES[dest])}</a>'
        for dest in copied
    ]
    return "\n".join(links) if links else '<p class="empty">No reports were found in the build directory.</p>'


def _module_links(modules: Iterable[str]) -> str:
    return "\n".join(
        f'<a href="./{quote(m)}/index.html" class="module-link">'
        f"<strong>{html.escape(m)}</strong>"
        f"<span>View comprehensive documentation and quality metrics</span></a>"
        for m in modules
    )


def generate_detailed_site(build_dir: Path, target_dir: Path, info: SiteInfo) -> Path:
    """
    Render the metrics index and copy reports into ``target_dir``.

    Returns:
        Path of the written index.html
    """
    target_dir.mkdir(parents=True, exist_ok=True)
    copied = copy_reports(build_dir, target_dir)
    metrics = collect_metrics(build_dir)

    values = {**_header_values(info), **metric_values(metrics), "reportLinks": _report_links(copied)}
    index = target_dir / "index.html"
    index.write_text(render_template(load_template(SITE_TEMPLATE), values), encoding="utf-8")
    logger.info(f"Generated site for {info.project_name} {info.project_version} at {target_dir}")
    return index


def generate_aggregated_index(site_dir: Path, modules: Iterable[str], info: SiteInfo) -> Path:
    """Write ``site_dir/index.html`` linking to each module's site."""
    modules = sorted(modules)
    values = {**_header_values(info), "moduleList": _module_links(modules)}
    index = site_dir / "index.html"
    index.write_text(render_template(load_template(AGGREGATED_TEMPLATE), values), encoding="utf-8")
    logger.info(f"Generated aggregated index for {len(modules)} modules at {index}")
    return index


def find_modules(site_dir: Path) -> list[str]:
    """Module sites already rendered under ``site_dir``."""
    if not site_dir.is_dir():
        return []
    return sorted(
        entry.name
        for entry in site_dir.iterdir()
        if entry.is_dir() and not entry.name.startswith(".") and entry.name not in RESERVED_NAMES
    )


def generate_site(
    build_dir: Path,
    site_dir: Path,
    info: SiteInfo,
    *,
    module_name: Optional[str] = None,
) -> Path:
    """
    Generate the documentation site.

    With ``module_name``, ``site_dir/<module_name>`` is replaced by a fresh
    detailed site. Without it, an aggregated index is written when module
    sites already exist under ``site_dir``; otherwise ``site_dir`` itself is
    replaced by a detailed site.

    Returns:
        Path of the written index.html

    Raises:
        ConfigurationError: build directory missing or module name not a plain name
    """
    build_dir = Path(build_dir)
    site_dir = Path(site_dir)
    if not build_dir.is_dir():
        raise ConfigurationError(
            f"Build directory does not exist: {build_dir.resolve()}", details={"build_dir": str(build_dir)}
        )

    if module_name is not None:
        if not module_name.strip() or "/" in module_name or "\\" in module_name or module_name.startswith("."):
            raise ConfigurationError(f"Invalid module name: {module_name!r}")
        if module_name in RESERVED_NAMES:
            raise ConfigurationError(f"Module name {module_name!r} collides with a report directory")
        target = site_dir / module_name
        shutil.rmtree(target, ignore_errors=True)
        return generate_detailed_site(build_dir, target, info)

    site_dir.mkdir(parents=True, exist_ok=True)
    modules = find_modules(site_dir)
    if modules:
        return generate_aggregated_index(site_dir, modules, info)

    shutil.rmtree(site_dir, ignore_errors=True)
    return generate_detailed_site(build_dir, site_dir, info)
