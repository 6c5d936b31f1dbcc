"""
Static documentation site generation from build reports.
"""

from docpublisher.site.generator import (
    SiteInfo,
    copy_reports,
    find_modules,
    generate_aggregated_index,
    generate_detailed_site,
    generate_site,
    render_template,
)
from docpublisher.site.reports import QualityMetrics, collect_metrics, coverage_color, violation_color

__all__ = [
    "SiteInfo",
    "generate_site",
    "generate_detailed_site",
    "generate_aggregated_index",
    "find_modules",
    "copy_reports",
    "render_template",
    "QualityMetrics",
    "collect_metrics",
    "coverage_color",
    "violation_color",
]
