"""Dashboard statistics and CSV export over report lists."""
from io import StringIO
from collections import Counter

import pandas as pd

from backend.constants import STATUS_RESOLVED
from backend.geo import parse_timestamp

EXPORT_COLUMNS = ["id", "issueType", "location", "severity", "status", "complaintTime", "resolvedTime"]


def format_issue_label(issue_type):
    """'fallen_tree' -> 'Fallen Tree'"""
    return " ".join(word.capitalize() for word in str(issue_type or "other").replace("_", " ").split())


def format_duration(total_seconds):
    hours = int(total_seconds // 3600)
    minutes = int((total_seconds % 3600) // 60)
    if hours > 24:
        return f"{hours // 24}d {hours % 24}h"
    return f"{hours}h {minutes}m"


def dashboard_stats(reports):
    """Counts per issue type, resolution rate and average time to resolve."""
    issue_counts = Counter(format_issue_label(r.get("issueType")) for r in reports)
    chart_data = [{"name": name, "count": count} for name, count in issue_counts.items()]

    durations = []
    for report in reports:
        if report.get("status") != STATUS_RESOLVED:
            continue
        reported_at = parse_timestamp(report.get("complaintTime"))
        resolved_at = parse_timestamp(report.get("resolvedTime"))
        if reported_at and resolved_at:
            durations.append((resolved_at - reported_at).total_seconds())

    total = len(reports)
    resolved_count = len(durations)
    avg_resolution_time = "N/A"
    if durations:
        avg_resolution_time = format_duration(sum(durations) / resolved_count)

    return {
        "chart_data": chart_data,
        "total_reports": total,
        "resolved_count": resolved_count,
        "resolution_rate": round(resolved_count / total * 100, 1) if total else 0.0,
        "avg_resolution_time": avg_resolution_time,
    }


def reports_to_frame(reports):
    rows = []
    for report in reports:
        assessment = report.get("assessmentResult") or {}
        rows.append({
            "id": report.get("id"),
            "issueType": report.get("issueType"),
            "location": report.get("location"),
            "severity": assessment.get("severity", "low"),
            "status": report.get("status"),
            "complaintTime": parse_timestamp(report.get("complaintTime")),
            "resolvedTime": parse_timestamp(report.get("resolvedTime")),
        })
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def reports_to_csv(reports):
    csv_buffer = StringIO()
    reports_to_frame(reports).to_csv(csv_buffer, index=False)
    return csv_buffer.getvalue()
