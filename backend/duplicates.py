"""
Duplicate report detection.

Reports of the same issue type lying within DUPLICATE_THRESHOLD_M of each
other are grouped with a greedy single pass: each unvisited report seeds a
group and pulls in every later unvisited report of its type that is closer
than the threshold to the seed. The result depends on input order and is
not transitive, which is acceptable for an admin triage hint.
"""
import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Tuple

from backend.geo import parse_location, haversine_km, parse_timestamp

logger = logging.getLogger(__name__)

DUPLICATE_THRESHOLD_M = 50.0


def find_duplicate_groups(reports: List[Dict[str, Any]], threshold_m: float = DUPLICATE_THRESHOLD_M) -> List[List[Dict[str, Any]]]:
    """Return groups (size >= 2) of reports that look like duplicates of each other."""
    parsed = [parse_location(report.get("location", "")) for report in reports]
    visited = set()
    groups = []

    for i, seed in enumerate(reports):
        if i in visited or parsed[i] is None:
            continue
        visited.add(i)
        group = [seed]

        for j in range(i + 1, len(reports)):
            if j in visited or parsed[j] is None:
                continue
            other = reports[j]
            if other.get("issueType") != seed.get("issueType"):
                continue
            if haversine_km(parsed[i], parsed[j]) * 1000.0 < threshold_m:
                group.append(other)
                visited.add(j)

        if len(group) > 1:
            groups.append(group)

    logger.debug("Found %d duplicate groups among %d reports", len(groups), len(reports))
    return groups


def describe_group(group: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Summary of a duplicate group for API responses."""
    primary, _ = plan_merge(group)
    return {
        "issue_type": group[0].get("issueType"),
        "location": group[0].get("location"),
        "size": len(group),
        "primary_id": primary.get("id"),
        "report_ids": [r.get("id") for r in group],
    }


def plan_merge(group: List[Dict[str, Any]]) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """
    Pick the report that survives a merge: the earliest one reported.
    Reports without a complaint time sort last; ties keep input order.
    """
    if not group:
        raise ValueError("Cannot merge an empty group")

    far_future = datetime.max.replace(tzinfo=timezone.utc)

    def sort_key(indexed):
        index, report = indexed
        reported_at = parse_timestamp(report.get("complaintTime"))
        return (reported_at or far_future, index)

    ordered = [report for _, report in sorted(enumerate(group), key=sort_key)]
    return ordered[0], ordered[1:]
