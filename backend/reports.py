"""Firestore persistence for civic issue reports."""
import uuid
import logging
from datetime import datetime, timezone

from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1.base_query import FieldFilter

from backend import config
from backend.constants import ISSUE_TYPES, STATUSES, STATUS_PENDING, STATUS_RESOLVED
from backend.duplicates import plan_merge
from backend.errors import InvalidReportError, PermissionDeniedError, ReportNotFoundError
from backend.geo import parse_timestamp

logger = logging.getLogger(__name__)


def utc_now():
    return datetime.now(timezone.utc)


def newest_first(reports):
    oldest = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(reports, key=lambda r: parse_timestamp(r.get("complaintTime")) or oldest, reverse=True)


class ReportStore:
    """Reads and writes report documents in a Firestore collection."""

    def __init__(self, db, collection=None):
        self.db = db
        self.collection_name = collection or config.REPORTS_COLLECTION

    @property
    def collection(self):
        return self.db.collection(self.collection_name)

    @staticmethod
    def _to_report(doc):
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return data

    def _existing_ref(self, report_id):
        ref = self.collection.document(report_id)
        snapshot = ref.get()
        if not snapshot.exists:
            raise ReportNotFoundError(report_id)
        return ref, snapshot

    @staticmethod
    def _update(ref, report_id, data):
        try:
            ref.update(data)
        except NotFound as e:
            # Deleted between the existence check and the write
            raise ReportNotFoundError(report_id) from e

    def create(self, user_id, issue_type, location, image_data_uri, identification=None):
        if not user_id:
            raise InvalidReportError("User id is required")
        if issue_type not in ISSUE_TYPES:
            raise InvalidReportError(f"Unknown issue type: {issue_type!r}")
        if not location or not location.strip():
            raise InvalidReportError("Location is required")

        report_id = str(uuid.uuid4())
        report_data = {
            "userId": user_id,
            "issueType": issue_type,
            "location": location.strip(),
            "imageDataUri": image_data_uri,
            "identificationResult": identification,
            "assessmentResult": None,
            "complaintTime": utc_now(),
            "resolvedTime": None,
            "status": STATUS_PENDING,
        }
        self.collection.document(report_id).set(report_data)
        logger.info("Report written with ID %s", report_id)
        return report_id

    def get(self, report_id):
        _, snapshot = self._existing_ref(report_id)
        return self._to_report(snapshot)

    def update_assessment(self, report_id, assessment):
        ref, _ = self._existing_ref(report_id)
        # Assessed, but not yet in progress
        self._update(ref, report_id, {"assessmentResult": assessment, "status": STATUS_PENDING})
        logger.info("Assessment stored for report %s", report_id)

    def update_status(self, report_id, status):
        if status not in STATUSES:
            raise InvalidReportError(f"Unknown status: {status!r}")
        ref, _ = self._existing_ref(report_id)
        update_data = {"status": status}
        if status == STATUS_RESOLVED:
            update_data["resolvedTime"] = utc_now()
        self._update(ref, report_id, update_data)
        logger.info("Report %s status changed to %s", report_id, status)

    def delete(self, report_id, user_id=None, is_admin=False):
        ref, snapshot = self._existing_ref(report_id)
        owner = (snapshot.to_dict() or {}).get("userId")
        if not is_admin and (not user_id or user_id != owner):
            raise PermissionDeniedError("Only the reporter or an administrator can delete this report")
        ref.delete()
        logger.info("Report deleted with ID %s", report_id)

    def list_all(self, include_merged=False):
        reports = [self._to_report(doc) for doc in self.collection.stream()]
        if not include_merged:
            reports = [r for r in reports if not r.get("mergedInto")]
        return newest_first(reports)

    def list_for_user(self, user_id):
        query = self.collection.where(filter=FieldFilter("userId", "==", user_id))
        return newest_first([self._to_report(doc) for doc in query.stream()])

    def merge(self, report_ids):
        """Fold duplicate reports into the earliest one. Returns the surviving report id."""
        unique_ids = list(dict.fromkeys(report_ids))
        if len(unique_ids) < 2:
            raise InvalidReportError("At least two distinct reports are needed to merge")

        group = [self.get(report_id) for report_id in unique_ids]
        issue_types = {r.get("issueType") for r in group}
        if len(issue_types) > 1:
            raise InvalidReportError("Only reports of the same issue type can be merged")
        already_merged = [r["id"] for r in group if r.get("mergedInto")]
        if already_merged:
            raise InvalidReportError(f"Reports already merged: {', '.join(already_merged)}")

        primary, absorbed = plan_merge(group)
        merged_reports = list(primary.get("mergedReports") or [])

        # All writes land together or not at all
        batch = self.db.batch()
        for report in absorbed:
            batch.update(self.collection.document(report["id"]), {"mergedInto": primary["id"]})
            merged_reports.append(report["id"])
            merged_reports.extend(report.get("mergedReports") or [])
        batch.update(self.collection.document(primary["id"]), {"mergedReports": merged_reports})
        batch.commit()

        logger.info("Merged %d reports into %s", len(absorbed), primary["id"])
        return primary["id"]
