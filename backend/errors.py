"""Domain errors raised by the backend and mapped to HTTP responses in main.py."""


class CivicReportError(Exception):
    status_code = 500


class InvalidReportError(CivicReportError, ValueError):
    status_code = 400


class AdminAuthError(CivicReportError):
    status_code = 401


class PermissionDeniedError(CivicReportError):
    status_code = 403


class ReportNotFoundError(CivicReportError, LookupError):
    status_code = 404

    def __init__(self, report_id):
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class AIServiceError(CivicReportError):
    status_code = 502


class FirebaseConfigError(CivicReportError):
    status_code = 503
