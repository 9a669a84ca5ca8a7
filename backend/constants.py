ISSUE_TYPES = ["pothole", "garbage", "streetlight", "fallen_tree", "other"]

SEVERITIES = ["low", "medium", "high"]

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in progress"
STATUS_RESOLVED = "resolved"
STATUSES = [STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_RESOLVED]
