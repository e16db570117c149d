STATUS_CREATED = "CREATED"
STATUS_QUEUED = "QUEUED"
STATUS_RUNNING = "RUNNING"
STATUS_SUCCEEDED = "SUCCEEDED"
STATUS_FAILED = "FAILED"

STATUS_CHOICES = [
    (STATUS_CREATED, "Created"),
    (STATUS_QUEUED, "Queued"),
    (STATUS_RUNNING, "Running"),
    (STATUS_SUCCEEDED, "Succeeded"),
    (STATUS_FAILED, "Failed"),
]

STAGE_TRANSCRIBING = "transcribing"
STAGE_SUMMARIZING = "summarizing"
STAGE_SAVING = "saving"
STAGE_DONE = "done"

ERROR_UNEXPECTED = "unexpected"
