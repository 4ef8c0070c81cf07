from retrophoto.application.use_cases.queue_upload import (
    QueueUploadCommand,
    QueueUploadResult,
    QueueUploadUseCase,
)

__all__ = ["QueueUploadCommand", "QueueUploadResult", "QueueUploadUseCase"]
