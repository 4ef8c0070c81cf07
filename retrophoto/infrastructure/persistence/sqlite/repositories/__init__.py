from retrophoto.infrastructure.persistence.sqlite.repositories.upload_queue_repository import (
    SqliteUploadQueueRepository,
)

__all__ = ["SqliteUploadQueueRepository"]
