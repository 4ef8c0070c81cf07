from retrophoto.db.models import ALL_MODELS, QueuedUpload, database_proxy
from retrophoto.db.session import DatabaseSessionManager

__all__ = ["ALL_MODELS", "DatabaseSessionManager", "QueuedUpload", "database_proxy"]
