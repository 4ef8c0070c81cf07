from retrophoto.adapters.delivery.upload_client import RestoreUploadClient

__all__ = ["RestoreUploadClient"]
