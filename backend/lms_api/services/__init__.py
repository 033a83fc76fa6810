"""
Application services.

- media_store: media store capability and the Cloudinary adapter
- media: upload staging and the media asset coordinator
- mailer: outbound email
- recovery: forgot / reset / change password
- accounts: registration, login and profile
- catalog: courses and lectures
"""

from .accounts import AccountService
from .catalog import CatalogService
from .media import MediaAssetCoordinator, UploadStaging, CleanupScheduler
from .recovery import RecoveryFlow

__all__ = [
    "AccountService",
    "CatalogService",
    "MediaAssetCoordinator",
    "UploadStaging",
    "CleanupScheduler",
    "RecoveryFlow",
]
