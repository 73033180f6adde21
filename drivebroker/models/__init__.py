# import every model so SQLAlchemy can resolve relationships by name
from drivebroker.models.database import Base
from drivebroker.models.file import FOLDER_MIME_TYPE, FileMeta
from drivebroker.models.share_link import ShareLink
from drivebroker.models.user import User

__all__ = ["Base", "FOLDER_MIME_TYPE", "FileMeta", "ShareLink", "User"]
