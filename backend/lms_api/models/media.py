"""
Media reference value shared by every model that points at a hosted asset.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MediaReference:
    """Identifier and delivery URL of one asset in the media store."""
    public_id: Optional[str] = None
    secure_url: Optional[str] = None

    @classmethod
    def empty(cls) -> "MediaReference":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.public_id
