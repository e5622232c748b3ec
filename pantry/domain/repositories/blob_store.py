"""Blob store interface"""
from abc import ABC, abstractmethod
from typing import Optional


class BlobStore(ABC):
    """Path-addressed object storage for item images"""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store data under path and return its download URL"""
        pass

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Delete the blob, returning False if it did not exist"""
        pass

    @abstractmethod
    def get_download_url(self, path: str) -> str:
        """Get the public URL for a stored path"""
        pass

    @abstractmethod
    def path_from_url(self, url: str) -> Optional[str]:
        """Recover a storage path from a URL this store produced.

        Returns None when the URL does not belong to this store.
        """
        pass
