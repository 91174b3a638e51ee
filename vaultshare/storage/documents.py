"""
Document blob storage for vaultshare.

Document items keep their metadata in vaultshare_vault_documents and their
bytes in a Supabase Storage bucket, under ``<vault_id>/<item_id>/<file name>``.

Wraps: storage3._async.file_api.AsyncBucketProxy
"""

import logging
from typing import TYPE_CHECKING, Optional
from uuid import UUID

if TYPE_CHECKING:
    from ..client import VaultShare

logger = logging.getLogger(__name__)


class DocumentStorage:
    """
    Stores document bytes in Supabase Storage.

    Example:
        ```python
        key = vaultshare.documents.object_key(vault.id, item.id, "passport.pdf")
        await vaultshare.documents.put(key, data, "application/pdf")
        url = await vaultshare.documents.presigned_url(key)
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize DocumentStorage.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client
        self.bucket = vaultshare.config.document_bucket

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    @staticmethod
    def object_key(vault_id: UUID, item_id: UUID, file_name: str) -> str:
        """Storage path of a document's bytes."""
        safe_name = file_name.replace("/", "_").replace("\\", "_")
        return f"{vault_id}/{item_id}/{safe_name}"

    async def put(self, object_key: str, data: bytes, content_type: str) -> str:
        """
        Upload document bytes, replacing any existing object at the key.

        Args:
            object_key: Storage path
            data: File contents
            content_type: MIME type served back on download

        Returns:
            The object key
        """
        await self._bucket().upload(
            object_key,
            data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        logger.debug("Uploaded %d bytes to %s", len(data), object_key)
        return object_key

    async def delete(self, object_key: str) -> bool:
        """
        Delete a stored object.

        Returns:
            True if the object was removed, False if the delete failed
        """
        try:
            await self._bucket().remove([object_key])
        except Exception:
            logger.exception("Failed to delete document %s", object_key)
            return False

        return True

    async def presigned_url(self, object_key: str, ttl: Optional[int] = None) -> str:
        """
        Create a time-limited download URL.

        Args:
            object_key: Storage path
            ttl: Lifetime in seconds; defaults to ``presigned_url_ttl`` from config

        Returns:
            Signed URL
        """
        expires_in = ttl or self.vaultshare.config.presigned_url_ttl
        response = await self._bucket().create_signed_url(object_key, expires_in)
        return response.get("signedURL") or response.get("signedUrl")
