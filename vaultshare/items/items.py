"""
Vault item management for vaultshare.

Items live in vaultshare_vault_items; each one has a typed sub-record
(password, note, link, crypto wallet or document) holding its payload.
Secret fields are encrypted with the per-vault key before they are stored
and decrypted only for callers allowed to see the item.

Every operation runs the same gates in order: the caller's privilege in the
vault, the release policy (owners are exempt), then the item's visibility.
"""

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type
from uuid import UUID

from pydantic import BaseModel

from ..audit.models import AuditAction
from ..crypto import decrypt, derive_vault_key, encrypt
from ..exceptions import (
    DecryptionError,
    ForbiddenError,
    InvalidRequestError,
    NotAccessibleError,
    NotFoundError,
)
from ..notifications.models import NotificationKind
from ..utils.retention import can_restore, soft_delete_state
from ..utils.timeutils import to_iso
from ..vaults.models import Privilege, Vault
from .models import (
    ContentFormat,
    CreateItemRequest,
    CryptoWalletData,
    DocumentData,
    DocumentInfo,
    ItemPermission,
    ItemStatus,
    ItemType,
    LinkData,
    NoteData,
    PasswordData,
    UpdateItemRequest,
    VaultItem,
    VaultItemView,
    payload_field,
)
from .visibility import default_visibilities, replacement_visibilities

if TYPE_CHECKING:
    from ..client import VaultShare

logger = logging.getLogger(__name__)

_DOCUMENTS_TABLE = "vaultshare_vault_documents"

_SUBTABLES = {
    ItemType.PASSWORD: "vaultshare_vault_passwords",
    ItemType.NOTE: "vaultshare_vault_notes",
    ItemType.LINK: "vaultshare_vault_links",
    ItemType.CRYPTO_WALLET: "vaultshare_vault_crypto_wallets",
}

# payload field -> (column, encrypted)
_COLUMNS = {
    ItemType.PASSWORD: {
        "username": ("username", False),
        "password": ("encrypted_password", True),
        "website_url": ("website_url", False),
        "notes": ("encrypted_notes", True),
    },
    ItemType.NOTE: {
        "content": ("encrypted_content", True),
        "content_format": ("content_format", False),
    },
    ItemType.LINK: {
        "url": ("url", False),
        "notes": ("encrypted_notes", True),
    },
    ItemType.CRYPTO_WALLET: {
        "wallet_type": ("wallet_type", False),
        "platform_name": ("platform_name", False),
        "blockchain": ("blockchain", False),
        "public_address": ("public_address", False),
        "secret": ("encrypted_secret", True),
        "notes": ("encrypted_notes", True),
    },
}

_PAYLOAD_MODELS: Dict[ItemType, Type[BaseModel]] = {
    ItemType.PASSWORD: PasswordData,
    ItemType.NOTE: NoteData,
    ItemType.LINK: LinkData,
    ItemType.CRYPTO_WALLET: CryptoWalletData,
}


def encode_payload(
    item_type: ItemType,
    payload: BaseModel,
    key: bytes,
    partial: bool = False,
) -> Dict[str, Any]:
    """
    Turn a typed payload into sub-table columns, encrypting secret fields.

    With ``partial`` only the fields set on the payload are returned.
    """
    values = payload.model_dump(mode="json", exclude_none=partial)
    row = {}
    for field, value in values.items():
        column, secret = _COLUMNS[item_type][field]
        if secret and value is not None:
            value = encrypt(value, key)
        row[column] = value
    return row


def decode_payload(item_type: ItemType, row: Dict[str, Any], key: bytes) -> BaseModel:
    """Turn a sub-table row back into its typed payload, decrypting secrets."""
    data = {}
    for field, (column, secret) in _COLUMNS[item_type].items():
        value = row.get(column)
        if secret and value:
            value = decrypt(value, key)
        data[field] = value
    return _PAYLOAD_MODELS[item_type](**data)


class VaultItemManager:
    """
    Manager for vault items.

    Example:
        ```python
        item = await vaultshare.items.create(
            CreateItemRequest(
                vault_id=vault.id,
                item_type=ItemType.PASSWORD,
                title="Bank login",
                password=PasswordData(username="jane", password="hunter2"),
            ),
            user_id=owner_id,
        )

        # Members only see what their visibility rows allow
        items = await vaultshare.items.list_by_vault(vault.id, member_id)
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize VaultItemManager.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client

    @property
    def restore_window(self) -> timedelta:
        return timedelta(days=self.vaultshare.config.restore_window_days)

    def _key(self, vault: Vault) -> bytes:
        return derive_vault_key(
            vault.id, vault.owner_id, self.vaultshare.config.encryption_secret
        )

    async def _require_open(self, vault: Vault, privilege: Privilege, user_id: UUID) -> None:
        if privilege == Privilege.OWNER:
            return
        if not await self.vaultshare.policies.is_accessible(vault, user_id):
            raise NotAccessibleError()

    async def _get_row(self, item_id: UUID) -> Optional[VaultItem]:
        result = await self.client.table("vaultshare_vault_items").select("*").eq(
            "id", str(item_id)
        ).execute()

        if not result.data:
            return None

        return VaultItem(**result.data[0])

    async def _load(self, item_id: UUID, user_id: UUID):
        """Load an item, its vault and the caller's privilege, running the policy gate."""
        item = await self._get_row(item_id)
        if item is None:
            raise NotFoundError("Item not found")

        vault, privilege = await self.vaultshare.members.require_privilege(
            item.vault_id, user_id
        )
        await self._require_open(vault, privilege, user_id)
        return item, vault, privilege

    async def _require_edit(self, vault: Vault, item: VaultItem, user_id: UUID) -> None:
        permission = await self.vaultshare.visibility.get_effective_permission(
            vault, item.id, user_id
        )
        if permission is None:
            raise NotFoundError("Item not found")
        if permission != ItemPermission.EDIT:
            raise ForbiddenError("You do not have edit permission on this item")

    async def get(self, item_id: UUID, user_id: UUID) -> VaultItemView:
        """
        Get an item, decrypted.

        Args:
            item_id: Item UUID
            user_id: Calling user

        Returns:
            VaultItemView

        Raises:
            NotFoundError: If the item does not exist, is deleted, or the
                caller has no visibility on it
            NotAccessibleError: If the vault's policy keeps the caller out
        """
        item, vault, _ = await self._load(item_id, user_id)

        if item.status == ItemStatus.DELETED:
            raise NotFoundError("Item not found")

        permission = await self.vaultshare.visibility.get_effective_permission(
            vault, item.id, user_id
        )
        if permission is None:
            raise NotFoundError("Item not found")

        return await self._view(vault, item, permission)

    async def list_by_vault(
        self,
        vault_id: UUID,
        user_id: UUID,
        item_type: Optional[ItemType] = None,
    ) -> List[VaultItemView]:
        """
        List the active items of a vault the caller can see, decrypted.

        A vault closed by its policy yields an empty list.

        Args:
            vault_id: Vault UUID
            user_id: Calling user
            item_type: Only return items of this type

        Returns:
            List of VaultItemView, newest first
        """
        vault, privilege = await self.vaultshare.members.require_privilege(vault_id, user_id)

        try:
            await self._require_open(vault, privilege, user_id)
        except NotAccessibleError:
            return []

        query = self.client.table("vaultshare_vault_items").select("*").eq(
            "vault_id", str(vault_id)
        ).eq("status", ItemStatus.ACTIVE.value)

        if item_type:
            query = query.eq("item_type", item_type.value)

        result = await query.order("created_at", desc=True).execute()
        items = [VaultItem(**row) for row in result.data]

        if privilege == Privilege.OWNER:
            permissions = {item.id: ItemPermission.EDIT for item in items}
        else:
            member = await self.vaultshare.members.get_active(vault_id, user_id)
            permissions = await self.vaultshare.visibility.permissions_for_member(
                member.id, [item.id for item in items]
            )

        views = []
        for item in items:
            permission = permissions.get(item.id)
            if permission is not None:
                views.append(await self._view(vault, item, permission))
        return views

    async def list_deleted(self, vault_id: UUID, user_id: UUID) -> List[VaultItem]:
        """
        List a vault's soft-deleted items, newest deletion first.

        Raises:
            ForbiddenError: If the caller is a plain member
        """
        vault, privilege = await self.vaultshare.members.require_privilege(
            vault_id, user_id, Privilege.OWNER, Privilege.ADMIN
        )
        await self._require_open(vault, privilege, user_id)

        result = await self.client.table("vaultshare_vault_items").select("*").eq(
            "vault_id", str(vault_id)
        ).eq("status", ItemStatus.DELETED.value).order("deleted_at", desc=True).execute()

        return [VaultItem(**row) for row in result.data]

    async def create(self, request: CreateItemRequest, user_id: UUID) -> VaultItemView:
        """
        Create an item in an accessible vault.

        Without an explicit visibility list the creator and the owner get
        EDIT and every other active member VIEW.

        Args:
            request: Item fields, typed payload and optional visibilities
            user_id: Calling user, any active member

        Returns:
            VaultItemView as the creator sees it

        Raises:
            NotFoundError: If the caller cannot see the vault
            NotAccessibleError: If the vault's policy keeps the caller out
        """
        vault, privilege = await self.vaultshare.members.require_privilege(
            request.vault_id, user_id
        )
        await self._require_open(vault, privilege, user_id)

        now = to_iso(self.vaultshare.now())
        result = await self.client.table("vaultshare_vault_items").insert(
            {
                "vault_id": str(vault.id),
                "created_by_user_id": str(user_id),
                "item_type": request.item_type.value,
                "title": request.title,
                "description": request.description,
                "status": ItemStatus.ACTIVE.value,
                "created_at": now,
                "updated_at": now,
            }
        ).execute()

        if not result.data:
            raise ValueError("Failed to create item")

        item = VaultItem(**result.data[0])

        try:
            await self._insert_payload(vault, item, request)
        except Exception:
            logger.exception("Rolling back item %s after a failed payload write", item.id)
            await self.client.table("vaultshare_vault_items").delete().eq(
                "id", str(item.id)
            ).execute()
            raise

        members = await self.vaultshare.members.list_active(vault.id)
        grants = default_visibilities(members, vault.owner_id, user_id, request.visibilities)
        await self.vaultshare.visibility.seed(item.id, grants)

        await self.vaultshare.audit.log(
            AuditAction.ITEM_CREATED,
            vault_id=vault.id,
            user_id=user_id,
            item_id=item.id,
            metadata={"title": item.title, "item_type": item.item_type.value},
        )

        if privilege == Privilege.OWNER:
            permission = ItemPermission.EDIT
        else:
            creator = next(member for member in members if member.user_id == user_id)
            permission = grants.get(creator.id, ItemPermission.VIEW)

        return await self._view(vault, item, permission)

    async def update(
        self,
        item_id: UUID,
        request: UpdateItemRequest,
        user_id: UUID,
    ) -> Optional[VaultItemView]:
        """
        Partially update an item.

        Args:
            item_id: Item UUID
            request: Fields to change; ``visibilities`` replaces the whole
                visibility list when given
            user_id: Calling user, who needs EDIT on the item

        Returns:
            Updated VaultItemView, or None when the new visibility list
            leaves the caller without access

        Raises:
            NotFoundError: If the item is missing, deleted or invisible to the caller
            ForbiddenError: If the caller only has VIEW
            NotAccessibleError: If the vault's policy keeps the caller out
            InvalidRequestError: If the payload does not match the item type
        """
        item, vault, privilege = await self._load(item_id, user_id)

        if item.status == ItemStatus.DELETED:
            raise NotFoundError("Item not found")

        await self._require_edit(vault, item, user_id)
        self._check_payload_type(item.item_type, request)

        changes = request.model_dump(include={"title", "description"}, exclude_none=True)
        now = to_iso(self.vaultshare.now())

        result = await self.client.table("vaultshare_vault_items").update(
            {**changes, "updated_at": now}
        ).eq("id", str(item.id)).execute()
        item = VaultItem(**result.data[0])

        changed = list(changes)

        if item.item_type == ItemType.DOCUMENT:
            if request.document is not None:
                await self._replace_document(vault, item, request.document)
                changed.append("document")
            elif request.delete_document:
                await self._remove_document(item.id)
                changed.append("document")
        else:
            payload = getattr(request, payload_field(item.item_type))
            if payload is not None:
                columns = encode_payload(item.item_type, payload, self._key(vault), partial=True)
                if columns:
                    await self.client.table(_SUBTABLES[item.item_type]).update(columns).eq(
                        "item_id", str(item.id)
                    ).execute()
                    changed.append(payload_field(item.item_type))

        if request.visibilities is not None:
            members = await self.vaultshare.members.list_active(vault.id)
            grants = replacement_visibilities(members, vault.owner_id, request.visibilities)
            await self.vaultshare.visibility.replace(item.id, grants)
            changed.append("visibilities")

        await self.vaultshare.audit.log(
            AuditAction.ITEM_UPDATED,
            vault_id=vault.id,
            user_id=user_id,
            item_id=item.id,
            metadata={"fields": changed},
        )

        if privilege != Privilege.OWNER:
            await self._notify_owner(NotificationKind.ITEM_UPDATED, vault, item)

        permission = await self.vaultshare.visibility.get_effective_permission(
            vault, item.id, user_id
        )
        if permission is None:
            return None
        return await self._view(vault, item, permission)

    async def delete(self, item_id: UUID, user_id: UUID) -> bool:
        """
        Soft-delete an item.

        The item's document bytes stay in storage so a restore brings it back whole.

        The EDIT check runs before the already-deleted check: a caller with
        only VIEW gets ForbiddenError whatever the item's state, and only
        editors see the idempotent False.

        Returns:
            True if the item was deleted, False if it already was

        Raises:
            NotFoundError: If the item is missing or invisible to the caller
            ForbiddenError: If the caller only has VIEW
            NotAccessibleError: If the vault's policy keeps the caller out
        """
        item, vault, privilege = await self._load(item_id, user_id)
        await self._require_edit(vault, item, user_id)

        if item.status == ItemStatus.DELETED:
            return False

        now = to_iso(self.vaultshare.now())
        await self.client.table("vaultshare_vault_items").update(
            {
                "status": ItemStatus.DELETED.value,
                "deleted_at": now,
                "deleted_by": str(user_id),
                "updated_at": now,
            }
        ).eq("id", str(item.id)).execute()

        await self.vaultshare.audit.log(
            AuditAction.ITEM_DELETED,
            vault_id=vault.id,
            user_id=user_id,
            item_id=item.id,
            metadata={"title": item.title},
        )

        if privilege != Privilege.OWNER:
            await self._notify_owner(NotificationKind.ITEM_DELETED, vault, item)

        return True

    async def restore(self, item_id: UUID, user_id: UUID) -> bool:
        """
        Restore a soft-deleted item within the restore window.

        Returns:
            True if the item was restored, False if it was not deleted or the
            window has passed (the item then stays deleted)

        Raises:
            ForbiddenError: If the caller is a plain member
            NotAccessibleError: If the vault's policy keeps the caller out
        """
        item = await self._get_row(item_id)
        if item is None:
            raise NotFoundError("Item not found")

        vault, privilege = await self.vaultshare.members.require_privilege(
            item.vault_id, user_id, Privilege.OWNER, Privilege.ADMIN
        )
        await self._require_open(vault, privilege, user_id)

        state = soft_delete_state(item.status.value, item.deleted_at)
        if not can_restore(state, self.vaultshare.now(), self.restore_window):
            return False

        await self.client.table("vaultshare_vault_items").update(
            {
                "status": ItemStatus.ACTIVE.value,
                "deleted_at": None,
                "deleted_by": None,
                "updated_at": to_iso(self.vaultshare.now()),
            }
        ).eq("id", str(item.id)).execute()

        await self.vaultshare.audit.log(
            AuditAction.ITEM_RESTORED,
            vault_id=vault.id,
            user_id=user_id,
            item_id=item.id,
        )

        return True

    async def reencrypt(
        self,
        vault_id: UUID,
        previous_owner_id: UUID,
        user_id: UUID,
    ) -> int:
        """
        Re-encrypt a vault's secrets after an ownership transfer.

        Values still under the key derived from ``previous_owner_id`` are
        rewritten under the current owner's key. Values already under the
        current key are left alone, so the operation can be re-run.

        Args:
            vault_id: Vault UUID
            previous_owner_id: Owner the old ciphertext was written under
            user_id: Calling user, who must be the current owner

        Returns:
            Number of items rewritten

        Raises:
            DecryptionError: If a value opens under neither key
        """
        vault = await self.vaultshare.members.require_owner(vault_id, user_id)

        secret = self.vaultshare.config.encryption_secret
        old_key = derive_vault_key(vault.id, previous_owner_id, secret)
        new_key = self._key(vault)

        result = await self.client.table("vaultshare_vault_items").select("*").eq(
            "vault_id", str(vault_id)
        ).execute()

        rewritten = 0
        for item in [VaultItem(**row) for row in result.data]:
            table = _SUBTABLES.get(item.item_type)
            if table is None:
                continue

            sub = await self.client.table(table).select("*").eq(
                "item_id", str(item.id)
            ).execute()
            if not sub.data:
                continue

            updates = {}
            for column, is_secret in _COLUMNS[item.item_type].values():
                value = sub.data[0].get(column)
                if not is_secret or not value:
                    continue
                try:
                    plaintext = decrypt(value, old_key)
                except DecryptionError:
                    # Already under the current key; raises if it is not
                    decrypt(value, new_key)
                    continue
                updates[column] = encrypt(plaintext, new_key)

            if updates:
                await self.client.table(table).update(updates).eq(
                    "item_id", str(item.id)
                ).execute()
                rewritten += 1

        await self.vaultshare.audit.log(
            AuditAction.ITEMS_REENCRYPTED,
            vault_id=vault_id,
            user_id=user_id,
            metadata={"items": rewritten, "previous_owner_id": str(previous_owner_id)},
        )
        logger.info("Re-encrypted %d items in vault %s", rewritten, vault_id)

        return rewritten

    async def list_document_keys(self, vault_id: UUID) -> List[str]:
        """Storage keys of every document in a vault, deleted items included."""
        result = await self.client.table("vaultshare_vault_items").select("id").eq(
            "vault_id", str(vault_id)
        ).eq("item_type", ItemType.DOCUMENT.value).execute()

        if not result.data:
            return []

        docs = await self.client.table(_DOCUMENTS_TABLE).select("object_key").in_(
            "item_id", [row["id"] for row in result.data]
        ).execute()

        return [row["object_key"] for row in docs.data]

    def _check_payload_type(self, item_type: ItemType, request: UpdateItemRequest) -> None:
        expected = payload_field(item_type)
        for field in ("password", "note", "link", "crypto_wallet", "document"):
            if field != expected and getattr(request, field) is not None:
                raise InvalidRequestError(
                    f"{field} data cannot be applied to a {item_type.value} item"
                )
        if request.delete_document and item_type != ItemType.DOCUMENT:
            raise InvalidRequestError("Only document items have a file to delete")

    async def _insert_payload(self, vault: Vault, item: VaultItem, request: CreateItemRequest) -> None:
        if item.item_type == ItemType.DOCUMENT:
            await self._store_document(vault, item, request.document)
            return

        payload = getattr(request, payload_field(item.item_type))
        if item.item_type == ItemType.NOTE and payload.content_format is None:
            payload = payload.model_copy(update={"content_format": ContentFormat.PLAIN_TEXT})

        columns = encode_payload(item.item_type, payload, self._key(vault))
        await self.client.table(_SUBTABLES[item.item_type]).insert(
            {"item_id": str(item.id), **columns}
        ).execute()

    async def _store_document(self, vault: Vault, item: VaultItem, document: DocumentData) -> None:
        object_key = self.vaultshare.documents.object_key(vault.id, item.id, document.file_name)
        await self.vaultshare.documents.put(object_key, document.content, document.content_type)

        try:
            await self.client.table(_DOCUMENTS_TABLE).insert(
                {
                    "item_id": str(item.id),
                    "object_key": object_key,
                    "original_file_name": document.file_name,
                    "content_type": document.content_type,
                    "file_size": len(document.content),
                    "uploaded_at": to_iso(self.vaultshare.now()),
                }
            ).execute()
        except Exception:
            logger.exception("Removing %s after a failed document insert", object_key)
            await self.vaultshare.documents.delete(object_key)
            raise

    async def _get_document_row(self, item_id: UUID) -> Optional[Dict[str, Any]]:
        result = await self.client.table(_DOCUMENTS_TABLE).select("*").eq(
            "item_id", str(item_id)
        ).execute()
        return result.data[0] if result.data else None

    async def _replace_document(self, vault: Vault, item: VaultItem, document: DocumentData) -> None:
        previous = await self._get_document_row(item.id)
        if previous:
            await self.client.table(_DOCUMENTS_TABLE).delete().eq(
                "item_id", str(item.id)
            ).execute()

        await self._store_document(vault, item, document)

        new_key = self.vaultshare.documents.object_key(vault.id, item.id, document.file_name)
        if previous and previous["object_key"] != new_key:
            await self.vaultshare.documents.delete(previous["object_key"])

    async def _remove_document(self, item_id: UUID) -> None:
        previous = await self._get_document_row(item_id)
        if previous is None:
            return

        await self.client.table(_DOCUMENTS_TABLE).delete().eq(
            "item_id", str(item_id)
        ).execute()
        await self.vaultshare.documents.delete(previous["object_key"])

    async def _view(self, vault: Vault, item: VaultItem, permission: ItemPermission) -> VaultItemView:
        payloads: Dict[str, Any] = {}

        if item.item_type == ItemType.DOCUMENT:
            row = await self._get_document_row(item.id)
            if row:
                payloads["document"] = DocumentInfo(
                    object_key=row["object_key"],
                    file_name=row["original_file_name"],
                    content_type=row["content_type"],
                    file_size=row["file_size"],
                    uploaded_at=row["uploaded_at"],
                    download_url=await self.vaultshare.documents.presigned_url(
                        row["object_key"]
                    ),
                )
        else:
            result = await self.client.table(_SUBTABLES[item.item_type]).select("*").eq(
                "item_id", str(item.id)
            ).execute()
            if result.data:
                payloads[payload_field(item.item_type)] = decode_payload(
                    item.item_type, result.data[0], self._key(vault)
                )

        visibilities = None
        if permission == ItemPermission.EDIT:
            visibilities = await self.vaultshare.visibility.list_for_item(item.id)

        return VaultItemView(
            **item.model_dump(exclude={"deleted_by"}),
            user_permission=permission,
            visibilities=visibilities,
            **payloads,
        )

    async def _notify_owner(self, kind: NotificationKind, vault: Vault, item: VaultItem) -> None:
        await self.vaultshare.notifications.send(
            kind,
            user_id=vault.owner_id,
            vault_id=vault.id,
            item_id=item.id,
            context={"vault_name": vault.name, "item_title": item.title},
        )
