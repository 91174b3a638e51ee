"""
Tests for vaultshare.notifications module.
"""

from uuid import uuid4

import pytest

from vaultshare.notifications.models import NotificationKind


class TestSend:
    """Tests for NotificationManager.send."""

    @pytest.mark.asyncio
    async def test_send_in_app(self, vaultshare, fake_db):
        """Test a known user gets a formatted in-app row."""
        user_id, vault_id = uuid4(), uuid4()

        delivered = await vaultshare.notifications.send(
            NotificationKind.VAULT_RELEASED,
            user_id=user_id,
            vault_id=vault_id,
            context={"vault_name": "Family"},
        )

        assert delivered is True
        rows = fake_db.rows("vaultshare_notifications", user_id=user_id)
        assert len(rows) == 1
        assert rows[0]["title"] == "Vault released"
        assert rows[0]["description"] == "Family is now accessible."
        assert rows[0]["vault_id"] == str(vault_id)
        assert rows[0]["is_read"] is False

    @pytest.mark.asyncio
    async def test_missing_context_values_blank(self, vaultshare, fake_db):
        """Test template fields missing from the context render empty."""
        user_id = uuid4()

        await vaultshare.notifications.send(NotificationKind.ITEM_UPDATED, user_id=user_id)

        row = fake_db.rows("vaultshare_notifications", user_id=user_id)[0]
        assert row["description"] == " in  was updated."

    @pytest.mark.asyncio
    async def test_send_without_recipient(self, vaultshare, fake_db):
        """Test a notification with nobody to tell is dropped."""
        assert await vaultshare.notifications.send(NotificationKind.VAULT_RELEASED) is False
        assert fake_db.rows("vaultshare_notifications") == []

    @pytest.mark.asyncio
    async def test_store_failure_reported(self, vaultshare, fake_db):
        """Test a failed insert returns False instead of raising."""
        fake_db.failures.add(("vaultshare_notifications", "insert"))

        delivered = await vaultshare.notifications.send(
            NotificationKind.VAULT_RELEASED, user_id=uuid4()
        )

        assert delivered is False

    @pytest.mark.asyncio
    async def test_invite_email(self, vaultshare, fake_db):
        """Test an invitation e-mail carries the accept link and keeps the token out of storage."""
        invite_id, user_id = uuid4(), uuid4()

        delivered = await vaultshare.notifications.send(
            NotificationKind.INVITE_RECEIVED,
            user_id=user_id,
            email="alice@example.com",
            invite_id=invite_id,
            context={"token": "abc", "inviter": "Olivia", "vault_name": "Family"},
        )

        assert delivered is True
        email, options = fake_db.auth.admin.invite_user_by_email.call_args.args
        assert email == "alice@example.com"
        assert options["redirect_to"] == "https://app.example.com/invites/accept?token=abc"
        assert options["data"]["invite_id"] == str(invite_id)

        row = fake_db.rows("vaultshare_notifications", user_id=user_id)[0]
        assert row["description"] == "Olivia invited you to join Family."
        assert "abc" not in row["description"]

    @pytest.mark.asyncio
    async def test_invite_email_failure(self, vaultshare, fake_db):
        """Test a failed e-mail reports False."""
        fake_db.auth.admin.invite_user_by_email.side_effect = RuntimeError("smtp down")

        delivered = await vaultshare.notifications.send(
            NotificationKind.INVITE_RECEIVED,
            email="alice@example.com",
            context={"token": "abc"},
        )

        assert delivered is False

    @pytest.mark.asyncio
    async def test_email_only_for_invites(self, vaultshare, fake_db):
        """Test other kinds never send e-mail."""
        await vaultshare.notifications.send(
            NotificationKind.VAULT_RELEASED, user_id=uuid4(), email="alice@example.com"
        )

        fake_db.auth.admin.invite_user_by_email.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_many(self, vaultshare, fake_db):
        """Test sending to several users counts successes."""
        users = [uuid4(), uuid4(), uuid4()]

        sent = await vaultshare.notifications.send_many(
            NotificationKind.VAULT_RELEASED, users, context={"vault_name": "Family"}
        )

        assert sent == 3
        assert len(fake_db.rows("vaultshare_notifications")) == 3


class TestAcceptUrl:
    """Tests for NotificationManager.accept_url."""

    def test_accept_url(self, vaultshare):
        assert (
            vaultshare.notifications.accept_url("tok")
            == "https://app.example.com/invites/accept?token=tok"
        )

    def test_no_base_url(self, vaultshare):
        """Test no link is built without an application URL."""
        vaultshare.config.app_base_url = None

        assert vaultshare.notifications.accept_url("tok") is None


class TestInbox:
    """Tests for reading and managing notifications."""

    @pytest.mark.asyncio
    async def test_list_and_mark_read(self, vaultshare, clock):
        """Test listing newest first and marking read."""
        user_id = uuid4()
        await vaultshare.notifications.send(
            NotificationKind.VAULT_RELEASED, user_id=user_id, context={"vault_name": "A"}
        )
        clock.advance(minutes=5)
        await vaultshare.notifications.send(
            NotificationKind.VAULT_EXPIRED, user_id=user_id, context={"vault_name": "B"}
        )
        await vaultshare.notifications.send(NotificationKind.VAULT_RELEASED, user_id=uuid4())

        inbox = await vaultshare.notifications.list_for_user(user_id)
        assert [n.kind for n in inbox] == [
            NotificationKind.VAULT_EXPIRED,
            NotificationKind.VAULT_RELEASED,
        ]

        assert await vaultshare.notifications.mark_read(inbox[0].id, user_id) is True
        unread = await vaultshare.notifications.list_for_user(user_id, unread_only=True)
        assert [n.id for n in unread] == [inbox[1].id]

    @pytest.mark.asyncio
    async def test_mark_read_other_user(self, vaultshare):
        """Test a user cannot mark someone else's notification."""
        owner_id = uuid4()
        await vaultshare.notifications.send(NotificationKind.VAULT_RELEASED, user_id=owner_id)
        note = (await vaultshare.notifications.list_for_user(owner_id))[0]

        assert await vaultshare.notifications.mark_read(note.id, uuid4()) is False

    @pytest.mark.asyncio
    async def test_mark_all_read(self, vaultshare):
        user_id = uuid4()
        for _ in range(3):
            await vaultshare.notifications.send(NotificationKind.VAULT_RELEASED, user_id=user_id)

        assert await vaultshare.notifications.mark_all_read(user_id) == 3
        assert await vaultshare.notifications.mark_all_read(user_id) == 0

    @pytest.mark.asyncio
    async def test_delete(self, vaultshare, fake_db):
        """Test deleting one notification and then the rest."""
        user_id = uuid4()
        await vaultshare.notifications.send(NotificationKind.VAULT_RELEASED, user_id=user_id)
        await vaultshare.notifications.send(NotificationKind.VAULT_EXPIRED, user_id=user_id)
        first = (await vaultshare.notifications.list_for_user(user_id))[0]

        assert await vaultshare.notifications.delete(first.id, user_id) is True
        assert await vaultshare.notifications.delete(first.id, user_id) is False
        assert len(fake_db.rows("vaultshare_notifications", user_id=user_id)) == 1

        await vaultshare.notifications.delete_all_for_user(user_id)
        assert fake_db.rows("vaultshare_notifications", user_id=user_id) == []
