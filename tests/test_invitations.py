"""
Tests for vaultshare.invitations module.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio
from pydantic import ValidationError

from vaultshare.exceptions import ForbiddenError, InvalidRequestError, NotFoundError
from vaultshare.invitations.invites import hash_token
from vaultshare.invitations.models import InviteStatus
from vaultshare.items.models import CreateItemRequest, ItemPermission, ItemType, NoteData
from vaultshare.notifications.models import NotificationKind
from vaultshare.vaults.models import Privilege


@pytest_asyncio.fixture
async def family(vaultshare, owner):
    return await vaultshare.vaults.create(user_id=owner.id, name="Family")


class TestCreateInvite:
    """Tests for sending invitations."""

    @pytest.mark.asyncio
    async def test_create_invite(self, vaultshare, fake_db, family, owner, bob):
        """Test inviting a registered user notifies them and e-mails the link."""
        invite = await vaultshare.invites.create(
            family.id, "Bob@Example.com", owner.id, privilege=Privilege.ADMIN
        )

        assert invite.invitee_email == "bob@example.com"
        assert invite.privilege == Privilege.ADMIN
        assert invite.status == InviteStatus.SENT
        assert invite.sent_at is not None
        assert invite.expires_at == vaultshare.now() + timedelta(days=7)
        assert invite.token

        stored = fake_db.rows("vaultshare_vault_invites", id=invite.id)[0]
        assert stored["token_hash"] == hash_token(invite.token)
        assert invite.token not in stored.values()

        notes = fake_db.rows(
            "vaultshare_notifications",
            user_id=bob.id,
            kind=NotificationKind.INVITE_RECEIVED.value,
        )
        assert notes[0]["description"] == "Olivia Owner invited you to join Family."

        invite_email = fake_db.auth.admin.invite_user_by_email
        invite_email.assert_awaited_once()
        email, options = invite_email.call_args.args
        assert email == "bob@example.com"
        assert options["redirect_to"] == (
            f"https://app.example.com/invites/accept?token={invite.token}"
        )
        assert options["data"]["vault_name"] == "Family"

    @pytest.mark.asyncio
    async def test_owner_privilege_refused(self, vaultshare, family, owner, alice):
        """Test nobody can invite someone as owner, not even an admin."""
        await vaultshare.members.activate(family.id, alice.id, Privilege.ADMIN)

        with pytest.raises(ForbiddenError):
            await vaultshare.invites.create(
                family.id, "bob@example.com", alice.id, privilege=Privilege.OWNER
            )
        with pytest.raises(ForbiddenError):
            await vaultshare.invites.create(
                family.id, "bob@example.com", owner.id, privilege=Privilege.OWNER
            )

    @pytest.mark.asyncio
    async def test_admin_cannot_invite(self, vaultshare, family, alice):
        """Test only the owner invites."""
        await vaultshare.members.activate(family.id, alice.id, Privilege.ADMIN)

        with pytest.raises(ForbiddenError):
            await vaultshare.invites.create(family.id, "bob@example.com", alice.id)

    @pytest.mark.asyncio
    async def test_invite_existing_member(self, vaultshare, family, owner, alice):
        """Test inviting an active member is refused."""
        await vaultshare.members.activate(family.id, alice.id, Privilege.MEMBER)

        with pytest.raises(InvalidRequestError):
            await vaultshare.invites.create(family.id, "alice@example.com", owner.id)

    @pytest.mark.asyncio
    async def test_new_invite_cancels_previous(self, vaultshare, family, owner):
        """Test a second invite for the same address cancels the first."""
        first = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)
        second = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)

        assert (await vaultshare.invites.get(first.id)).status == InviteStatus.CANCELLED
        assert (await vaultshare.invites.get(second.id)).status == InviteStatus.SENT

    @pytest.mark.asyncio
    async def test_failed_email_leaves_invite_pending(self, vaultshare, fake_db, family, owner):
        """Test an e-mail failure keeps the invite pending and acceptable."""
        fake_db.auth.admin.invite_user_by_email.side_effect = RuntimeError("smtp down")

        invite = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)

        assert invite.status == InviteStatus.PENDING
        assert invite.sent_at is None

    @pytest.mark.asyncio
    async def test_invalid_email(self, vaultshare, family, owner):
        """Test a malformed address is refused."""
        with pytest.raises(ValidationError):
            await vaultshare.invites.create(family.id, "not-an-email", owner.id)


class TestAcceptInvite:
    """Tests for accepting invitations."""

    @pytest.mark.asyncio
    async def test_accept(self, vaultshare, fake_db, family, owner, bob):
        """Test accepting makes the invitee a member who can see existing items."""
        item = await vaultshare.items.create(
            CreateItemRequest(
                vault_id=family.id,
                item_type=ItemType.NOTE,
                title="Wifi",
                note=NoteData(content="hunter2"),
            ),
            owner.id,
        )
        invite = await vaultshare.invites.create(
            family.id, "bob@example.com", owner.id, privilege=Privilege.ADMIN
        )

        accepted = await vaultshare.invites.accept(invite.token, "BOB@example.com", bob.id)

        assert accepted.status == InviteStatus.ACCEPTED
        assert accepted.invitee_id == bob.id

        member = await vaultshare.members.get_active(family.id, bob.id)
        assert member.privilege == Privilege.ADMIN
        assert member.added_by == owner.id

        view = await vaultshare.items.get(item.id, bob.id)
        assert view.user_permission == ItemPermission.VIEW
        assert view.note.content == "hunter2"

        notes = fake_db.rows(
            "vaultshare_notifications",
            user_id=owner.id,
            kind=NotificationKind.INVITE_ACCEPTED.value,
        )
        assert notes[0]["description"] == "Bob joined Family."

    @pytest.mark.asyncio
    async def test_accept_twice(self, vaultshare, fake_db, family, owner, bob):
        """Test a second accept by the same user leaves one member row."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)

        first = await vaultshare.invites.accept(invite.token, "bob@example.com", bob.id)
        second = await vaultshare.invites.accept(invite.token, "bob@example.com", bob.id)

        assert first.status == InviteStatus.ACCEPTED
        assert second.status == InviteStatus.ACCEPTED
        assert len(
            fake_db.rows("vaultshare_vault_members", vault_id=family.id, user_id=bob.id)
        ) == 1

    @pytest.mark.asyncio
    async def test_accept_by_someone_else(self, vaultshare, family, owner, bob, carol):
        """Test an accepted invite cannot be reused by another user."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)
        await vaultshare.invites.accept(invite.token, "bob@example.com", bob.id)

        with pytest.raises(InvalidRequestError):
            await vaultshare.invites.accept(invite.token, "carol@example.com", carol.id)

    @pytest.mark.asyncio
    async def test_accept_wrong_email(self, vaultshare, family, owner, alice):
        """Test accepting with an address the invite was not sent to is refused."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)

        with pytest.raises(ForbiddenError):
            await vaultshare.invites.accept(invite.token, "alice@example.com", alice.id)
        with pytest.raises(ForbiddenError):
            await vaultshare.invites.accept(invite.token, "bob@example.com", alice.id)

        assert await vaultshare.members.get_active(family.id, alice.id) is None

    @pytest.mark.asyncio
    async def test_accept_unverified_email(self, vaultshare, make_user, family, owner):
        """Test an unverified account cannot accept."""
        dave = make_user("dave@example.com", verified=False)
        invite = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)

        with pytest.raises(ForbiddenError):
            await vaultshare.invites.accept(invite.token, "dave@example.com", dave.id)

    @pytest.mark.asyncio
    async def test_accept_unknown_token(self, vaultshare, bob):
        """Test an unknown token raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await vaultshare.invites.accept("no-such-token", "bob@example.com", bob.id)

    @pytest.mark.asyncio
    async def test_accept_pending_invite(self, vaultshare, fake_db, family, owner, make_user):
        """Test an invite whose e-mail failed can still be accepted."""
        fake_db.auth.admin.invite_user_by_email.side_effect = RuntimeError("smtp down")
        invite = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)
        dave = make_user("dave@example.com")

        accepted = await vaultshare.invites.accept(invite.token, "dave@example.com", dave.id)

        assert accepted.status == InviteStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_rejoin_after_leaving(self, vaultshare, fake_db, family, owner, bob):
        """Test a member who left rejoins on the same row."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)
        await vaultshare.invites.accept(invite.token, "bob@example.com", bob.id)
        await vaultshare.members.leave(family.id, bob.id)

        again = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)
        await vaultshare.invites.accept(again.token, "bob@example.com", bob.id)

        rows = fake_db.rows("vaultshare_vault_members", vault_id=family.id, user_id=bob.id)
        assert len(rows) == 1
        assert rows[0]["status"] == "active"


class TestInviteExpiry:
    """Tests for lazy invitation expiry."""

    @pytest.mark.asyncio
    async def test_expired_invite(self, vaultshare, fake_db, clock, family, owner, bob):
        """Test an invite past expiry cannot be accepted and notifies once."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)
        clock.advance(days=7, minutes=1)

        with pytest.raises(InvalidRequestError):
            await vaultshare.invites.accept(invite.token, "bob@example.com", bob.id)

        assert (await vaultshare.invites.get(invite.id)).status == InviteStatus.EXPIRED
        assert len(
            fake_db.rows(
                "vaultshare_notifications",
                user_id=owner.id,
                kind=NotificationKind.INVITE_EXPIRED.value,
            )
        ) == 1
        assert fake_db.rows(
            "vaultshare_notifications",
            user_id=bob.id,
            kind=NotificationKind.INVITE_EXPIRED.value,
        )

    @pytest.mark.asyncio
    async def test_invite_valid_until_expiry(self, vaultshare, clock, family, owner, bob):
        """Test an invite is still open exactly at its expiry."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)
        clock.advance(days=7)

        accepted = await vaultshare.invites.accept(invite.token, "bob@example.com", bob.id)

        assert accepted.status == InviteStatus.ACCEPTED


class TestCancelAndResend:
    """Tests for cancelling and resending."""

    @pytest.mark.asyncio
    async def test_cancel(self, vaultshare, fake_db, family, owner, bob):
        """Test a cancelled invite cannot be accepted."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)

        cancelled = await vaultshare.invites.cancel(invite.id, owner.id)

        assert cancelled.status == InviteStatus.CANCELLED
        assert fake_db.rows(
            "vaultshare_notifications",
            user_id=bob.id,
            kind=NotificationKind.INVITE_CANCELLED.value,
        )
        with pytest.raises(InvalidRequestError):
            await vaultshare.invites.accept(invite.token, "bob@example.com", bob.id)

    @pytest.mark.asyncio
    async def test_cancel_accepted_is_noop(self, vaultshare, family, owner, bob):
        """Test cancelling an accepted invite returns it unchanged."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)
        await vaultshare.invites.accept(invite.token, "bob@example.com", bob.id)

        result = await vaultshare.invites.cancel(invite.id, owner.id)

        assert result.status == InviteStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_cancel_unknown(self, vaultshare, owner):
        """Test cancelling a missing invite raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await vaultshare.invites.cancel(uuid4(), owner.id)

    @pytest.mark.asyncio
    async def test_resend_rotates_token(self, vaultshare, clock, family, owner, bob):
        """Test resending issues a new token and expiry; the old token dies."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)
        clock.advance(days=3)

        resent = await vaultshare.invites.resend(invite.id, owner.id)

        assert resent.token != invite.token
        assert resent.expires_at == clock() + timedelta(days=7)
        assert await vaultshare.invites.get_by_token(invite.token) is None

        accepted = await vaultshare.invites.accept(resent.token, "bob@example.com", bob.id)
        assert accepted.status == InviteStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_resend_after_concurrent_accept(self, vaultshare, fake_db, family, owner, bob):
        """Test resend from a stale read cannot reopen an accepted invite."""
        invite = await vaultshare.invites.create(family.id, "bob@example.com", owner.id)
        stale = await vaultshare.invites.get(invite.id)
        await vaultshare.invites.accept(invite.token, "bob@example.com", bob.id)
        accepted = fake_db.rows("vaultshare_vault_invites", id=invite.id)[0]
        token_hash = accepted["token_hash"]

        with patch.object(vaultshare.invites, "get", AsyncMock(return_value=stale)):
            with pytest.raises(InvalidRequestError):
                await vaultshare.invites.resend(invite.id, owner.id)

        row = fake_db.rows("vaultshare_vault_invites", id=invite.id)[0]
        assert row["status"] == InviteStatus.ACCEPTED.value
        assert row["token_hash"] == token_hash

    @pytest.mark.asyncio
    async def test_deliver_leaves_closed_invite(self, vaultshare, fake_db, family, owner):
        """Test a late delivery does not mark a cancelled invite sent."""
        invite = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)
        stale = dict(fake_db.rows("vaultshare_vault_invites", id=invite.id)[0])
        await vaultshare.invites.cancel(invite.id, owner.id)

        await vaultshare.invites._deliver(stale, family, owner.id, "late-token")

        row = fake_db.rows("vaultshare_vault_invites", id=invite.id)[0]
        assert row["status"] == InviteStatus.CANCELLED.value

    @pytest.mark.asyncio
    async def test_resend_cancelled_refused(self, vaultshare, family, owner):
        """Test a closed invite cannot be resent."""
        invite = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)
        await vaultshare.invites.cancel(invite.id, owner.id)

        with pytest.raises(InvalidRequestError):
            await vaultshare.invites.resend(invite.id, owner.id)


class TestInviteQueries:
    """Tests for listing and describing invitations."""

    @pytest.mark.asyncio
    async def test_get_info(self, vaultshare, family, owner):
        """Test an accept page can describe a token."""
        invite = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)

        info = await vaultshare.invites.get_info(invite.token)

        assert info.is_valid is True
        assert info.vault_name == "Family"
        assert info.invitee_email == "dave@example.com"
        assert info.privilege == Privilege.MEMBER

    @pytest.mark.asyncio
    async def test_get_info_bad_token(self, vaultshare):
        """Test an unknown token is described, not raised."""
        info = await vaultshare.invites.get_info("nope")

        assert info.is_valid is False
        assert info.error == "Invitation not found"

    @pytest.mark.asyncio
    async def test_get_info_cancelled(self, vaultshare, family, owner):
        """Test a cancelled invite is reported as such."""
        invite = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)
        await vaultshare.invites.cancel(invite.id, owner.id)

        info = await vaultshare.invites.get_info(invite.token)

        assert info.is_valid is False
        assert info.error == "Invitation is cancelled"

    @pytest.mark.asyncio
    async def test_list_by_vault(self, vaultshare, clock, family, owner, alice):
        """Test owners and admins list invitations; open_only hides closed ones."""
        await vaultshare.members.activate(family.id, alice.id, Privilege.ADMIN)
        first = await vaultshare.invites.create(family.id, "dave@example.com", owner.id)
        clock.advance(minutes=1)
        await vaultshare.invites.create(family.id, "erin@example.com", owner.id)
        await vaultshare.invites.cancel(first.id, owner.id)

        invites = await vaultshare.invites.list_by_vault(family.id, alice.id)
        open_invites = await vaultshare.invites.list_by_vault(
            family.id, alice.id, open_only=True
        )

        assert [i.invitee_email for i in invites] == ["erin@example.com", "dave@example.com"]
        assert [i.invitee_email for i in open_invites] == ["erin@example.com"]

    @pytest.mark.asyncio
    async def test_member_cannot_list(self, vaultshare, family, alice):
        """Test a plain member cannot list invitations."""
        await vaultshare.members.activate(family.id, alice.id, Privilege.MEMBER)

        with pytest.raises(ForbiddenError):
            await vaultshare.invites.list_by_vault(family.id, alice.id)

    @pytest.mark.asyncio
    async def test_list_pending_for_user(self, vaultshare, clock, family, owner, bob):
        """Test a user sees open invitations addressed to them."""
        other = await vaultshare.vaults.create(user_id=owner.id, name="Work")
        await vaultshare.invites.create(family.id, "bob@example.com", owner.id)
        stale = await vaultshare.invites.create(other.id, "bob@example.com", owner.id)
        await vaultshare.invites.cancel(stale.id, owner.id)

        pending = await vaultshare.invites.list_pending_for_user(bob.id)

        assert [invite.vault_id for invite in pending] == [family.id]
