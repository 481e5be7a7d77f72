"""
Tests for lobbies: membership, finalize, discovery, join requests,
direct conversations and chat.
"""

from datetime import datetime, timedelta

import pytest

from app.models.group import (
    ChatMessage,
    Group,
    GroupMember,
    GroupPrivacy,
    GroupStatus,
    JoinRequest,
    JoinRequestStatus,
    MemberState,
    MessageType,
)
from app.services.chat_service import ChatService, first_photo_url
from app.services.group_lobby import GroupLobby
from app.services.join_request_service import JoinRequestService
from app.utils.errors import CapacityFull, Conflict, Forbidden, ValidationFailed

from factories import make_experience, make_group, make_property, make_user


@pytest.fixture
def host(db):
    return make_user(db, first_name="Hana", last_name="Host")


@pytest.fixture
def trio(db, host):
    return make_experience(db, host, group_size=3, city="Chinguetti")


@pytest.fixture
def owner(db):
    return make_user(db, first_name="Omar")


@pytest.fixture
def friend(db):
    return make_user(db, first_name="Fatou")


@pytest.fixture
def stranger(db):
    return make_user(db, first_name="Sidi")


class TestFinalize:

    def test_not_full_then_ready(self, db, trio, owner, friend, stranger):
        group = make_group(db, owner, trio, members=(friend,))
        lobby = GroupLobby(db)

        assert lobby.finalize(owner, group.id) == {"success": False, "error": "not_full"}

        request = JoinRequestService(db).request(stranger, group.id)
        JoinRequestService(db).respond(owner, request.id, "accept")

        result = lobby.finalize(owner, group.id)
        assert result["success"] is True
        assert result["group"].status == GroupStatus.READY.value

    def test_only_owner_finalizes(self, db, trio, owner, friend):
        group = make_group(db, owner, trio, members=(friend,))
        with pytest.raises(Forbidden):
            GroupLobby(db).finalize(friend, group.id)

    @pytest.mark.parametrize("status", [
        GroupStatus.BOOKED.value,
        GroupStatus.LOCKED.value,
        GroupStatus.CANCELLED.value,
        GroupStatus.READY.value,
    ])
    def test_only_pending_groups_finalize(self, db, trio, owner, friend, stranger, status):
        group = make_group(db, owner, trio, members=(friend, stranger), status=status)

        with pytest.raises(Conflict):
            GroupLobby(db).finalize(owner, group.id)

        db.refresh(group)
        assert group.status == status

    def test_finalize_booked_group_endpoint(self, client, login, db, trio, owner, friend, stranger):
        group = make_group(db, owner, trio, members=(friend, stranger), status=GroupStatus.BOOKED.value)
        login(owner)

        response = client.post(f"/api/groups/{group.id}/finalize")

        assert response.status_code == 409
        assert response.json()["status"] == GroupStatus.BOOKED.value

    def test_finalize_endpoint_not_full(self, client, login, db, trio, owner):
        group = make_group(db, owner, trio)
        login(owner)

        response = client.post(f"/api/groups/{group.id}/finalize")

        assert response.status_code == 200
        assert response.json() == {"success": False, "error": "not_full"}


class TestMembership:

    def test_open_or_reuse_returns_pending_lobby(self, db, trio, owner):
        lobby = GroupLobby(db)
        first = lobby.open_or_reuse(owner, trio.id, name="Dunes")
        again = lobby.open_or_reuse(owner, trio.id, name="Other name")

        assert again.id == first.id
        assert lobby.joined_count(first.id) == 1
        assert first.privacy == GroupPrivacy.PUBLIC.value

    def test_join_respects_capacity(self, db, trio, owner, friend, stranger):
        group = make_group(db, owner, trio, members=(friend, stranger))
        late = make_user(db, first_name="Late")

        with pytest.raises(CapacityFull):
            GroupLobby(db).join(group, late.id)

    def test_rejoin_after_leave_reuses_row(self, db, trio, owner, friend):
        group = make_group(db, owner, trio, members=(friend,))
        lobby = GroupLobby(db)

        lobby.leave(friend, group.id)
        assert lobby.joined_count(group.id) == 1

        lobby.join(group, friend.id)
        db.commit()
        rows = db.query(GroupMember).filter(
            GroupMember.group_id == group.id, GroupMember.user_id == friend.id
        ).all()
        assert len(rows) == 1
        assert rows[0].state == MemberState.JOINED.value
        assert rows[0].left_at is None

    def test_remove_member_keeps_row(self, db, trio, owner, friend):
        group = make_group(db, owner, trio, members=(friend,))

        membership = GroupLobby(db).remove_member(owner, group.id, friend.id)

        assert membership.state == MemberState.REMOVED.value
        with pytest.raises(Forbidden):
            GroupLobby(db).require_member(group.id, friend.id)

    def test_owner_cannot_be_removed(self, db, trio, owner):
        group = make_group(db, owner, trio)
        with pytest.raises(ValidationFailed):
            GroupLobby(db).remove_member(owner, group.id, owner.id)

    def test_owner_cannot_set_ready_or_locked(self, db, trio, owner):
        group = make_group(db, owner, trio)
        lobby = GroupLobby(db)

        for status in (GroupStatus.READY.value, GroupStatus.LOCKED.value, GroupStatus.BOOKED.value):
            with pytest.raises(ValidationFailed):
                lobby.update_group(owner, group.id, status=status)

        updated = lobby.update_group(owner, group.id, status=GroupStatus.ACTIVE.value, name="Renamed")
        assert updated.status == GroupStatus.ACTIVE.value
        assert updated.name == "Renamed"

    @pytest.mark.parametrize("status", [GroupStatus.BOOKED.value, GroupStatus.LOCKED.value])
    def test_owner_cannot_reopen_booked_or_locked(self, db, trio, owner, status):
        group = make_group(db, owner, trio, status=status)
        lobby = GroupLobby(db)

        with pytest.raises(Conflict):
            lobby.update_group(owner, group.id, status=GroupStatus.PENDING.value)

        renamed = lobby.update_group(owner, group.id, name="Still mine")
        assert renamed.status == status
        assert renamed.name == "Still mine"

    def test_delete_removes_dependents(self, db, trio, owner, friend):
        group = make_group(db, owner, trio, members=(friend,))
        ChatService(db).send_message(friend, group.id, "hello")

        GroupLobby(db).delete(owner, group.id)

        assert db.query(Group).filter(Group.id == group.id).count() == 0
        assert db.query(GroupMember).filter(GroupMember.group_id == group.id).count() == 0
        assert db.query(ChatMessage).filter(ChatMessage.group_id == group.id).count() == 0

    def test_delete_endpoint_is_204(self, client, login, db, trio, owner):
        group = make_group(db, owner, trio)
        login(owner)

        response = client.delete(f"/api/groups/{group.id}")

        assert response.status_code == 204


class TestDiscover:

    def test_excludes_own_joined_cancelled_and_direct(self, db, host, trio, owner, friend, stranger):
        visible = make_group(db, owner, trio)
        make_group(db, stranger, trio)
        make_group(db, friend, trio, members=(stranger,))
        make_group(db, owner, trio, status=GroupStatus.CANCELLED.value)
        make_group(db, owner, None, privacy=GroupPrivacy.DIRECT.value, status=GroupStatus.ACTIVE.value)

        result = JoinRequestService(db).discover(stranger)

        assert result["success"] is True
        assert [g.id for g in result["groups"]] == [visible.id]

    def test_location_filter_is_case_insensitive(self, db, host, trio, owner, stranger):
        group = make_group(db, owner, trio)
        other = make_experience(db, host, city="Nouadhibou")
        make_group(db, owner, other)

        result = JoinRequestService(db).discover(stranger, location="CHINGU")

        assert [g.id for g in result["groups"]] == [group.id]

    def test_incomplete_profile(self, db, trio, owner):
        nameless = make_user(db, first_name="", last_name="")
        make_group(db, owner, trio)

        result = JoinRequestService(db).discover(nameless)

        assert result["success"] is False
        assert result["error"] == "profile_incomplete"

    def test_discover_endpoint(self, client, login, db, trio, owner, stranger):
        group = make_group(db, owner, trio)
        login(stranger)

        response = client.post("/api/groups/discover", json={"privacy": "public"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [g["id"] for g in body["groups"]] == [group.id]


class TestJoinRequests:

    def test_duplicate_pending_request(self, db, trio, owner, stranger):
        group = make_group(db, owner, trio)
        service = JoinRequestService(db)
        service.request(stranger, group.id)

        with pytest.raises(Conflict) as exc:
            service.request(stranger, group.id)
        assert exc.value.details["reason"] == "already_requested"

    def test_member_cannot_request(self, db, trio, owner, friend):
        group = make_group(db, owner, trio, members=(friend,))
        with pytest.raises(Conflict) as exc:
            JoinRequestService(db).request(friend, group.id)
        assert exc.value.details["reason"] == "already_member"

    def test_decline_and_reprocess(self, db, trio, owner, stranger):
        group = make_group(db, owner, trio)
        service = JoinRequestService(db)
        request = service.request(stranger, group.id)

        declined = service.respond(owner, request.id, "decline")
        assert declined.status == JoinRequestStatus.DECLINED.value
        assert declined.responded_at is not None

        with pytest.raises(Conflict):
            service.respond(owner, request.id, "accept")

    def test_accept_into_full_group_rolls_back(self, db, trio, owner, friend, stranger):
        group = make_group(db, owner, trio, members=(friend, stranger))
        late = make_user(db, first_name="Late")
        service = JoinRequestService(db)
        request = service.request(late, group.id)

        with pytest.raises(CapacityFull):
            service.respond(owner, request.id, "accept")

        db.expire_all()
        assert db.get(JoinRequest, request.id).status == JoinRequestStatus.PENDING.value

    def test_non_owner_cannot_respond(self, db, trio, owner, friend, stranger):
        group = make_group(db, owner, trio, members=(friend,))
        request = JoinRequestService(db).request(stranger, group.id)
        with pytest.raises(Forbidden):
            JoinRequestService(db).respond(friend, request.id, "accept")

    def test_request_join_endpoint(self, client, login, db, trio, owner, stranger):
        group = make_group(db, owner, trio)
        login(stranger)

        response = client.post("/api/groups/request-join", json={"groupID": group.id, "message": "Hi!"})

        assert response.status_code == 201
        assert response.json()["status"] == "pending"


class TestDirectAndChat:

    def test_start_direct_reuses_room(self, db, host, stranger):
        listing = make_property(db, host)
        lobby = GroupLobby(db)

        first = lobby.start_direct(stranger, host.id, listing.id, message="Is it free?")
        second = lobby.start_direct(stranger, host.id, listing.id)

        assert first["groupID"] == second["groupID"]
        cards = db.query(ChatMessage).filter(ChatMessage.group_id == first["groupID"]).all()
        assert len(cards) == 2
        assert all(c.message_type == MessageType.PROPERTY.value for c in cards)

    def test_cannot_message_self(self, db, host):
        listing = make_property(db, host)
        with pytest.raises(ValidationFailed):
            GroupLobby(db).start_direct(host, host.id, listing.id)

    def test_expired_messages_hidden(self, db, trio, owner):
        group = make_group(db, owner, trio)
        chat = ChatService(db)
        now = datetime(2025, 1, 1, 12, 0)

        chat.send_message(owner, group.id, "stays", now=now)
        chat.send_message(owner, group.id, "goes", ttl_seconds=60, now=now)

        visible = chat.list_messages(owner, group.id, now=now + timedelta(minutes=5))
        assert [m.content for m in visible] == ["stays"]

    def test_non_member_cannot_read(self, db, trio, owner, stranger):
        group = make_group(db, owner, trio)
        with pytest.raises(Forbidden):
            ChatService(db).list_messages(stranger, group.id)

    def test_blank_message_rejected(self, db, trio, owner):
        group = make_group(db, owner, trio)
        with pytest.raises(ValidationFailed):
            ChatService(db).send_message(owner, group.id, "   ")

    def test_share_property_card(self, client, login, db, host, trio, owner):
        group = make_group(db, owner, trio)
        listing = make_property(db, host)
        login(owner)

        response = client.post(f"/api/groups/{group.id}/share-property", json={"propertyID": listing.id})

        assert response.status_code == 201
        card = response.json()
        assert card["message_type"] == MessageType.PROPERTY.value
        assert card["ref_id"] == listing.id
        assert card["preview_title"] == listing.title
        assert card["preview_subtitle"] == "Nouakchott"

    def test_first_photo_url(self):
        assert first_photo_url(["a.jpg", "b.jpg"]) == "a.jpg"
        assert first_photo_url([{"url": "c.jpg"}]) == "c.jpg"
        assert first_photo_url([]) is None
        assert first_photo_url("nope") is None


class TestWishlist:

    def test_add_and_like(self, db, host, trio, owner, friend):
        group = make_group(db, owner, trio, members=(friend,))
        listing = make_property(db, host)
        chat = ChatService(db)

        item = chat.add_to_wishlist(owner, group.id, property_id=listing.id)
        chat.like_item(friend, group.id, item.id)
        chat.like_item(friend, group.id, item.id)

        entries = chat.list_wishlist(owner, group.id)
        assert len(entries) == 1
        assert entries[0]["likes"].count(friend.id) == 1

    def test_exactly_one_target(self, db, host, trio, owner):
        group = make_group(db, owner, trio)
        listing = make_property(db, host)
        with pytest.raises(ValidationFailed):
            ChatService(db).add_to_wishlist(owner, group.id, experience_id=trio.id, property_id=listing.id)
        with pytest.raises(ValidationFailed):
            ChatService(db).add_to_wishlist(owner, group.id)
