"""MessagingService 테스트: 참여자 검증, 전송, 목록, 읽음 처리"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from app.models.db.messaging import Conversation
from app.services.errors import ForbiddenError, InvalidArgumentError, NotFoundError
from app.services.messaging import MessagingService


@pytest.fixture
def service(db_session) -> MessagingService:
    return MessagingService(db_session)


@pytest.fixture
def buyer(bidders):
    return bidders[0]


@pytest.fixture
def conversation(service, buyer, seller, product):
    return service.get_or_create_conversation(buyer.id, seller.id, product.id)


class TestGetOrCreateConversation:

    def test_create_then_reuse(self, service, buyer, seller, product, conversation):
        again = service.get_or_create_conversation(buyer.id, seller.id, product.id)
        assert again.id == conversation.id
        assert conversation.buyer_id == buyer.id
        assert conversation.seller_id == seller.id
        assert conversation.last_message_at is None

    def test_without_product_is_separate(self, service, buyer, seller, conversation):
        general = service.get_or_create_conversation(buyer.id, seller.id)
        assert general.id != conversation.id
        assert general.product_id is None
        assert service.get_or_create_conversation(buyer.id, seller.id).id == general.id

    @pytest.mark.parametrize("with_product", [True, False])
    def test_concurrent_create_reuses_winner(self, db_session, service, buyer, seller, product, monkeypatch, with_product):
        """조회 후 INSERT 전에 다른 요청이 같은 대화를 만든 경우"""
        product_id = product.id if with_product else None
        winner = Conversation(buyer_id=buyer.id, seller_id=seller.id, product_id=product_id)
        db_session.add(winner)
        db_session.commit()

        original = service._find_conversation
        calls = []

        def stale_first_lookup(*args):
            calls.append(args)
            return None if len(calls) == 1 else original(*args)

        monkeypatch.setattr(service, "_find_conversation", stale_first_lookup)

        result = service.get_or_create_conversation(buyer.id, seller.id, product_id)

        assert result.id == winner.id
        assert len(calls) == 2
        count = db_session.execute(
            select(func.count(Conversation.id)).where(Conversation.buyer_id == buyer.id)
        ).scalar_one()
        assert count == 1

    def test_self_rejected(self, service, seller):
        with pytest.raises(InvalidArgumentError):
            service.get_or_create_conversation(seller.id, seller.id)

    def test_unknown_seller(self, service, buyer):
        with pytest.raises(NotFoundError):
            service.get_or_create_conversation(buyer.id, 9999)

    def test_unknown_product(self, service, buyer, seller):
        with pytest.raises(NotFoundError):
            service.get_or_create_conversation(buyer.id, seller.id, 9999)

    def test_product_of_other_seller(self, service, buyer, seller, make_user, make_product):
        other_product = make_product(make_user(user_type="seller"))
        with pytest.raises(InvalidArgumentError):
            service.get_or_create_conversation(buyer.id, seller.id, other_product.id)


class TestSendMessage:

    def test_send_sets_receiver_and_activity(self, service, conversation, buyer, seller):
        message = service.send_message(conversation.id, buyer.id, "  هل السعر قابل للتفاوض؟  ")

        assert message.content == "هل السعر قابل للتفاوض؟"
        assert message.sender_id == buyer.id
        assert message.receiver_id == seller.id
        assert message.is_read is False
        assert conversation.last_message_at == message.created_at

    def test_seller_replies(self, service, conversation, buyer, seller):
        reply = service.send_message(conversation.id, seller.id, "نعم", receiver_id=buyer.id)
        assert reply.receiver_id == buyer.id

    def test_non_participant(self, service, conversation, bidders):
        with pytest.raises(ForbiddenError):
            service.send_message(conversation.id, bidders[3].id, "مرحبا")

    def test_wrong_receiver(self, service, conversation, buyer, bidders):
        with pytest.raises(InvalidArgumentError):
            service.send_message(conversation.id, buyer.id, "مرحبا", receiver_id=bidders[3].id)

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_empty(self, service, conversation, buyer, content):
        with pytest.raises(InvalidArgumentError):
            service.send_message(conversation.id, buyer.id, content)

    def test_too_long(self, db_session, conversation, buyer):
        short = MessagingService(db_session, max_length=5)
        short.send_message(conversation.id, buyer.id, "12345")
        with pytest.raises(InvalidArgumentError):
            short.send_message(conversation.id, buyer.id, "123456")

    def test_unknown_conversation(self, service, buyer):
        with pytest.raises(NotFoundError):
            service.send_message(777, buyer.id, "مرحبا")


class TestReadAndList:

    def test_messages_in_order(self, service, conversation, buyer, seller):
        service.send_message(conversation.id, buyer.id, "1")
        service.send_message(conversation.id, seller.id, "2")
        service.send_message(conversation.id, buyer.id, "3")

        messages = service.get_conversation_messages(conversation.id, seller.id)
        assert [m.content for m in messages] == ["1", "2", "3"]

    def test_messages_forbidden_for_outsider(self, service, conversation, bidders):
        with pytest.raises(ForbiddenError):
            service.get_conversation_messages(conversation.id, bidders[4].id)

    def test_overview_unread_counts(self, service, conversation, buyer, seller):
        service.send_message(conversation.id, buyer.id, "أول")
        service.send_message(conversation.id, buyer.id, "ثاني")
        service.send_message(conversation.id, seller.id, "رد")

        seller_view = service.get_user_conversations(seller.id)
        buyer_view = service.get_user_conversations(buyer.id)

        assert len(seller_view) == 1
        assert seller_view[0].unread_count == 2
        assert seller_view[0].other_user.id == buyer.id
        assert seller_view[0].last_message.content == "رد"
        assert seller_view[0].product.id == conversation.product_id
        assert buyer_view[0].unread_count == 1
        assert buyer_view[0].other_user.display_name == "متجر بغداد"

    def test_overview_recent_activity_first(self, service, buyer, seller, conversation, make_user):
        other_buyer = make_user()
        quiet = service.get_or_create_conversation(other_buyer.id, seller.id)
        service.send_message(conversation.id, buyer.id, "مرحبا")

        ids = [c.id for c in service.get_user_conversations(seller.id)]
        assert ids == [conversation.id, quiet.id]

    def test_no_conversations(self, service, bidders):
        assert service.get_user_conversations(bidders[2].id) == []

    def test_mark_as_read(self, service, conversation, buyer, seller):
        service.send_message(conversation.id, buyer.id, "أ")
        service.send_message(conversation.id, buyer.id, "ب")
        service.send_message(conversation.id, seller.id, "ج")

        assert service.mark_as_read(conversation.id, seller.id) == 2
        assert service.mark_as_read(conversation.id, seller.id) == 0
        assert service.get_user_conversations(seller.id)[0].unread_count == 0
        assert service.get_user_conversations(buyer.id)[0].unread_count == 1

    def test_mark_as_read_outsider(self, service, conversation, bidders):
        with pytest.raises(ForbiddenError):
            service.mark_as_read(conversation.id, bidders[4].id)
