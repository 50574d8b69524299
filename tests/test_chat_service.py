import threading
from unittest.mock import MagicMock

import pytest
import redis

from petalstore.domain.errors import LoginRequired, NotFound, ValidationError
from petalstore.domain.schemas import ConversationStatus, SenderRole
from petalstore.services.chat_service import MessageThread, Poller


class TestConversations:
    def test_get_or_create_returns_same_open_conversation(self, storefront, buyer):
        first = storefront.chat.get_or_create_conversation(buyer.id)
        second = storefront.chat.get_or_create_conversation(buyer.id)

        assert first.id == second.id
        assert first.status == ConversationStatus.OPEN

    def test_resolved_conversation_starts_a_new_one(self, storefront, buyer):
        first = storefront.chat.get_or_create_conversation(buyer.id)
        storefront.chat.close(first.id)

        second = storefront.chat.get_or_create_conversation(buyer.id)

        assert second.id != first.id

    def test_admin_list_filters_by_status(self, storefront, buyer, make_user):
        other = make_user("user-2")
        open_one = storefront.chat.get_or_create_conversation(buyer.id)
        resolved = storefront.chat.get_or_create_conversation(other.id)
        storefront.chat.update_status(resolved.id, ConversationStatus.RESOLVED)

        listed = storefront.chat.list_conversations(ConversationStatus.OPEN)

        assert [c.id for c in listed] == [open_one.id]
        assert len(storefront.chat.list_conversations()) == 2

    def test_status_change_is_published(self, storefront, buyer):
        conversation = storefront.chat.get_or_create_conversation(buyer.id)
        seen = []
        storefront.chat.subscribe_to_conversation_status(conversation.id, seen.append)

        storefront.chat.update_status(conversation.id, ConversationStatus.UNREAD)

        assert [c.status for c in seen] == [ConversationStatus.UNREAD]


class TestMessages:
    def test_message_needs_text_or_image(self, storefront, buyer):
        conversation = storefront.chat.get_or_create_conversation(buyer.id)

        with pytest.raises(ValidationError):
            storefront.chat.send_message(conversation.id, buyer.id, SenderRole.USER, "   ")

    def test_image_only_message(self, storefront, buyer):
        conversation = storefront.chat.get_or_create_conversation(buyer.id)

        message = storefront.chat.send_message(
            conversation.id, buyer.id, SenderRole.USER, image_url="http://img.test/a.png"
        )

        assert message.text is None
        assert message.image_url == "http://img.test/a.png"

    def test_unknown_conversation(self, storefront, buyer):
        with pytest.raises(NotFound):
            storefront.chat.send_message("missing", buyer.id, SenderRole.USER, "hi")

    def test_messages_in_order(self, storefront, buyer, admin):
        conversation = storefront.chat.get_or_create_conversation(buyer.id)
        storefront.chat.send_message(conversation.id, buyer.id, SenderRole.USER, "hello")
        storefront.chat.send_message(conversation.id, admin.id, SenderRole.ADMIN, "hi, how can we help?")

        thread = storefront.chat.user_conversation_with_messages(buyer.id)

        assert [m.text for m in thread.messages] == ["hello", "hi, how can we help?"]

    def test_feed_outage_does_not_fail_the_send(self, storefront, change_feed, buyer, admin):
        conversation = storefront.chat.get_or_create_conversation(buyer.id)
        change_feed.publish = MagicMock(side_effect=redis.ConnectionError("down"))

        message = storefront.chat.send_message(conversation.id, buyer.id, SenderRole.USER, "hello")
        updated = storefront.chat.update_status(conversation.id, ConversationStatus.UNREAD)

        assert message.text == "hello"
        assert updated.status == ConversationStatus.UNREAD
        assert [m.id for m in storefront.chat.messages(conversation.id)] == [message.id]
        assert change_feed.publish.call_count == 2

    def test_failing_subscriber_does_not_fail_the_send(self, storefront, buyer):
        conversation = storefront.chat.get_or_create_conversation(buyer.id)

        def broken(message):
            raise RuntimeError("render failed")

        storefront.chat.subscribe_to_messages(conversation.id, broken)

        message = storefront.chat.send_message(conversation.id, buyer.id, SenderRole.USER, "hello")

        assert [m.id for m in storefront.chat.messages(conversation.id)] == [message.id]


class TestMessageThread:
    def test_message_from_push_and_poll_is_shown_once(self, storefront, buyer, admin):
        conversation = storefront.chat.get_or_create_conversation(buyer.id)
        thread = storefront.chat.open_thread(conversation.id, poll_seconds=0)

        storefront.chat.send_message(conversation.id, admin.id, SenderRole.ADMIN, "your order shipped")
        added = thread.sync()

        assert added == 0
        assert [m.text for m in thread.messages] == ["your order shipped"]
        thread.close()

    def test_poll_picks_up_missed_messages(self, storefront, buyer, admin):
        conversation = storefront.chat.get_or_create_conversation(buyer.id)
        thread = MessageThread(storefront.chat, conversation.id, poll_seconds=0)

        storefront.chat.send_message(conversation.id, admin.id, SenderRole.ADMIN, "missed while offline")

        assert thread.sync() == 1
        assert thread.messages[0].text == "missed while offline"

    def test_messages_of_other_conversations_are_ignored(self, storefront, buyer, make_user):
        other = make_user("user-2")
        mine = storefront.chat.get_or_create_conversation(buyer.id)
        theirs = storefront.chat.get_or_create_conversation(other.id)
        thread = storefront.chat.open_thread(mine.id, poll_seconds=0)

        storefront.chat.send_message(theirs.id, other.id, SenderRole.USER, "not for you")

        assert thread.messages == []
        thread.close()

    def test_closed_thread_stops_receiving_pushes(self, storefront, buyer):
        conversation = storefront.chat.get_or_create_conversation(buyer.id)
        thread = storefront.chat.open_thread(conversation.id, poll_seconds=0)
        thread.close()

        storefront.chat.send_message(conversation.id, buyer.id, SenderRole.USER, "hello?")

        assert thread.messages == []

    def test_shopper_chat_requires_sign_in(self, shopper):
        with pytest.raises(LoginRequired):
            shopper.open_chat(poll_seconds=0)

    def test_shopper_sees_own_message_once(self, shopper, buyer):
        shopper.sign_in(buyer.email, "secret")
        thread = shopper.open_chat(poll_seconds=0)

        shopper.send_chat_message(thread, "where is my order?")

        assert [m.text for m in thread.messages] == ["where is my order?"]
        thread.close()


class TestPoller:
    def test_tick_errors_do_not_stop_polling(self):
        ticks = []
        done = threading.Event()

        def tick():
            ticks.append(1)
            if len(ticks) == 1:
                raise RuntimeError("network down")
            done.set()

        poller = Poller(0.01, tick, name="test-poller")
        poller.start()

        assert done.wait(2)
        poller.stop()
