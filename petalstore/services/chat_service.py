# petalstore/services/chat_service.py
import threading
from typing import Callable, List

from sqlalchemy.exc import SQLAlchemyError

from petalstore.data.models._columns import utcnow
from petalstore.data.models.chat import MessageModel
from petalstore.domain.errors import NotFound, PersistenceFailure, ValidationError
from petalstore.domain.schemas import (
    ChatMessage,
    Conversation,
    ConversationStatus,
    ConversationWithMessages,
    SenderRole,
)
from petalstore.repos.chat_repo import ChatRepo
from petalstore.utils.settings import CHAT_POLL_SECONDS
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


class ChatService:
    """
    Support chat: one open conversation per shopper, messages from the
    shopper or an admin. Conversation status is a triage label only, it
    never blocks new messages.
    """

    def __init__(self, session_factory, change_feed):
        self.session_factory = session_factory
        self.feed = change_feed

    #commands
    def get_or_create_conversation(self, user_id: str) -> Conversation:
        with self.session_factory() as db:
            repo = ChatRepo(db)
            existing = repo.latest_conversation(user_id, ConversationStatus.OPEN.value)
            if existing:
                return Conversation.model_validate(existing)
            try:
                created = repo.create_conversation(user_id)
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error creating conversation for {user_id}: {e}")
                raise PersistenceFailure("Could not start a support chat, please try again.") from e

            logger.info(f"Conversation {created.id} opened for {user_id}")
            conversation = Conversation.model_validate(created)
        self._publish("conversations", "INSERT", conversation.model_dump(mode="json"))
        return conversation

    def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        sender: SenderRole,
        text: str | None = None,
        image_url: str | None = None,
    ) -> ChatMessage:
        text = (text or "").strip() or None
        if not text and not image_url:
            raise ValidationError("A message needs text or an image.")

        with self.session_factory() as db:
            repo = ChatRepo(db)
            if repo.get_conversation(conversation_id) is None:
                raise NotFound("Conversation not found.")
            try:
                created = repo.add_message(
                    MessageModel(
                        conversation_id=conversation_id,
                        sender_id=sender_id,
                        sender=SenderRole(sender).value,
                        text=text,
                        image_url=image_url or None,
                    )
                )
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error sending message to {conversation_id}: {e}")
                raise PersistenceFailure("Your message was not sent, please try again.") from e

            message = ChatMessage.model_validate(created)
            try:
                repo.touch_conversation(conversation_id, utcnow())
            except SQLAlchemyError as e:
                repo.rollback()
                logger.warning(f"Conversation {conversation_id} timestamp not bumped: {e}")

        self._publish("messages", "INSERT", message.model_dump(mode="json"))
        return message

    def update_status(self, conversation_id: str, status: ConversationStatus) -> Conversation:
        with self.session_factory() as db:
            repo = ChatRepo(db)
            conversation = repo.get_conversation(conversation_id)
            if conversation is None:
                raise NotFound("Conversation not found.")
            try:
                updated = Conversation.model_validate(
                    repo.update_status(conversation, ConversationStatus(status).value)
                )
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error updating conversation {conversation_id}: {e}")
                raise PersistenceFailure("Failed to update the conversation, please try again.") from e

        self._publish("conversations", "UPDATE", updated.model_dump(mode="json"))
        return updated

    def close(self, conversation_id: str) -> Conversation:
        return self.update_status(conversation_id, ConversationStatus.RESOLVED)

    def _publish(self, table: str, event: str, record: dict) -> None:
        #the row is committed already, pollers pick it up if the push fails
        try:
            self.feed.publish(table, event, record)
        except Exception as e:
            logger.warning(f"Change feed publish failed for {table} {event} {record.get('id')}: {e}")

    #query
    def get_conversation(self, conversation_id: str) -> Conversation:
        with self.session_factory() as db:
            conversation = ChatRepo(db).get_conversation(conversation_id)
            if conversation is None:
                raise NotFound("Conversation not found.")
            return Conversation.model_validate(conversation)

    def messages(self, conversation_id: str) -> List[ChatMessage]:
        with self.session_factory() as db:
            return [ChatMessage.model_validate(m) for m in ChatRepo(db).get_messages(conversation_id)]

    def user_conversation_with_messages(self, user_id: str) -> ConversationWithMessages | None:
        with self.session_factory() as db:
            repo = ChatRepo(db)
            conversation = repo.latest_conversation(user_id, ConversationStatus.OPEN.value)
            if conversation is None:
                return None
            return self._with_messages(repo, conversation)

    def list_conversations(self, status: ConversationStatus | None = None) -> List[ConversationWithMessages]:
        """Admin dashboard, most recently active first."""
        with self.session_factory() as db:
            repo = ChatRepo(db)
            value = ConversationStatus(status).value if status else None
            return [self._with_messages(repo, c) for c in repo.list_conversations(value)]

    @staticmethod
    def _with_messages(repo: ChatRepo, conversation) -> ConversationWithMessages:
        base = Conversation.model_validate(conversation).model_dump()
        messages = [ChatMessage.model_validate(m) for m in repo.get_messages(conversation.id)]
        return ConversationWithMessages(**base, messages=messages)

    #subscriptions
    def subscribe_to_messages(
        self, conversation_id: str, on_message: Callable[[ChatMessage], None]
    ) -> Callable[[], None]:
        return self.feed.subscribe(
            "messages",
            lambda record: on_message(ChatMessage.model_validate(record)),
            event="INSERT",
            filters={"conversation_id": conversation_id},
        )

    def subscribe_to_conversation_status(
        self, conversation_id: str, on_change: Callable[[Conversation], None]
    ) -> Callable[[], None]:
        return self.feed.subscribe(
            "conversations",
            lambda record: on_change(Conversation.model_validate(record)),
            event="UPDATE",
            filters={"id": conversation_id},
        )

    def open_thread(self, conversation_id: str, poll_seconds: float = CHAT_POLL_SECONDS) -> "MessageThread":
        thread = MessageThread(self, conversation_id, poll_seconds)
        thread.open()
        return thread


class Poller:
    """Calls ``tick`` every ``interval`` seconds on a daemon thread until stopped."""

    def __init__(self, interval: float, tick: Callable[[], None], name: str = "poller"):
        self.interval = interval
        self.tick = tick
        self.name = name
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval + 1)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception as e:
                #one failed poll must not end polling
                logger.warning(f"{self.name} tick failed: {e}")


class MessageThread:
    """
    Visible message list for one conversation.

    Fed by the change feed and by polling at the same time; a message seen
    through both is shown once (matched by id).
    """

    def __init__(self, chat: ChatService, conversation_id: str, poll_seconds: float = CHAT_POLL_SECONDS):
        self.chat = chat
        self.conversation_id = conversation_id
        self.poll_seconds = poll_seconds
        self._messages: List[ChatMessage] = []
        self._seen: set = set()
        self._lock = threading.Lock()
        self._listeners: List[Callable[[ChatMessage], None]] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._poller: Poller | None = None

    @property
    def messages(self) -> List[ChatMessage]:
        with self._lock:
            return list(self._messages)

    def on_message(self, listener: Callable[[ChatMessage], None]) -> None:
        self._listeners.append(listener)

    def receive(self, message: ChatMessage) -> bool:
        if message.conversation_id != self.conversation_id:
            return False
        with self._lock:
            if message.id in self._seen:
                return False
            self._seen.add(message.id)
            self._messages.append(message)
        for listener in list(self._listeners):
            listener(message)
        return True

    def sync(self) -> int:
        """Poll the store, returns how many messages were new."""
        added = 0
        for message in self.chat.messages(self.conversation_id):
            if self.receive(message):
                added += 1
        return added

    def open(self) -> None:
        self.sync()
        self._unsubscribe = self.chat.subscribe_to_messages(self.conversation_id, self.receive)
        if self.poll_seconds and self.poll_seconds > 0:
            self._poller = Poller(self.poll_seconds, self.sync, name=f"chat-{self.conversation_id}")
            self._poller.start()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._poller is not None:
            self._poller.stop()
            self._poller = None
