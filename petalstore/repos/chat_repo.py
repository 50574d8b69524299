# petalstore/repos/chat_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from petalstore.data.models._columns import utcnow
from petalstore.data.models.chat import ConversationModel, MessageModel


class ChatRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_conversation(self, conversation_id: str) -> ConversationModel | None:
        return self.db.get(ConversationModel, conversation_id)

    def latest_conversation(self, user_id: str, status: str = "open") -> ConversationModel | None:
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.user_id == user_id, ConversationModel.status == status)
            .order_by(ConversationModel.updated_at.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_conversations(self, status: str | None = None) -> List[ConversationModel]:
        stmt = select(ConversationModel).order_by(ConversationModel.updated_at.desc())
        if status is not None:
            stmt = stmt.where(ConversationModel.status == status)
        return list(self.db.execute(stmt).scalars().all())

    def create_conversation(self, user_id: str) -> ConversationModel:
        conversation = ConversationModel(user_id=user_id, status="open")
        self.db.add(conversation)
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def update_status(self, conversation: ConversationModel, status: str) -> ConversationModel:
        conversation.status = status
        conversation.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def add_message(self, message: MessageModel) -> MessageModel:
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def touch_conversation(self, conversation_id: str, when: datetime):
        conversation = self.get_conversation(conversation_id)
        if conversation:
            conversation.updated_at = when
            self.db.commit()

    def get_messages(self, conversation_id: str) -> List[MessageModel]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def rollback(self):
        self.db.rollback()
