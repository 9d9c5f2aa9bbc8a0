"""
Conversation/message façade for the simple chat pages.

Same tables as the conversations module, but returns ``SimpleConversation``
(with animal image and last message) and ``SimpleMessage`` shapes.
"""

import logging
from fastapi import HTTPException
from supabase import Client
from typing import Any, Dict, List, Optional

from adotai.core.errors import UnauthorizedError, backend_failure
from adotai.core.profiles import ProfileResolver, normalize_id
from adotai.core.queries import pop_embedded
from adotai.modules.conversations.service import find_conversation, insert_conversation, touch_conversation
from adotai.modules.messaging.schemas import CreateConversationData, SimpleConversation, SimpleMessage

logger = logging.getLogger(__name__)

SIMPLE_CONVERSATION = (
    "id, animal_id, adopter_id, advertiser_id, created_at, updated_at, "
    "animal:animals(name, image_url), "
    "adopter:profiles!adopter_id(name), "
    "advertiser:profiles!advertiser_id(name)"
)
SIMPLE_MESSAGE = "id, conversation_id, sender_id, content, created_at, sender:profiles!sender_id(name)"


class MessagingService:
    def __init__(self, supabase: Client, admin_supabase: Optional[Client] = None):
        self.supabase = supabase
        self.profiles = ProfileResolver(supabase, admin_supabase or supabase)

    def _last_message(self, conversation_id: str) -> Dict[str, Any]:
        result = self.supabase.table("messages")\
            .select("content, created_at")\
            .eq("conversation_id", conversation_id)\
            .order("created_at", desc=True)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else {}

    def _to_simple(self, row: Dict[str, Any]) -> SimpleConversation:
        row = dict(row)
        animal = pop_embedded(row, "animal")
        last = self._last_message(row["id"])
        return SimpleConversation(
            id=row["id"],
            animal_id=row["animal_id"],
            animal_name=animal.get("name") or "Animal",
            animal_image=animal.get("image_url") or "",
            adopter_id=row["adopter_id"],
            adopter_name=pop_embedded(row, "adopter").get("name") or "Adopter",
            advertiser_id=row["advertiser_id"],
            advertiser_name=pop_embedded(row, "advertiser").get("name") or "Advertiser",
            last_message=last.get("content"),
            last_message_date=last.get("created_at"),
            unread_count=0,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at")
        )

    def _fetch(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("conversations")\
            .select(SIMPLE_CONVERSATION)\
            .eq("id", conversation_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_or_create_conversation(self, data: CreateConversationData) -> SimpleConversation:
        """Return the conversation for the triple, inserting it only when absent"""
        try:
            existing = find_conversation(
                self.supabase, data.animal_id, data.adopter_id, data.advertiser_id, columns=SIMPLE_CONVERSATION
            )
            if existing:
                logger.info(f"Existing conversation found: {existing['id']}")
                return self._to_simple(existing)

            logger.info(f"Creating conversation for animal {data.animal_id}")
            created = insert_conversation(self.supabase, data.animal_id, data.adopter_id, data.advertiser_id)
            row = self._fetch(created["id"])
        except Exception as e:
            logger.error(f"Error creating conversation: {e}")
            raise backend_failure("create conversation", e)
        if not row:
            raise HTTPException(status_code=500, detail="Failed to create conversation")
        return self._to_simple(row)

    def get_conversations(self, user_id: str) -> List[SimpleConversation]:
        try:
            result = self.supabase.table("conversations")\
                .select(SIMPLE_CONVERSATION)\
                .or_(f"adopter_id.eq.{user_id},advertiser_id.eq.{user_id}")\
                .order("updated_at", desc=True)\
                .execute()
            return [self._to_simple(row) for row in result.data or []]
        except Exception as e:
            raise backend_failure("fetch conversations", e)

    def get_conversation(self, conversation_id: str) -> Optional[SimpleConversation]:
        try:
            row = self._fetch(conversation_id)
            return self._to_simple(row) if row else None
        except Exception as e:
            raise backend_failure("fetch conversation", e)

    def get_messages(self, conversation_id: str) -> List[SimpleMessage]:
        try:
            result = self.supabase.table("messages")\
                .select(SIMPLE_MESSAGE)\
                .eq("conversation_id", conversation_id)\
                .order("created_at")\
                .execute()
        except Exception as e:
            raise backend_failure("fetch messages", e)
        return [self._to_message(row) for row in result.data or []]

    def send_message(self, conversation_id: str, sender_id: str, content: str) -> SimpleMessage:
        """Append a message and bump the conversation's updated_at"""
        content = content.strip()
        if not content:
            raise HTTPException(status_code=400, detail="Message content cannot be empty")
        try:
            inserted = self.supabase.table("messages").insert({
                "conversation_id": conversation_id,
                "sender_id": sender_id,
                "content": content
            }).execute()
            if not inserted.data:
                raise HTTPException(status_code=500, detail="Failed to send message")
            touch_conversation(self.supabase, conversation_id)
            result = self.supabase.table("messages")\
                .select(SIMPLE_MESSAGE)\
                .eq("id", inserted.data[0]["id"])\
                .limit(1)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Message sent but could not be read back")
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            raise backend_failure("send message", e)
        logger.info(f"Message sent: {result.data[0]['id']}")
        return self._to_message(result.data[0])

    def _to_message(self, row: Dict[str, Any]) -> SimpleMessage:
        row = dict(row)
        return SimpleMessage(
            id=row["id"],
            conversation_id=row["conversation_id"],
            sender_id=row["sender_id"],
            sender_name=pop_embedded(row, "sender").get("name") or "User",
            content=row["content"],
            created_at=row.get("created_at")
        )

    def start_conversation(self, identity: Dict[str, Any], animal_id: str, advertiser_id: str) -> SimpleConversation:
        """Start (or reopen) the caller's conversation with an advertiser about an animal"""
        current_user = self.profiles.require(identity["id"], identity.get("email"), columns="id, name")
        if normalize_id(current_user["id"]) == normalize_id(advertiser_id):
            raise HTTPException(status_code=400, detail="You cannot start a conversation with yourself")
        return self.get_or_create_conversation(CreateConversationData(
            animal_id=animal_id,
            adopter_id=current_user["id"],
            advertiser_id=advertiser_id
        ))

    def get_user_conversations(self, identity: Dict[str, Any]) -> List[SimpleConversation]:
        current_user = self.profiles.require(identity["id"], identity.get("email"), columns="id")
        return self.get_conversations(current_user["id"])

    def verify_participant(self, identity: Dict[str, Any], conversation_id: str) -> SimpleConversation:
        """The conversation, if the caller is its adopter or advertiser"""
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        candidates = self.profiles.candidate_ids(identity.get("id"), identity.get("email"))
        if normalize_id(conversation.adopter_id) in candidates or normalize_id(conversation.advertiser_id) in candidates:
            return conversation
        raise UnauthorizedError("You are not a participant in this conversation")
