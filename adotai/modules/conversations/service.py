import logging
from datetime import datetime
from fastapi import HTTPException
from supabase import Client
from typing import Any, Dict, List, Optional

from adotai.core.errors import UnauthorizedError, backend_failure, is_unique_violation
from adotai.core.profiles import ProfileResolver, normalize_id
from adotai.core.queries import pop_embedded
from adotai.modules.conversations.schemas import ConversationResponse, MessageResponse

logger = logging.getLogger(__name__)

CONVERSATION_WITH_JOINS = (
    "*, "
    "animal:animals(name), "
    "adopter:profiles!adopter_id(name), "
    "advertiser:profiles!advertiser_id(name)"
)
MESSAGE_WITH_SENDER = "*, sender:profiles!sender_id(name)"


def find_conversation(supabase: Client, animal_id: str, adopter_id: str, advertiser_id: str, columns: str = "*") -> Optional[Dict[str, Any]]:
    """Conversation for the (animal, adopter, advertiser) triple, if any"""
    result = supabase.table("conversations")\
        .select(columns)\
        .eq("animal_id", animal_id)\
        .eq("adopter_id", adopter_id)\
        .eq("advertiser_id", advertiser_id)\
        .limit(1)\
        .execute()
    return result.data[0] if result.data else None


def insert_conversation(supabase: Client, animal_id: str, adopter_id: str, advertiser_id: str) -> Dict[str, Any]:
    """
    Insert a conversation for the triple. Find-then-insert is not atomic; if
    the backend enforces uniqueness and a concurrent caller won the race, the
    existing row is returned instead.
    """
    try:
        result = supabase.table("conversations").insert({
            "animal_id": animal_id,
            "adopter_id": adopter_id,
            "advertiser_id": advertiser_id
        }).execute()
    except Exception as e:
        if is_unique_violation(e):
            existing = find_conversation(supabase, animal_id, adopter_id, advertiser_id)
            if existing:
                logger.info(f"Conversation {existing['id']} created concurrently; reusing it")
                return existing
        raise
    if not result.data:
        raise HTTPException(status_code=500, detail="Failed to create conversation")
    return result.data[0]


def touch_conversation(supabase: Client, conversation_id: str):
    """Bump updated_at so lists sort by recency (last writer wins)"""
    supabase.table("conversations")\
        .update({"updated_at": datetime.utcnow().isoformat()})\
        .eq("id", conversation_id)\
        .execute()


def flatten_conversation(row: Dict[str, Any]) -> Dict[str, Any]:
    row = dict(row)
    row["animal_name"] = pop_embedded(row, "animal").get("name") or "Animal"
    row["adopter_name"] = pop_embedded(row, "adopter").get("name") or "Adopter"
    row["advertiser_name"] = pop_embedded(row, "advertiser").get("name") or "Advertiser"
    row["status"] = row.get("status") or "active"
    return row


def flatten_message(row: Dict[str, Any]) -> Dict[str, Any]:
    row = dict(row)
    row["sender_name"] = pop_embedded(row, "sender").get("name") or "User"
    return row


class ConversationService:
    def __init__(self, supabase: Client, admin_supabase: Client):
        self.supabase = supabase
        self.profiles = ProfileResolver(supabase, admin_supabase)

    def get_conversations(self, identity: Dict[str, Any]) -> List[ConversationResponse]:
        """Conversations where the caller is adopter or advertiser, most recent first"""
        profile = self.profiles.require(identity["id"], identity.get("email"), columns="id, name, type")
        profile_id = profile["id"]
        try:
            result = self.supabase.table("conversations")\
                .select(CONVERSATION_WITH_JOINS)\
                .or_(f"adopter_id.eq.{profile_id},advertiser_id.eq.{profile_id}")\
                .order("updated_at", desc=True)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch conversations", e)
        logger.info(f"{len(result.data or [])} conversation(s) for profile {profile_id}")
        return [ConversationResponse(**flatten_conversation(row)) for row in result.data or []]

    def get_conversation(self, conversation_id: str) -> ConversationResponse:
        try:
            result = self.supabase.table("conversations")\
                .select(CONVERSATION_WITH_JOINS)\
                .eq("id", conversation_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch conversation", e)
        if not result.data:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return ConversationResponse(**flatten_conversation(result.data[0]))

    def create_conversation(self, identity: Dict[str, Any], animal_id: str, advertiser_id: str) -> ConversationResponse:
        """Find-or-create the conversation between the caller (adopter) and an advertiser about an animal"""
        adopter = self.profiles.require(identity["id"], identity.get("email"), columns="id")

        try:
            advertiser = self.supabase.table("profiles")\
                .select("id")\
                .eq("id", advertiser_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch advertiser profile", e)
        if not advertiser.data:
            raise HTTPException(status_code=404, detail="Advertiser profile not found")

        try:
            existing = find_conversation(self.supabase, animal_id, adopter["id"], advertiser_id, columns="id")
            if existing:
                logger.info(f"Conversation already exists: {existing['id']}")
                conversation_id = existing["id"]
            else:
                conversation_id = insert_conversation(self.supabase, animal_id, adopter["id"], advertiser_id)["id"]
                logger.info(f"Conversation created: {conversation_id}")
        except Exception as e:
            raise backend_failure("create conversation", e)

        return self.get_conversation(conversation_id)

    def get_messages(self, conversation_id: str) -> List[MessageResponse]:
        try:
            result = self.supabase.table("messages")\
                .select(MESSAGE_WITH_SENDER)\
                .eq("conversation_id", conversation_id)\
                .order("created_at")\
                .execute()
        except Exception as e:
            raise backend_failure("fetch messages", e)
        return [MessageResponse(**flatten_message(row)) for row in result.data or []]

    def send_message(self, identity: Dict[str, Any], conversation_id: str, content: str) -> MessageResponse:
        sender = self.profiles.require(identity["id"], identity.get("email"), columns="id")
        try:
            result = self.supabase.table("messages").insert({
                "conversation_id": conversation_id,
                "sender_id": sender["id"],
                "content": content
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to send message")
            message_id = result.data[0]["id"]
            touch_conversation(self.supabase, conversation_id)
            message = self.supabase.table("messages")\
                .select(MESSAGE_WITH_SENDER)\
                .eq("id", message_id)\
                .limit(1)\
                .execute()
            if not message.data:
                raise HTTPException(status_code=500, detail="Message sent but could not be read back")
        except Exception as e:
            logger.error(f"Error sending message to {conversation_id}: {e}")
            raise backend_failure("send message", e)
        return MessageResponse(**flatten_message(message.data[0]))

    def verify_participant(self, identity: Dict[str, Any], conversation_id: str) -> ConversationResponse:
        """Only the adopter and advertiser of a conversation may read or write it"""
        conversation = self.get_conversation(conversation_id)
        candidates = self.profiles.candidate_ids(identity.get("id"), identity.get("email"))
        if normalize_id(conversation.adopter_id) in candidates or normalize_id(conversation.advertiser_id) in candidates:
            return conversation
        raise UnauthorizedError("You are not a participant in this conversation")
