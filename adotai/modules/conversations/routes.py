from fastapi import APIRouter, Depends
from adotai.database.supabase_client import get_supabase, get_service_supabase
from adotai.modules.conversations.schemas import (
    ConversationCreate, ConversationResponse, MessageCreate, MessageResponse
)
from adotai.modules.conversations.service import ConversationService
from adotai.modules.users.schemas import UserResponse
from adotai.core.dependencies import get_current_identity, require_role
from supabase import Client
from typing import Dict, List

router = APIRouter(prefix="/conversations", tags=["conversations"])


def get_conversation_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> ConversationService:
    return ConversationService(supabase, admin_supabase)


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    identity: Dict = Depends(get_current_identity),
    service: ConversationService = Depends(get_conversation_service)
):
    """Conversations the caller takes part in"""
    return service.get_conversations(identity)


@router.post("", response_model=ConversationResponse, status_code=201)
async def create_conversation(
    conversation_data: ConversationCreate,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("adopter")),
    service: ConversationService = Depends(get_conversation_service)
):
    """Find or create the conversation about an animal with its advertiser"""
    return service.create_conversation(identity, conversation_data.animal_id, conversation_data.advertiser_id)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    identity: Dict = Depends(get_current_identity),
    service: ConversationService = Depends(get_conversation_service)
):
    return service.verify_participant(identity, conversation_id)


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    conversation_id: str,
    identity: Dict = Depends(get_current_identity),
    service: ConversationService = Depends(get_conversation_service)
):
    """Messages in chronological order"""
    service.verify_participant(identity, conversation_id)
    return service.get_messages(conversation_id)


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    conversation_id: str,
    message_data: MessageCreate,
    identity: Dict = Depends(get_current_identity),
    service: ConversationService = Depends(get_conversation_service)
):
    service.verify_participant(identity, conversation_id)
    return service.send_message(identity, conversation_id, message_data.content)
