from fastapi import APIRouter, Depends
from adotai.database.supabase_client import get_supabase, get_service_supabase
from adotai.modules.conversations.schemas import MessageCreate
from adotai.modules.messaging.schemas import SimpleConversation, SimpleMessage, StartConversationRequest
from adotai.modules.messaging.service import MessagingService
from adotai.modules.users.schemas import UserResponse
from adotai.core.dependencies import get_current_identity, get_current_profile, require_role
from supabase import Client
from typing import Dict, List

router = APIRouter(prefix="/chat", tags=["chat"])


def get_messaging_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> MessagingService:
    return MessagingService(supabase, admin_supabase)


@router.post("/conversations", response_model=SimpleConversation, status_code=201)
async def start_conversation(
    request: StartConversationRequest,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("adopter")),
    service: MessagingService = Depends(get_messaging_service)
):
    """Start or reopen a conversation with an animal's advertiser (adopters only)"""
    return service.start_conversation(identity, request.animal_id, request.advertiser_id)


@router.get("/conversations", response_model=List[SimpleConversation])
async def list_conversations(
    profile: UserResponse = Depends(get_current_profile),
    service: MessagingService = Depends(get_messaging_service)
):
    return service.get_conversations(profile.id)


@router.get("/conversations/{conversation_id}", response_model=SimpleConversation)
async def get_conversation(
    conversation_id: str,
    identity: Dict = Depends(get_current_identity),
    service: MessagingService = Depends(get_messaging_service)
):
    return service.verify_participant(identity, conversation_id)


@router.get("/conversations/{conversation_id}/messages", response_model=List[SimpleMessage])
async def list_messages(
    conversation_id: str,
    identity: Dict = Depends(get_current_identity),
    service: MessagingService = Depends(get_messaging_service)
):
    service.verify_participant(identity, conversation_id)
    return service.get_messages(conversation_id)


@router.post("/conversations/{conversation_id}/messages", response_model=SimpleMessage, status_code=201)
async def send_message(
    conversation_id: str,
    message_data: MessageCreate,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(get_current_profile),
    service: MessagingService = Depends(get_messaging_service)
):
    service.verify_participant(identity, conversation_id)
    return service.send_message(conversation_id, profile.id, message_data.content)
