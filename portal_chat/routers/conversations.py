from fastapi import APIRouter, Depends, HTTPException, status

from portal_chat.models.conversation import ParticipantDocument
from portal_chat.repositories.conversation_repository import installer_of
from portal_chat.schemas.chat import ConversationExport, CreateConversationRequest, SendMessageRequest, TagsRequest
from portal_chat.services.chat_service import ChatService
from portal_chat.utils.dependencies import get_chat_service, get_current_viewer


router = APIRouter(prefix="/conversations", tags=["chat"])


def _require_admin(viewer: ParticipantDocument) -> None:
    if viewer["type"] != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only.")


def _require_access(service: ChatService, conversation_id: str, viewer: ParticipantDocument, allow_missing: bool = False) -> None:
    if viewer["type"] == "admin":
        return
    conversation = service.get_conversation(conversation_id)
    if conversation is None and allow_missing:
        return
    installer = installer_of(conversation) if conversation else None
    if installer is None or installer["id"] != viewer["id"]:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found.")


@router.get("")
async def list_conversations(viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    items = await service.list_conversations(viewer["type"], viewer["id"])
    return {"items": items}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_conversation(body: CreateConversationRequest, viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    installer = body.installer.model_dump()
    if viewer["type"] == "installer" and viewer["id"] != installer["id"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Installers can only open their own conversation.")
    if body.message:
        conversation, message = await service.start_conversation(installer, body.message, sender=viewer)
        return {"conversation": conversation, "message": message}
    conversation = await service.create_conversation(installer)
    return {"conversation": conversation, "message": None}


@router.get("/admins")
async def admin_pool(service: ChatService = Depends(get_chat_service)):
    return {"items": [service.admin_pool()]}


@router.get("/{conversation_id}/messages")
async def list_messages(conversation_id: str, viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    _require_access(service, conversation_id, viewer)
    return {"items": service.get_messages(conversation_id)}


@router.post("/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(conversation_id: str, body: SendMessageRequest, viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    _require_access(service, conversation_id, viewer, allow_missing=True)
    try:
        message = await service.send_message(
            conversation_id,
            viewer,
            body.body,
            kind=body.kind,
            attachments=body.attachments,
            message_id=body.message_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found.")
    return {"message": message}


@router.post("/{conversation_id}/read")
async def mark_read(conversation_id: str, viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    _require_access(service, conversation_id, viewer)
    updated = await service.mark_as_read(conversation_id, viewer["type"])
    return {"updated": updated}


@router.delete("/{conversation_id}")
async def delete_conversation(conversation_id: str, viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    _require_admin(viewer)
    if not await service.delete_conversation(conversation_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found.")
    return {"deleted": True}


@router.post("/{conversation_id}/important")
async def toggle_important(conversation_id: str, viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    _require_admin(viewer)
    value = await service.toggle_important(conversation_id)
    if value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found.")
    return {"is_important": value}


@router.post("/{conversation_id}/mute")
async def toggle_mute(conversation_id: str, viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    _require_access(service, conversation_id, viewer)
    value = await service.toggle_mute(conversation_id)
    if value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found.")
    return {"is_muted": value}


@router.post("/{conversation_id}/tags")
async def update_tags(conversation_id: str, body: TagsRequest, viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    _require_admin(viewer)
    if body.op == "add":
        tags = await service.add_tags(conversation_id, body.tags)
    else:
        tags = await service.remove_tags(conversation_id, body.tags)
    if tags is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found.")
    return {"tags": tags}


@router.get("/{conversation_id}/export", response_model=ConversationExport)
async def export_conversation(conversation_id: str, viewer: ParticipantDocument = Depends(get_current_viewer), service: ChatService = Depends(get_chat_service)):
    _require_admin(viewer)
    exported = service.export_conversation(conversation_id)
    if exported is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found.")
    return exported
