# app/api/v1/endpoints/chat_route.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.api import deps
from app.api.auth.auth import authenticate
from app.realtime import notifier
from app.schemas.auth_schema import CurrentUser, UserListResponse, UserPublic
from app.schemas.chat_schema import (
    ConversationListResponse, ConversationPage, MarkReadResponse, MessageResponse, SendMessageRequest,
    UnreadCountResponse, MessageView,
)
from app.services import chat_service, file_service

router = APIRouter()


def _schedule_delivery(background_tasks: BackgroundTasks, message: MessageView, client_id: Optional[str] = None):
    background_tasks.add_task(notifier.emit_to_user, message.recipient_id, "new_message", message)
    background_tasks.add_task(
        notifier.emit_to_user,
        message.sender_id,
        "message_sent",
        {"success": True, "message": message.model_dump(mode="json"), "client_id": client_id},
    )


@router.get("/conversations", response_model=ConversationListResponse, summary="Recent conversations")
def get_conversations(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    One entry per counterpart with the last message and the unread count.
    """
    return ConversationListResponse(conversations=chat_service.get_recent_conversations(db, current_user.id, limit))


@router.get("/conversation/{user_id}", response_model=ConversationPage, summary="Messages with one user")
def get_conversation(
    user_id: int,
    limit: int = Query(50, ge=1, le=100),
    before_id: Optional[int] = Query(None, ge=1, description="Return messages older than this message id"),
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Oldest first within the page. `next_cursor` is the `before_id` for the
    previous page, null when there is none. Marks the counterpart's messages
    as read.
    """
    messages, next_cursor = chat_service.get_conversation(db, current_user.id, user_id, limit, before_id)
    chat_service.mark_as_read(db, current_user.id, user_id)
    return ConversationPage(messages=messages, next_cursor=next_cursor)


@router.post("/send", response_model=MessageResponse, status_code=status.HTTP_201_CREATED, summary="Send a message")
def send_message(
    message_in: SendMessageRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    message = chat_service.send_message(
        db,
        current_user.id,
        message_in.recipient_id,
        message_in.message_text,
        message_in.message_type,
        message_in.attachment_path,
        message_in.attachment_name,
    )
    _schedule_delivery(background_tasks, message, message_in.client_id)
    return MessageResponse(message=message)


@router.post(
    "/send-file",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a file as a message",
)
def send_file(
    background_tasks: BackgroundTasks,
    recipient_id: int = Form(...),
    message_text: str = Form(""),
    client_id: Optional[str] = Form(None),
    file: UploadFile = File(...),
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    stored_name, original_name, _ = file_service.save_upload(file)
    try:
        message = chat_service.send_message(
            db, current_user.id, recipient_id, message_text, attachment_path=stored_name, attachment_name=original_name
        )
    except Exception:
        file_service.remove_upload(stored_name)
        raise
    _schedule_delivery(background_tasks, message, client_id)
    return MessageResponse(message=message)


@router.get("/users", response_model=UserListResponse, summary="Colleagues available for chat")
def list_users(db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    users = [UserPublic.model_validate(user) for user in chat_service.list_colleagues(db, current_user.id)]
    return UserListResponse(users=users)


@router.put("/mark-read/{user_id}", response_model=MarkReadResponse, summary="Mark a conversation as read")
def mark_read(user_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    return MarkReadResponse(marked_count=chat_service.mark_as_read(db, current_user.id, user_id))


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Unread direct messages")
def unread_count(db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    return UnreadCountResponse(unread_count=chat_service.get_unread_count(db, current_user.id))


@router.delete("/message/{message_id}", summary="Delete own message")
def delete_message(message_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    chat_service.delete_message(db, message_id, current_user.id)
    return {"success": True, "message": "Message deleted successfully"}


@router.get("/attachments/{filename}", summary="Download a chat attachment")
def download_attachment(filename: str, current_user: CurrentUser = Depends(authenticate)):
    path = file_service.resolve_upload(filename)
    return FileResponse(path, filename=filename)
