"""Client-side application state with pure reducer functions.

The chat UI keeps documents, chats and insights in a single immutable
:class:`AppState`. Each reducer takes the current state and returns a new
one; nothing here touches the server.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Optional, Sequence

from docrag.models import Chat, ChatMessage, Document, DocumentInsight, utc_now

View = Literal["chat", "documents", "insights"]


@dataclass(frozen=True, slots=True)
class AppState:
    documents: tuple[Document, ...] = ()
    selected_document: Optional[Document] = None
    is_uploading: bool = False
    chats: tuple[Chat, ...] = ()
    current_chat: Optional[Chat] = None
    is_loading_chat: bool = False
    insights: tuple[DocumentInsight, ...] = ()
    is_loading_insights: bool = False
    sidebar_open: bool = True
    current_view: View = "chat"


def set_documents(state: AppState, documents: Sequence[Document]) -> AppState:
    return replace(state, documents=tuple(documents))


def add_document(state: AppState, document: Document) -> AppState:
    return replace(state, documents=state.documents + (document,))


def remove_document(state: AppState, document_id: str) -> AppState:
    return replace(state, documents=tuple(doc for doc in state.documents if doc.id != document_id))


def select_document(state: AppState, document: Optional[Document]) -> AppState:
    return replace(state, selected_document=document)


def set_uploading(state: AppState, is_uploading: bool) -> AppState:
    return replace(state, is_uploading=is_uploading)


def add_chat(state: AppState, chat: Chat) -> AppState:
    """Append ``chat`` and make it the current one."""

    return replace(state, chats=state.chats + (chat,), current_chat=chat)


def set_chats(state: AppState, chats: Sequence[Chat]) -> AppState:
    return replace(state, chats=tuple(chats))


def set_current_chat(state: AppState, chat: Optional[Chat]) -> AppState:
    return replace(state, current_chat=chat)


def add_message_to_current_chat(state: AppState, message: ChatMessage) -> AppState:
    """Append ``message`` to the current chat, or return ``state`` when there is none."""

    if state.current_chat is None:
        return state

    updated_chat = replace(
        state.current_chat,
        messages=state.current_chat.messages + (message,),
        updated_at=utc_now(),
    )
    updated_chats = tuple(
        updated_chat if chat.id == updated_chat.id else chat for chat in state.chats
    )
    return replace(state, current_chat=updated_chat, chats=updated_chats)


def set_loading_chat(state: AppState, is_loading: bool) -> AppState:
    return replace(state, is_loading_chat=is_loading)


def set_insights(state: AppState, insights: Sequence[DocumentInsight]) -> AppState:
    return replace(state, insights=tuple(insights))


def add_insight(state: AppState, insight: DocumentInsight) -> AppState:
    return replace(state, insights=state.insights + (insight,))


def set_loading_insights(state: AppState, is_loading: bool) -> AppState:
    return replace(state, is_loading_insights=is_loading)


def toggle_sidebar(state: AppState) -> AppState:
    return replace(state, sidebar_open=not state.sidebar_open)


def set_current_view(state: AppState, view: View) -> AppState:
    if view not in ("chat", "documents", "insights"):
        raise ValueError(f"Unknown view: {view!r}")
    return replace(state, current_view=view)


__all__ = [
    "AppState",
    "View",
    "add_chat",
    "add_document",
    "add_insight",
    "add_message_to_current_chat",
    "remove_document",
    "select_document",
    "set_chats",
    "set_current_chat",
    "set_current_view",
    "set_documents",
    "set_insights",
    "set_loading_chat",
    "set_loading_insights",
    "set_uploading",
    "toggle_sidebar",
]
