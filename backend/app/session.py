# session.py
# Per-browser application state and the reducers that move it forward.
# Every reducer returns a new AppState; nothing here does I/O.

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .errors import ChatBusyError
from .models import AnalysisProject, ChatMessage, ChatTurn, UserPublic

Tab = Literal["analysis", "chat", "proposal", "admin"]


class AppState(BaseModel):
    current_user: Optional[UserPublic] = None
    session_id: Optional[str] = None
    selected_project_id: Optional[str] = None
    active_tab: Tab = "analysis"
    chat_messages: List[ChatMessage] = Field(default_factory=list)
    is_chat_loading: bool = False
    is_processing: bool = False


def _with(state: AppState, **changes) -> AppState:
    return state.model_copy(update=changes)


def logged_in(state: AppState, user: UserPublic, session_id: Optional[str] = None) -> AppState:
    if user.role == "admin":
        return _with(
            state, current_user=user, session_id=session_id,
            active_tab="admin", selected_project_id=None, chat_messages=[],
        )
    return _with(state, current_user=user, session_id=session_id, active_tab="analysis")


def logged_out(state: AppState) -> AppState:
    return AppState()


def tab_selected(state: AppState, tab: Tab) -> AppState:
    if tab == "admin":
        if state.current_user is None or state.current_user.role != "admin":
            return state
        return _with(state, active_tab="admin", selected_project_id=None, chat_messages=[])
    return _with(state, active_tab=tab)


def project_selected(state: AppState, project_id: Optional[str]) -> AppState:
    if project_id == state.selected_project_id:
        return _with(state, active_tab="analysis")
    return _with(state, selected_project_id=project_id, active_tab="analysis", chat_messages=[])


def project_created(state: AppState, project: AnalysisProject) -> AppState:
    return project_selected(state, project.id)


def can_upload(state: AppState) -> bool:
    return state.selected_project_id is not None and not state.is_processing


def upload_started(state: AppState) -> AppState:
    return _with(state, is_processing=True)


def upload_finished(state: AppState) -> AppState:
    return _with(state, is_processing=False)


def can_send_chat(state: AppState, text: str) -> bool:
    return bool(text and text.strip()) and state.selected_project_id is not None and not state.is_chat_loading


def chat_history(state: AppState) -> List[ChatTurn]:
    """Turns already on screen, replayed to seed the model's context."""
    return [ChatTurn(role=m.role, content=m.content) for m in state.chat_messages]


def chat_sent(state: AppState, text: str) -> AppState:
    if state.is_chat_loading:
        raise ChatBusyError()
    if not text or not text.strip() or state.selected_project_id is None:
        return state
    message = ChatMessage(role="user", content=text)
    return _with(state, chat_messages=[*state.chat_messages, message], is_chat_loading=True)


def chat_replied(state: AppState, reply: str) -> AppState:
    message = ChatMessage(role="model", content=reply)
    return _with(state, chat_messages=[*state.chat_messages, message], is_chat_loading=False)


def chat_failed(state: AppState) -> AppState:
    return _with(state, is_chat_loading=False)
