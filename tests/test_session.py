import pytest

from backend.app import session
from backend.app.errors import ChatBusyError
from backend.app.models import AnalysisProject, UserPublic

ADMIN = UserPublic(id="admin-1", name="Administrador Master", email="admin", role="admin")
ANA = UserPublic(id="u-ana", name="Ana", email="ana@x.com", role="user")


def _project(name="Edital"):
    return AnalysisProject(owner_id=ANA.id, owner_email=ANA.email, name=name)


@pytest.fixture
def chatting():
    state = session.project_created(session.logged_in(session.AppState(), ANA), _project())
    return session.chat_replied(session.chat_sent(state, "Qual o SLA?"), "4 horas.")


class TestLogin:
    def test_admin_lands_on_admin_tab(self):
        state = session.logged_in(session.AppState(selected_project_id="p1"), ADMIN)

        assert state.active_tab == "admin"
        assert state.selected_project_id is None

    def test_user_lands_on_analysis(self):
        assert session.logged_in(session.AppState(), ANA).active_tab == "analysis"

    def test_login_keeps_session_id(self):
        assert session.logged_in(session.AppState(), ANA, "s-123").session_id == "s-123"

    def test_logout_clears_everything(self, chatting):
        logged_in = session.logged_in(chatting, ANA, "s-123")

        assert session.logged_out(logged_in) == session.AppState()

    def test_non_admin_cannot_open_admin_tab(self, chatting):
        assert session.tab_selected(chatting, "admin") is chatting


class TestProjects:
    def test_created_project_becomes_selected(self):
        project = _project()

        state = session.project_created(session.logged_in(session.AppState(), ANA), project)

        assert state.selected_project_id == project.id
        assert state.active_tab == "analysis"

    def test_switching_project_resets_chat(self, chatting):
        state = session.project_selected(chatting, "other")

        assert state.chat_messages == []

    def test_reselecting_same_project_keeps_chat(self, chatting):
        state = session.project_selected(chatting, chatting.selected_project_id)

        assert len(state.chat_messages) == 2

    def test_upload_disabled_while_processing(self, chatting):
        busy = session.upload_started(chatting)

        assert not session.can_upload(busy)
        assert session.can_upload(session.upload_finished(busy))


class TestChat:
    def test_send_and_reply(self, chatting):
        assert [m.role for m in chatting.chat_messages] == ["user", "model"]
        assert not chatting.is_chat_loading

    def test_history_is_prior_turns(self, chatting):
        history = session.chat_history(chatting)

        assert [(t.role, t.content) for t in history] == [("user", "Qual o SLA?"), ("model", "4 horas.")]

    def test_second_send_while_waiting_is_blocked(self, chatting):
        waiting = session.chat_sent(chatting, "E a multa?")

        assert not session.can_send_chat(waiting, "Outra pergunta")
        with pytest.raises(ChatBusyError):
            session.chat_sent(waiting, "Outra pergunta")
        assert len(waiting.chat_messages) == 3

    def test_failure_releases_the_input(self, chatting):
        failed = session.chat_failed(session.chat_sent(chatting, "E a multa?"))

        assert session.can_send_chat(failed, "De novo")
        assert failed.chat_messages[-1].content == "E a multa?"

    def test_blank_message_is_ignored(self, chatting):
        assert session.chat_sent(chatting, "   ") is chatting
