import pytest

from backend.app import auth, storage
from backend.app.errors import (
    AuthError,
    ConfirmationRequired,
    DuplicateEmailError,
    ProtectedUserError,
    ValidationFailed,
)
from backend.app.models import User, UserCreate


@pytest.fixture
def users():
    return [
        storage.bootstrap_admin(),
        User(id="u-ana", name="Ana", email="Ana@Orgao.gov.br", password="segredo1"),
    ]


class TestLogin:
    def test_exact_match_returns_user(self, users):
        assert auth.login(users, "Ana@Orgao.gov.br", "segredo1").id == "u-ana"

    def test_wrong_password_and_unknown_login_fail_identically(self, users):
        with pytest.raises(AuthError) as wrong_password:
            auth.login(users, "Ana@Orgao.gov.br", "errada")
        with pytest.raises(AuthError) as unknown:
            auth.login(users, "ninguem@x.com", "segredo1")

        assert wrong_password.value.message == unknown.value.message

    def test_login_is_case_sensitive(self, users):
        with pytest.raises(AuthError):
            auth.login(users, "ana@orgao.gov.br", "segredo1")


class TestAddUser:
    def test_appends_new_user_with_generated_id(self, users):
        updated, user = auth.add_user(users, UserCreate(name="Bruno", email="bruno@x.com", password="123456"))

        assert updated[-1] is user
        assert user.id not in {u.id for u in users}
        assert len(users) == 2

    def test_duplicate_email_is_case_insensitive(self, users):
        with pytest.raises(DuplicateEmailError):
            auth.add_user(users, UserCreate(name="Outra", email="ana@orgao.GOV.BR", password="123456"))

        assert len(users) == 2

    @pytest.mark.parametrize("draft", [
        UserCreate(name="", email="c@x.com", password="123456"),
        UserCreate(name="C", email="", password="123456"),
        UserCreate(name="C", email="c@x.com", password="12345"),
    ])
    def test_incomplete_drafts_are_rejected(self, users, draft):
        with pytest.raises(ValidationFailed):
            auth.add_user(users, draft)


class TestDeleteUser:
    def test_bootstrap_admin_cannot_be_removed(self, users):
        with pytest.raises(ProtectedUserError):
            auth.delete_user(users, "admin-1", confirmed=True)

        assert [u.id for u in users] == ["admin-1", "u-ana"]

    def test_requires_confirmation(self, users):
        with pytest.raises(ConfirmationRequired):
            auth.delete_user(users, "u-ana")

    def test_confirmed_delete_removes_record(self, users):
        assert [u.id for u in auth.delete_user(users, "u-ana", confirmed=True)] == ["admin-1"]

    def test_unknown_id_is_noop(self, users):
        assert auth.delete_user(users, "nope", confirmed=True) == users


class TestSessions:
    def test_session_resolves_to_logged_in_user(self, users):
        session_id = auth.start_session(users[1])

        assert auth.session_user(users, session_id).id == "u-ana"

    def test_user_id_is_not_a_session(self, users):
        auth.start_session(users[0])

        assert auth.session_user(users, storage.BOOTSTRAP_ADMIN_ID) is None
        assert auth.session_user(users, None) is None

    def test_ended_session_is_forgotten(self, users):
        session_id = auth.start_session(users[0])

        auth.end_session(session_id)

        assert auth.session_user(users, session_id) is None

    def test_session_of_removed_user_is_rejected(self, users):
        session_id = auth.start_session(users[1])
        remaining = auth.delete_user(users, "u-ana", confirmed=True)

        assert auth.session_user(remaining, session_id) is None
