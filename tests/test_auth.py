"""Tests de autenticación y sesión."""

import pytest

from cuotas.auth import (
    SESSION_KEY,
    CredentialTable,
    UserSession,
    current_session,
    init_session,
    sign_in,
    sign_out,
)
from cuotas.errors import AuthError, ConfigError

USERS = [
    {"username": "Admin", "password": "secreta", "role": "admin", "full_name": "Administrador"},
    {"username": "Tutora1", "password": "T2025", "role": "tutora", "full_name": "Sandra Galindo"},
]


@pytest.fixture
def provider():
    return CredentialTable(USERS)


class TestCredentialTable:
    def test_empty_table_rejected(self):
        with pytest.raises(ConfigError):
            CredentialTable([])

    def test_username_case_insensitive(self, provider):
        session = provider.authenticate("admin", "secreta")
        assert session == UserSession("Admin", "Administrador", "admin")
        assert session.is_admin
        assert not session.is_tutor

    def test_password_case_sensitive(self, provider):
        with pytest.raises(AuthError, match="Usuario o contraseña incorrectos"):
            provider.authenticate("Admin", "SECRETA")

    def test_unknown_user(self, provider):
        with pytest.raises(AuthError):
            provider.authenticate("nadie", "x")

    def test_tutor_capabilities(self, provider):
        session = provider.authenticate("Tutora1", "T2025")
        assert session.is_tutor
        assert not session.is_admin
        assert session.email == "Tutora1@cdi660.com"


class TestSessionState:
    def test_init_creates_empty_session(self):
        state = {}
        init_session(state)
        assert state == {SESSION_KEY: None}
        assert current_session(state) is None

    def test_init_keeps_existing_session(self, provider):
        state = {}
        sign_in(state, provider, "Admin", "secreta")
        init_session(state)
        assert current_session(state).username == "Admin"

    def test_sign_in_and_out(self, provider):
        state = {}
        init_session(state)

        session = sign_in(state, provider, "tutora1", "T2025")
        assert current_session(state) == session

        sign_out(state)
        assert current_session(state) is None

    def test_failed_sign_in_leaves_state(self, provider):
        state = {}
        init_session(state)
        with pytest.raises(AuthError):
            sign_in(state, provider, "Admin", "mala")
        assert state[SESSION_KEY] is None

    def test_corrupt_session_discarded(self):
        state = {SESSION_KEY: {"user": "x"}}
        assert current_session(state) is None
        assert state[SESSION_KEY] is None
