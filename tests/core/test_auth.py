"""
Tests for AuthService.
"""

import pytest
from datetime import datetime, timedelta, timezone


@pytest.fixture
async def auth(memory_store):
    from crudzaso.seed import seed_demo_users
    from crudzaso.services.auth import AuthService

    service = AuthService(store=memory_store)
    await seed_demo_users(service)
    return service


class TestPasswordHashing:
    def test_hash_and_verify(self):
        from crudzaso.services.auth import hash_password, verify_password

        encoded = hash_password("password123")

        assert "password123" not in encoded
        assert verify_password("password123", encoded) is True
        assert verify_password("password124", encoded) is False

    def test_salts_differ(self):
        from crudzaso.services.auth import hash_password

        assert hash_password("same") != hash_password("same")

    def test_malformed_hash_never_matches(self):
        from crudzaso.services.auth import verify_password

        assert verify_password("password123", "password123") is False
        assert verify_password("x", "md5$1$salt$abc") is False


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_demo_user(self, auth):
        identity = await auth.authenticate("student@university.edu", "password123")

        assert identity.name == "Alex Morgan"
        assert identity.role == "Product Designer"

    @pytest.mark.asyncio
    async def test_email_is_case_insensitive(self, auth):
        identity = await auth.authenticate("  Student@University.EDU ", "password123")

        assert identity.email == "student@university.edu"

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, auth):
        from crudzaso.errors import InvalidCredentials

        with pytest.raises(InvalidCredentials) as wrong_password:
            await auth.authenticate("student@university.edu", "wrong-password")
        with pytest.raises(InvalidCredentials) as unknown_email:
            await auth.authenticate("nobody@university.edu", "password123")

        assert wrong_password.value.to_dict() == unknown_email.value.to_dict()

    @pytest.mark.asyncio
    async def test_passwords_are_not_stored_in_plaintext(self, auth, memory_store):
        raw = await memory_store.get("crudzaso_users")

        assert "password123" not in raw
        assert "passwordHash" in raw


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_starts_session(self, auth, now):
        session = await auth.login("sarah@crudzaso.edu", "admin123", now=now)

        assert session.expires == now + timedelta(hours=24)
        current = await auth.current_session(now + timedelta(hours=1))
        assert current.user_id == session.user_id

    @pytest.mark.asyncio
    async def test_login_validates_form(self, auth):
        from crudzaso.errors import ValidationError

        with pytest.raises(ValidationError) as exc:
            await auth.login("not-an-email", "123")

        assert set(exc.value.errors) == {"email", "password"}

    @pytest.mark.asyncio
    async def test_remember_me(self, auth):
        await auth.login("john@university.edu", "student456", remember_me=True)
        assert await auth.remembered_email() == "john@university.edu"

        await auth.login("john@university.edu", "student456", remember_me=False)
        assert await auth.remembered_email() is None

    @pytest.mark.asyncio
    async def test_logout_clears_session_and_remember_me(self, auth, memory_store):
        await auth.login("john@university.edu", "student456", remember_me=True)

        await auth.logout()

        assert await auth.current_session() is None
        assert await memory_store.get("crudzaso_user_session") is None
        assert await memory_store.get("crudzaso_remember_me") is None


class TestCurrentSession:
    @pytest.mark.asyncio
    async def test_expired_session_is_cleared(self, auth, memory_store, now):
        await auth.login("john@university.edu", "student456", now=now)

        assert await auth.current_session(now + timedelta(hours=25)) is None
        assert await memory_store.get("crudzaso_user_session") is None

    @pytest.mark.asyncio
    async def test_malformed_session_is_cleared(self, auth, memory_store):
        await memory_store.write_json("crudzaso_user_session", {"email": "x@y.com", "expires": "soon"})

        assert await auth.current_session() is None
        assert await memory_store.get("crudzaso_user_session") is None

    @pytest.mark.asyncio
    async def test_corrupt_session_json(self, auth, memory_store):
        await memory_store.set("crudzaso_user_session", "{{{")

        assert await auth.current_session() is None

    @pytest.mark.asyncio
    async def test_require_session(self, auth):
        from crudzaso.errors import NotAuthenticated

        with pytest.raises(NotAuthenticated):
            await auth.require_session()


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_and_auto_login(self, auth):
        identity = await auth.register("Maria José", "maria@uni.edu", "longpassword", "longpassword")

        assert identity.role == "Student"
        assert identity.department == "General"
        session = await auth.current_session()
        assert session.user_id == identity.user_id
        assert (await auth.authenticate("maria@uni.edu", "longpassword")).user_id == identity.user_id

    @pytest.mark.asyncio
    async def test_register_without_auto_login(self, memory_store):
        from crudzaso.config import SessionConfig
        from crudzaso.services.auth import AuthService

        service = AuthService(store=memory_store, config=SessionConfig(auto_login_after_register=False))
        await service.register("Ana Ruiz", "ana@uni.edu", "longpassword", "longpassword")

        assert await service.current_session() is None

    @pytest.mark.asyncio
    async def test_duplicate_email_case_insensitive(self, auth):
        from crudzaso.errors import EmailAlreadyRegistered

        await auth.register("Ann Bee", "A@B.com", "longpassword", "longpassword")

        with pytest.raises(EmailAlreadyRegistered):
            await auth.register("Other Person", " a@b.com ", "longpassword", "longpassword")

    @pytest.mark.asyncio
    async def test_register_validation(self, auth):
        from crudzaso.errors import ValidationError

        with pytest.raises(ValidationError) as exc:
            await auth.register("R2D2", "bad", "short", "different")

        assert set(exc.value.errors) == {"name", "email", "password", "confirm_password"}

    @pytest.mark.asyncio
    async def test_update_display_name(self, auth):
        session = await auth.login("john@university.edu", "student456")

        await auth.update_display_name(session.user_id, "Johnny Doe")

        assert (await auth.current_session()).name == "Johnny Doe"
        assert (await auth.find_user("john@university.edu")).name == "Johnny Doe"
