"""Unit tests for user_service module."""

import pytest

from src.core.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError
from src.domain.create_models import RegisterRequest
from src.domain.update_models import UserDetailsUpdate
from src.domain.user import UserRole
from src.services import user_service


@pytest.mark.unit
class TestRegister:
    """Tests for register function."""

    async def test_register_success(self, patched_db, sample_user_data):
        user = await user_service.register(request=RegisterRequest(**sample_user_data))

        assert user.name == "Test User"
        assert user.email == "test@example.com"
        assert user.role == UserRole.USER

        stored = await patched_db.get_record(collection="users", record_id=user.id)
        assert stored["password_hash"] != sample_user_data["password"]
        assert stored["password_hash"].startswith("$2")

    async def test_register_admin(self, patched_db, sample_user_data):
        user = await user_service.register(request=RegisterRequest(**sample_user_data, role="admin"))

        assert user.is_admin

    async def test_duplicate_email_is_case_insensitive(self, patched_db, sample_user_data):
        await user_service.register(request=RegisterRequest(**sample_user_data))

        with pytest.raises(ConflictError, match="User already exists with this email"):
            await user_service.register(
                request=RegisterRequest(**{**sample_user_data, "email": "TEST@example.com"})
            )

    @pytest.mark.parametrize("email", ["o'brien@example.com", "a&&b@example.com", 'quo"te@example.com'])
    async def test_register_and_login_with_punctuation_in_email(self, patched_db, email):
        user = await user_service.register(request=RegisterRequest(name="Pat", email=email, password="password123"))

        assert (await user_service.authenticate(email=email, password="password123")).id == user.id
        with pytest.raises(ConflictError):
            await user_service.register(request=RegisterRequest(name="Pat", email=email, password="password123"))


@pytest.mark.unit
class TestAuthenticate:
    """Tests for authenticate and the bearer token round trip."""

    async def test_valid_credentials(self, alice):
        user = await user_service.authenticate(email="alice@example.com", password="password123")

        assert user.id == alice.id

    async def test_wrong_password(self, alice):
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await user_service.authenticate(email="alice@example.com", password="wrong-password")

    async def test_unknown_email(self, patched_db):
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await user_service.authenticate(email="nobody@example.com", password="password123")

    async def test_token_resolves_to_user(self, alice):
        token = user_service.issue_token(alice)

        assert (await user_service.get_user_for_token(token)).id == alice.id

    async def test_token_for_deleted_user_is_rejected(self, alice, patched_db):
        token = user_service.issue_token(alice)
        await patched_db.delete_record(collection="users", record_id=alice.id)

        with pytest.raises(AuthenticationError):
            await user_service.get_user_for_token(token)


@pytest.mark.unit
class TestUpdateAccount:
    """Tests for update_details and update_password."""

    async def test_update_name_and_email(self, alice):
        user = await user_service.update_details(
            user_id=alice.id,
            update=UserDetailsUpdate(name="Alice Smith", email="Alice.Smith@example.com"),
        )

        assert user.name == "Alice Smith"
        assert user.email == "alice.smith@example.com"
        assert user.role == alice.role

    async def test_email_taken_by_other_user(self, alice, bob):
        with pytest.raises(ConflictError, match="Email already exists"):
            await user_service.update_details(user_id=alice.id, update=UserDetailsUpdate(email=bob.email))

    async def test_unknown_user(self, patched_db):
        with pytest.raises(NotFoundError, match="User not found"):
            await user_service.update_details(user_id="99999", update=UserDetailsUpdate(name="X"))

    async def test_update_password(self, alice):
        await user_service.update_password(
            user_id=alice.id,
            current_password="password123",
            new_password="new-password",
        )

        user = await user_service.authenticate(email=alice.email, password="new-password")
        assert user.id == alice.id
        with pytest.raises(AuthenticationError):
            await user_service.authenticate(email=alice.email, password="password123")

    async def test_update_password_with_wrong_current_password(self, alice):
        with pytest.raises(AuthenticationError, match="Password is incorrect"):
            await user_service.update_password(
                user_id=alice.id,
                current_password="not-my-password",
                new_password="new-password",
            )


@pytest.mark.unit
class TestListUsers:
    """Tests for list_users."""

    async def test_admin_lists_users_by_name(self, alice, bob, admin):
        users = await user_service.list_users(actor=admin)

        assert [u.name for u in users] == ["Admin", "Alice", "Bob"]

    async def test_user_denied(self, alice):
        with pytest.raises(AuthorizationError):
            await user_service.list_users(actor=alice)
