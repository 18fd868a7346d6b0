"""Integration tests for db_client against a real SQLite file."""

import asyncio

import pytest

from src.core import db_client


async def _create_user(email: str = "alice@example.com") -> dict:
    return await db_client.create_record(
        collection="users",
        data={"name": "Alice", "email": email, "password_hash": "x", "role": "user"},
    )


async def _create_task(user_id: str, title: str = "Task") -> dict:
    return await db_client.create_record(
        collection="tasks",
        data={
            "title": title,
            "description": "Description",
            "due_date": "2026-05-01T00:00:00+00:00",
            "user_id": user_id,
            "assigned_by_id": user_id,
            "location": {"type": "Point", "coordinates": [-74.006, 40.7128]},
        },
    )


async def _create_document(task: dict) -> dict:
    return await db_client.create_record(
        collection="documents",
        data={
            "name": "Doc",
            "file_url": "https://example.com/a.pdf",
            "task_id": task["id"],
            "user_id": task["user_id"],
            "file_type": "pdf",
            "audit_log": [{"action": "Created", "user_id": task["user_id"], "notes": "Document uploaded"}],
        },
    )


@pytest.mark.integration
class TestRecords:
    """CRUD round trips through SQLite."""

    async def test_ids_are_strings_and_json_columns_decode(self, sqlite_db):
        user = await _create_user()
        task = await _create_task(user["id"])

        assert isinstance(task["id"], str)
        assert task["user_id"] == user["id"]
        assert task["location"] == {"type": "Point", "coordinates": [-74.006, 40.7128]}
        assert task["status"] == "To Do"
        assert task["created"].endswith("Z")

    async def test_missing_and_malformed_ids_raise_record_not_found(self, sqlite_db):
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id="12345")
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id="not-an-id")

    async def test_email_is_unique_case_insensitively(self, sqlite_db):
        await _create_user("alice@example.com")

        with pytest.raises(db_client.UniqueConstraintError):
            await _create_user("ALICE@example.com")

    async def test_filter_with_or_group_and_sort(self, sqlite_db):
        user = await _create_user()
        first = await _create_task(user["id"], "First")
        second = await _create_task(user["id"], "Second")
        await _create_task(user["id"], "Third")

        records = await db_client.list_records(
            collection="tasks",
            filter_query=f'(id = "{first["id"]}" || id = "{second["id"]}")',
            sort="-created",
        )

        assert [r["title"] for r in records] == ["Second", "First"]

    async def test_where_values_are_bound_not_parsed(self, sqlite_db):
        user = await _create_user("o'brien&&co@example.com")

        found = await db_client.get_first_record(collection="users", where={"email": "o'brien&&co@example.com"})
        missing = await db_client.get_first_record(collection="users", where={"email": 'x" || email != "'})

        assert found["id"] == user["id"]
        assert missing is None

    async def test_where_combines_with_filter(self, sqlite_db):
        alice = await _create_user()
        bob = await _create_user("bob@example.com")
        await _create_task(alice["id"], "Alice task")
        await _create_task(bob["id"], "Bob task")

        records = await db_client.list_records(
            collection="tasks",
            filter_query='status = "To Do"',
            where={"user_id": bob["id"]},
        )

        assert [r["title"] for r in records] == ["Bob task"]

    async def test_where_rejects_unsafe_field_names(self, sqlite_db):
        with pytest.raises(db_client.DatabaseError, match="Invalid field name"):
            await db_client.get_first_record(collection="users", where={"email = email OR 1": "x"})

    async def test_listing_without_page_size_returns_every_row(self, sqlite_db):
        user = await _create_user()
        for i in range(60):
            await _create_task(user["id"], f"Task {i}")

        assert len(await db_client.list_records(collection="tasks")) == 50
        assert len(await db_client.list_records(collection="tasks", per_page=None)) == 60


@pytest.mark.integration
class TestConditionalUpdate:
    """update_record_if only writes while the expected values still hold."""

    async def test_matching_update_applies(self, sqlite_db):
        task = await _create_task((await _create_user())["id"])
        document = await _create_document(task)

        updated = await db_client.update_record_if(
            collection="documents",
            record_id=document["id"],
            data={"status": "Approved"},
            expected={"status": "Pending"},
        )

        assert updated is not None
        assert updated["status"] == "Approved"

    async def test_stale_expectation_returns_none(self, sqlite_db):
        task = await _create_task((await _create_user())["id"])
        document = await _create_document(task)
        await db_client.update_record(collection="documents", record_id=document["id"], data={"status": "Rejected"})

        result = await db_client.update_record_if(
            collection="documents",
            record_id=document["id"],
            data={"status": "Approved"},
            expected={"status": "Pending"},
        )

        assert result is None
        stored = await db_client.get_record(collection="documents", record_id=document["id"])
        assert stored["status"] == "Rejected"

    async def test_missing_record_raises(self, sqlite_db):
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.update_record_if(
                collection="documents",
                record_id="999",
                data={"status": "Approved"},
                expected={"status": "Pending"},
            )

    async def test_concurrent_updates_only_one_wins(self, sqlite_db):
        task = await _create_task((await _create_user())["id"])
        document = await _create_document(task)

        results = await asyncio.gather(
            *(
                db_client.update_record_if(
                    collection="documents",
                    record_id=document["id"],
                    data={"status": status},
                    expected={"status": "Pending"},
                )
                for status in ("Approved", "Rejected", "Approved")
            )
        )

        assert sum(result is not None for result in results) == 1


@pytest.mark.integration
class TestTransaction:
    """transaction() commits or rolls back as a unit."""

    async def test_commit(self, sqlite_db):
        task = await _create_task((await _create_user())["id"])
        await _create_document(task)

        async with db_client.transaction():
            deleted = await db_client.delete_records(collection="documents", filter_query=f'task_id = "{task["id"]}"')
            await db_client.delete_record(collection="tasks", record_id=task["id"])

        assert deleted == 1
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id=task["id"])

    async def test_rollback_restores_deleted_rows(self, sqlite_db):
        task = await _create_task((await _create_user())["id"])
        document = await _create_document(task)

        with pytest.raises(RuntimeError, match="boom"):
            async with db_client.transaction():
                await db_client.delete_records(collection="documents", filter_query=f'task_id = "{task["id"]}"')
                raise RuntimeError("boom")

        stored = await db_client.get_record(collection="documents", record_id=document["id"])
        assert stored["id"] == document["id"]

    async def test_task_with_documents_cannot_be_deleted_directly(self, sqlite_db):
        task = await _create_task((await _create_user())["id"])
        await _create_document(task)

        with pytest.raises(db_client.DatabaseError):
            await db_client.delete_record(collection="tasks", record_id=task["id"])

    async def test_delete_records_requires_filter(self, sqlite_db):
        with pytest.raises(ValueError, match="without a filter"):
            await db_client.delete_records(collection="documents", filter_query="")
