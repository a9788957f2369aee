"""Tests for the Repository class."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from minorm.core.connection import ExecutionMode
from minorm.core.entity import Entity
from minorm.core.errors import EntityDefinitionError
from minorm.core.repository import Repository


@pytest.fixture
def repo(executor, user_kind) -> Repository:
    return Repository(executor, user_kind)


class TestDefinition:
    def test_reads_kind_metadata(self, repo: Repository) -> None:
        assert repo.table == "users"
        assert repo.primary_key == "id"

    def test_overrides(self, executor, user_kind) -> None:
        repo = Repository(executor, user_kind, table="archived_users", primary_key="username")
        assert repo.table == "archived_users"
        assert repo.primary_key == "username"

    def test_missing_table(self, executor) -> None:
        class NoTable(Entity):
            columns = ("id",)

        with pytest.raises(EntityDefinitionError) as exc_info:
            Repository(executor, NoTable)
        assert exc_info.value.field == "table"

    def test_missing_columns(self, executor) -> None:
        class NoColumns(Entity):
            table = "things"

        with pytest.raises(EntityDefinitionError):
            Repository(executor, NoColumns)

    def test_primary_key_must_be_a_column(self, executor) -> None:
        class BadKey(Entity):
            table = "things"
            columns = ("name",)

        with pytest.raises(EntityDefinitionError) as exc_info:
            Repository(executor, BadKey)
        assert exc_info.value.context.table == "things"

    def test_query_builder_targets_table(self, repo: Repository) -> None:
        assert repo.create_query_builder("u").prepare_query() == "select * from `users` as u ;"


class TestFind:
    def test_find_hydrates_persisted_entities(self, repo: Repository, executor, user_kind) -> None:
        executor.queue([{"id": 1, "username": "admin"}, {"id": 2, "username": "guest"}])
        users = repo.find({"where": [{"access_level": ["ge", 1]}]})
        assert [u.username for u in users] == ["admin", "guest"]
        assert all(isinstance(u, user_kind) and u.is_new is False for u in users)
        assert executor.last.sql == "select * from `users` where (`access_level` >= :placeholder0) ;"

    def test_find_without_options(self, repo: Repository, executor) -> None:
        assert repo.find() == []
        assert executor.last.sql == "select * from `users` ;"

    def test_find_one(self, repo: Repository, executor) -> None:
        executor.queue([{"id": 1, "username": "admin"}])
        user = repo.find_one({"where": [{"id": 1}]})
        assert user.get("username") == "admin"

    def test_find_one_none(self, repo: Repository) -> None:
        assert repo.find_one({"where": [{"id": 99}]}) is None

    def test_find_by_raw_condition(self, repo: Repository, executor) -> None:
        executor.queue([{"id": 1, "username": "admin"}])
        users = repo.find_by("`username` = :name", {"name": "admin"})
        assert len(users) == 1
        assert executor.last.sql == "select * from `users` where `username` = :name ;"
        assert executor.last.params == {"name": "admin"}

    def test_find_by_mapping(self, repo: Repository, executor) -> None:
        repo.find_by({"username": "admin", "access_level": ["gt", 3]})
        assert executor.last.sql == (
            "select * from `users` where (`username` = :placeholder0 and `access_level` > :placeholder1) ;"
        )

    def test_find_one_by(self, repo: Repository, executor) -> None:
        assert repo.find_one_by("`id` = :id", {"id": 5}) is None
        assert executor.last.params == {"id": 5}


class TestHydrationFailures:
    def test_failed_rows_are_skipped_and_logged(self, executor, broken_user_kind) -> None:
        repo = Repository(executor, broken_user_kind)
        executor.queue([{"id": 1, "username": "admin"}, {"id": 2, "username": "broken"}])
        with capture_logs() as logs:
            users = repo.find()
        assert [u.username for u in users] == ["admin"]
        failures = [log for log in logs if log["event"] == "entity_hydration_failed"]
        assert len(failures) == 1
        assert failures[0]["log_level"] == "warning"
        assert failures[0]["table"] == "users"

    def test_find_one_failure_is_none(self, executor, broken_user_kind) -> None:
        repo = Repository(executor, broken_user_kind)
        executor.queue([{"id": 2, "username": "broken"}])
        assert repo.find_one() is None


class TestSave:
    def test_unmodified_entity_is_noop(self, repo: Repository, executor, user_kind) -> None:
        repo.save(user_kind({"username": "admin"}))
        assert executor.calls == []

    def test_found_entity_saved_unchanged_issues_no_write(self, repo: Repository, executor) -> None:
        executor.queue([{"id": 1, "username": "admin"}])
        user = repo.find_one()
        repo.save(user)
        assert len(executor.calls) == 1
        assert executor.last.sql.startswith("select")

    def test_insert_new_entity(self, repo: Repository, executor, user_kind) -> None:
        executor.insert_id = 7
        user = user_kind()
        user.set("username", "admin")
        user.set("access_level", 9)
        repo.save(user)

        assert executor.last.sql == "insert into `users` ( `username`, `access_level` ) values ( ?, ? ) ;"
        assert executor.last.params == ["admin", 9]
        assert executor.last.mode is ExecutionMode.POSITIONAL
        assert user.get("id") == 7
        assert user.is_new is False
        assert user.is_modified is False

    def test_update_persisted_entity(self, repo: Repository, executor, user_kind) -> None:
        user = user_kind({"id": 3, "username": "guest"}, is_new=False)
        user.set("access_level", 2)
        repo.save(user)

        assert executor.last.sql == (
            "update `users` set `access_level` = :access_level where (`id` = :placeholder0) ;"
        )
        assert executor.last.params == {"placeholder0": 3, "access_level": 2}
        assert user.is_modified is False

    def test_save_twice_issues_one_statement(self, repo: Repository, executor, user_kind) -> None:
        user = user_kind({"id": 3}, is_new=False)
        user.set("username", "x")
        repo.save(user)
        repo.save(user)
        assert len(executor.calls) == 1

    def test_second_save_after_insert_updates(self, repo: Repository, executor, user_kind) -> None:
        user = user_kind()
        user.set("username", "a")
        repo.save(user)
        user.set("username", "b")
        repo.save(user)
        assert executor.last.sql.startswith("update `users`")
        assert executor.last.params == {"placeholder0": 1, "username": "b"}


class TestDelete:
    def test_delete_persisted(self, repo: Repository, executor, user_kind) -> None:
        repo.delete(user_kind({"id": 4}, is_new=False))
        assert executor.last.sql == "delete from `users` where (`id` = :placeholder0) ;"
        assert executor.last.params == {"placeholder0": 4}

    def test_delete_new_or_none_is_noop(self, repo: Repository, executor, user_kind) -> None:
        repo.delete(None)
        repo.delete(user_kind({"id": 4}))
        assert executor.calls == []


class TestAgainstSQLite:
    def test_entity_lifecycle(self, sqlite_conn, user_kind) -> None:
        repo = Repository(sqlite_conn, user_kind)

        user = user_kind()
        user.set("username", "admin")
        user.set("access_level", 9)
        repo.save(user)
        assert user.get("id") == 1

        user.set("access_level", 8)
        repo.save(user)
        found = repo.find_one_by({"id": 1})
        assert found.to_dict() == {"id": 1, "username": "admin", "access_level": 8}

        repo.delete(found)
        assert repo.find() == []

    def test_find_with_options(self, seeded_conn, user_kind) -> None:
        repo = Repository(seeded_conn, user_kind)
        users = repo.find({"where": [{"access_level": ["lt", 9]}], "orderBy": {"access_level": "desc"}})
        assert [u.username for u in users] == ["editor", "guest"]
