"""
Tests for the profile store against an in-memory MongoDB.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from errors import ConflictError, StoreError, ValidationError


class TestCreateUser:

    def test_create_returns_record_with_id(self, profiles, ann):
        before = datetime.now(timezone.utc)
        user = profiles.create_user(ann)
        assert ObjectId.is_valid(user["id"])
        assert user["name"] == "Ann"
        assert user["createdAt"] >= before
        assert "_id" not in user

    def test_created_user_is_listed(self, profiles, ann):
        user = profiles.create_user(ann)
        assert [u["id"] for u in profiles.list_users()] == [user["id"]]

    def test_address_is_stored(self, profiles, ann):
        ann["address"] = {"city": "Oslo", "country": "Norway", "zip": 150}
        user = profiles.create_user(ann)
        assert profiles.get_user(user["id"])["address"] == ann["address"]

    def test_duplicate_email_conflicts(self, profiles, ann):
        profiles.create_user(ann)
        with pytest.raises(ConflictError):
            profiles.create_user({**ann, "name": "Other Ann"})
        assert len(profiles.list_users()) == 1

    @pytest.mark.parametrize("change", [
        {"age": 17},
        {"name": None},
        {"email": "not-an-email"},
    ])
    def test_invalid_user_rejected(self, profiles, ann, change):
        payload = {k: v for k, v in {**ann, **change}.items() if v is not None}
        with pytest.raises(ValidationError) as exc_info:
            profiles.create_user(payload)
        assert exc_info.value.details
        assert profiles.list_users() == []

    def test_store_failure_is_wrapped(self, profiles, ann):
        with patch.object(profiles.collection, "insert_one", side_effect=PyMongoError("down")):
            with pytest.raises(StoreError):
                profiles.create_user(ann)


class TestListUsers:

    def test_empty(self, profiles):
        assert profiles.list_users() == []

    def test_newest_first(self, profiles):
        now = datetime.now(timezone.utc)
        for i, name in enumerate(["old", "newest", "middle"]):
            offset = {"old": 2, "middle": 1, "newest": 0}[name]
            profiles.collection.insert_one({
                "name": name,
                "email": f"{name}@x.com",
                "age": 20 + i,
                "createdAt": now - timedelta(minutes=offset),
            })
        assert [u["name"] for u in profiles.list_users()] == ["newest", "middle", "old"]

    def test_store_failure_is_wrapped(self, profiles):
        with patch.object(profiles.collection, "find", side_effect=PyMongoError("down")):
            with pytest.raises(StoreError):
                profiles.list_users()


class TestGetAndDeleteUser:

    def test_get_existing(self, profiles, ann):
        user = profiles.create_user(ann)
        assert profiles.get_user(user["id"])["email"] == "ann@x.com"

    def test_get_missing(self, profiles):
        assert profiles.get_user(str(ObjectId())) is None

    def test_get_malformed_id(self, profiles):
        assert profiles.get_user("not-an-id") is None

    def test_delete(self, profiles, ann):
        user = profiles.create_user(ann)
        assert profiles.delete_user(user["id"]) is True
        assert profiles.get_user(user["id"]) is None

    def test_delete_missing(self, profiles):
        assert profiles.delete_user(str(ObjectId())) is False
        assert profiles.delete_user("nope") is False


class TestIndexes:

    def test_email_index_is_unique(self, profiles):
        info = profiles.collection.index_information()
        email_index = [v for v in info.values() if v["key"] == [("email", 1)]]
        assert email_index and email_index[0].get("unique") is True

    def test_ensure_indexes_is_idempotent(self, profiles):
        profiles.ensure_indexes()
        profiles.ensure_indexes()
        info = profiles.collection.index_information()
        assert len([v for v in info.values() if v["key"] == [("email", 1)]]) == 1
