"""
tests/test_resource_service.py -- Unit tests for resources/service.py.

The service is exercised against a real ResourceStore (temporary SQLite file);
only the policy flags change between test classes.

Coverage:
  - Field validation: required, trimmed, length caps, payload type, unknown fields
  - Failed validation writes nothing
  - Identity policy: writes without an actor are refused when required
  - Ownership policy: scoped listing, foreign reads are NotFound, foreign writes 403,
    unowned records treated as foreign everywhere
  - Absent records map to NotFound
"""

from __future__ import annotations

import pytest

from core.errors import AuthorizationDenied, NotFound, ValidationFailed
from resources.models import Resource
from resources.service import MAX_PAGE_SIZE, TITLE_MAX_LENGTH, ResourceService
from resources.store import ResourceStore

_ALICE = 1
_BOB = 2


@pytest.fixture()
def store(tmp_path) -> ResourceStore:
    s = ResourceStore(db_url=f"sqlite:///{tmp_path / 'resources.db'}")
    yield s
    s.close()


@pytest.fixture()
def service(store: ResourceStore) -> ResourceService:
    return ResourceService(store)


@pytest.fixture()
def scoped(store: ResourceStore) -> ResourceService:
    return ResourceService(store, owner_scoped=True)


class TestValidation:
    def test_create_trims_title_and_sets_owner(self, service: ResourceService) -> None:
        r = service.create_resource({"title": "  Lasagna  ", "body": "Layer it."}, actor_id=_ALICE)
        assert r.title == "Lasagna"
        assert r.owner_id == _ALICE
        assert r.payload == {}

    @pytest.mark.parametrize(
        "fields, field",
        [
            ({"body": "no title"}, "title"),
            ({"title": "no body"}, "body"),
            ({"title": "   ", "body": "x"}, "title"),
            ({"title": "x" * (TITLE_MAX_LENGTH + 1), "body": "x"}, "title"),
            ({"title": "ok", "body": "x", "payload": ["not", "a", "dict"]}, "payload"),
        ],
    )
    def test_invalid_create_names_the_field(self, service: ResourceService, store: ResourceStore, fields, field) -> None:
        with pytest.raises(ValidationFailed) as exc:
            service.create_resource(fields, actor_id=_ALICE)
        assert exc.value.field == field
        assert exc.value.status_code == 400
        assert store.count_resources() == 0

    def test_update_rejects_unknown_field(self, service: ResourceService) -> None:
        r = service.create_resource({"title": "Tacos", "body": "x"}, actor_id=_ALICE)
        with pytest.raises(ValidationFailed) as exc:
            service.update_resource(r.id, {"owner_id": _BOB}, actor_id=_ALICE)
        assert exc.value.field == "owner_id"

    def test_update_with_no_changes_is_rejected(self, service: ResourceService) -> None:
        r = service.create_resource({"title": "Tacos", "body": "x"}, actor_id=_ALICE)
        with pytest.raises(ValidationFailed):
            service.update_resource(r.id, {}, actor_id=_ALICE)

    def test_invalid_update_leaves_record_unchanged(self, service: ResourceService) -> None:
        r = service.create_resource({"title": "Tacos", "body": "x"}, actor_id=_ALICE)
        with pytest.raises(ValidationFailed):
            service.update_resource(r.id, {"body": "new", "title": ""}, actor_id=_ALICE)
        assert service.get_resource(r.id).body == "x"

    @pytest.mark.parametrize("kwargs", [{"order": "shuffle"}, {"limit": 0}, {"limit": MAX_PAGE_SIZE + 1}, {"offset": -1}])
    def test_invalid_listing_parameters(self, service: ResourceService, kwargs) -> None:
        with pytest.raises(ValidationFailed):
            service.list_resources(**kwargs)


class TestIdentityPolicy:
    def test_anonymous_writes_refused(self, service: ResourceService, store: ResourceStore) -> None:
        with pytest.raises(AuthorizationDenied):
            service.create_resource({"title": "Ghost", "body": "x"}, actor_id=None)
        assert store.count_resources() == 0

    def test_anonymous_update_and_delete_refused(self, service: ResourceService) -> None:
        r = service.create_resource({"title": "Pie", "body": "x"}, actor_id=_ALICE)
        with pytest.raises(AuthorizationDenied):
            service.update_resource(r.id, {"title": "Tart"}, actor_id=None)
        with pytest.raises(AuthorizationDenied):
            service.delete_resource(r.id, actor_id=None)

    def test_anonymous_writes_allowed_when_not_required(self, store: ResourceStore) -> None:
        open_service = ResourceService(store, require_identity=False)
        r = open_service.create_resource({"title": "Shared", "body": "x"})
        assert r.owner_id is None


class TestNotFound:
    def test_get_update_delete_missing(self, service: ResourceService) -> None:
        with pytest.raises(NotFound):
            service.get_resource(404)
        with pytest.raises(NotFound):
            service.update_resource(404, {"title": "x"}, actor_id=_ALICE)
        with pytest.raises(NotFound):
            service.delete_resource(404, actor_id=_ALICE)

    def test_deleted_record_is_gone(self, service: ResourceService) -> None:
        r = service.create_resource({"title": "Flan", "body": "x"}, actor_id=_ALICE)
        service.delete_resource(r.id, actor_id=_ALICE)
        with pytest.raises(NotFound):
            service.get_resource(r.id)
        with pytest.raises(NotFound):
            service.delete_resource(r.id, actor_id=_ALICE)


class TestSharedCollection:
    def test_everyone_sees_and_edits_all_records_by_default(self, service: ResourceService) -> None:
        r = service.create_resource({"title": "Curry", "body": "x"}, actor_id=_ALICE)
        assert [x.id for x in service.list_resources(actor_id=_BOB)] == [r.id]
        assert service.update_resource(r.id, {"title": "Green curry"}, actor_id=_BOB).title == "Green curry"


class TestOwnerScoped:
    def test_listing_shows_only_own_records(self, scoped: ResourceService) -> None:
        mine = scoped.create_resource({"title": "Mine", "body": "x"}, actor_id=_ALICE)
        scoped.create_resource({"title": "Bob's", "body": "x"}, actor_id=_BOB)
        assert [r.id for r in scoped.list_resources(actor_id=_ALICE)] == [mine.id]
        assert scoped.list_resources(actor_id=None) == []

    def test_foreign_record_reads_as_not_found(self, scoped: ResourceService) -> None:
        theirs = scoped.create_resource({"title": "Secret", "body": "x"}, actor_id=_BOB)
        with pytest.raises(NotFound):
            scoped.get_resource(theirs.id, actor_id=_ALICE)

    def test_foreign_record_writes_are_forbidden(self, scoped: ResourceService) -> None:
        theirs = scoped.create_resource({"title": "Secret", "body": "x"}, actor_id=_BOB)
        with pytest.raises(AuthorizationDenied) as exc:
            scoped.update_resource(theirs.id, {"title": "Mine now"}, actor_id=_ALICE)
        assert exc.value.status_code == 403
        assert exc.value.code == "forbidden"
        with pytest.raises(AuthorizationDenied):
            scoped.delete_resource(theirs.id, actor_id=_ALICE)
        assert scoped.get_resource(theirs.id, actor_id=_BOB).title == "Secret"

    def test_unowned_record_is_consistent_across_list_read_and_write(
        self, scoped: ResourceService, store: ResourceStore
    ) -> None:
        orphan_id = store.create_resource(Resource(title="Orphan", body="x"))
        assert scoped.list_resources(actor_id=_ALICE) == []
        with pytest.raises(NotFound):
            scoped.get_resource(orphan_id, actor_id=_ALICE)
        with pytest.raises(NotFound):
            scoped.get_resource(orphan_id, actor_id=None)
        with pytest.raises(AuthorizationDenied) as exc:
            scoped.update_resource(orphan_id, {"title": "Adopted"}, actor_id=_ALICE)
        assert exc.value.status_code == 403
        with pytest.raises(AuthorizationDenied):
            scoped.delete_resource(orphan_id, actor_id=_ALICE)
        assert store.get_resource(orphan_id).title == "Orphan"
