"""
Tests for the resolver dispatcher.
"""

import asyncio

import pytest
import pytest_asyncio

from mosaic.auth.context import CallerContext
from mosaic.errors import RequestClosedError
import mosaic.execution.dispatcher as dispatcher_module
from mosaic.execution import Dispatcher, OperationRequest, RequestState, StoreHandle
from mosaic.plugins.roles import ORGANIZER, SPONSOR, VOLUNTEER
from mosaic.schema.declarations import (
    FieldDeclaration,
    OperationDeclaration,
    SchemaFragment,
    TypeDeclaration,
)
from mosaic.schema.registry import SchemaRegistry
from mosaic.store import InMemoryDocumentStore, TypeMapper


def codes(result) -> list[str]:
    return [e.code for e in result.errors]


async def seed_user(memory_store, **values):
    document = {"id": values.pop("id", "u-1"), "name": "Ada", "email": None, "role": None}
    document.update(values)
    return await memory_store.insert("people.User", document)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_completed_request_records_transitions(self, dispatcher, caller, op):
        result = await dispatcher.dispatch(op("events", fields=["name"]), caller(None))

        assert result.state is RequestState.COMPLETED
        assert result.transitions == [
            RequestState.RECEIVED,
            RequestState.AUTHORIZING,
            RequestState.AUTHORIZED,
            RequestState.RESOLVING,
            RequestState.COMPLETED,
        ]
        assert result.to_response() == {"data": []}

    @pytest.mark.asyncio
    async def test_unknown_operation_fails_without_authorization(self, dispatcher, caller, op):
        result = await dispatcher.dispatch(op("dropAll", fields=["id"]), caller(ORGANIZER))

        assert result.state is RequestState.FAILED
        assert result.transitions == [RequestState.RECEIVED, RequestState.FAILED]
        assert codes(result) == ["UNKNOWN_OPERATION"]
        assert result.to_response()["errors"][0]["path"] == []

    @pytest.mark.asyncio
    async def test_denied_request_has_no_data(self, dispatcher, caller, op):
        result = await dispatcher.dispatch(op("users", fields=["name"]), caller(SPONSOR))

        assert result.state is RequestState.DENIED
        assert result.transitions == [
            RequestState.RECEIVED,
            RequestState.AUTHORIZING,
            RequestState.DENIED,
        ]
        body = result.to_response()
        assert "data" not in body
        assert body["errors"][0]["extensions"]["code"] == "PERMISSION_DENIED"
        assert body["errors"][0]["path"] == []

    @pytest.mark.asyncio
    async def test_anonymous_caller_is_denied_by_role_policy(self, dispatcher, caller, op):
        result = await dispatcher.dispatch(op("users", fields=["name"]), caller(None, None))
        assert result.state is RequestState.DENIED


class TestArguments:
    @pytest.mark.asyncio
    async def test_missing_required_argument(self, dispatcher, caller, op):
        result = await dispatcher.dispatch(op("user", fields=["name"]), caller(ORGANIZER))

        assert result.state is RequestState.FAILED
        assert codes(result) == ["INVALID_ARGUMENTS"]

    @pytest.mark.asyncio
    async def test_unknown_argument(self, dispatcher, caller, op):
        result = await dispatcher.dispatch(
            op("events", {"limit": 3}, ["name"]), caller(ORGANIZER)
        )
        assert codes(result) == ["INVALID_ARGUMENTS"]

    @pytest.mark.asyncio
    async def test_type_mismatch(self, dispatcher, caller, op):
        result = await dispatcher.dispatch(
            op("createEvent", {"name": "Launch", "startsAt": "next tuesday"}, ["id"]),
            caller(ORGANIZER),
        )
        assert codes(result) == ["INVALID_ARGUMENTS"]

    @pytest.mark.asyncio
    async def test_datetime_arguments_are_stored_in_utc(self, dispatcher, caller, op):
        for name, starts_at in [
            ("late", "2026-06-01T06:00:00+00:00"),
            ("early", "2026-06-01T10:00:00+05:00"),
        ]:
            created = await dispatcher.dispatch(
                op("createEvent", {"name": name, "startsAt": starts_at}, ["id"]), caller(ORGANIZER)
            )
            assert created.ok, created.errors

        listed = await dispatcher.dispatch(op("events", fields=["name", "startsAt"]), caller(None))

        assert listed.data == [
            {"name": "early", "startsAt": "2026-06-01T05:00:00+00:00"},
            {"name": "late", "startsAt": "2026-06-01T06:00:00+00:00"},
        ]

    @pytest.mark.asyncio
    async def test_integer_id_is_coerced(self, dispatcher, memory_store, caller, op):
        await seed_user(memory_store, id="123")
        result = await dispatcher.dispatch(op("user", {"id": 123}, ["id"]), caller(ORGANIZER))
        assert result.data == {"id": "123"}

    @pytest.mark.asyncio
    async def test_object_result_requires_fields(self, dispatcher, caller, op):
        result = await dispatcher.dispatch(op("events"), caller(ORGANIZER))
        assert codes(result) == ["INVALID_REQUEST"]


class TestProjection:
    @pytest.mark.asyncio
    async def test_only_requested_fields_are_returned(self, dispatcher, memory_store, caller, op):
        await seed_user(memory_store, role=VOLUNTEER)

        result = await dispatcher.dispatch(
            op("user", {"id": "u-1"}, ["name", "displayName", "name"]), caller(ORGANIZER)
        )

        assert result.ok
        assert result.data == {"name": "Ada", "displayName": "Ada (Volunteer)"}

    @pytest.mark.asyncio
    async def test_null_result_for_nullable_type(self, dispatcher, caller, op):
        result = await dispatcher.dispatch(op("user", {"id": "ghost"}, ["name"]), caller(ORGANIZER))
        assert result.to_response() == {"data": None}

    @pytest.mark.asyncio
    async def test_field_policy_denial_is_isolated(self, dispatcher, memory_store, caller, op):
        await seed_user(memory_store, email="ada@example.org")

        result = await dispatcher.dispatch(
            op("user", {"id": "u-1"}, ["name", "email"]), caller(VOLUNTEER)
        )

        assert result.state is RequestState.COMPLETED
        assert result.data == {"name": "Ada", "email": None}
        body = result.to_response()
        assert body["errors"] == [
            {
                "message": "Not authorized to access 'User.email'",
                "path": ["email"],
                "extensions": {"code": "PERMISSION_DENIED"},
            }
        ]

    @pytest.mark.asyncio
    async def test_field_policy_allows_listed_role(self, dispatcher, memory_store, caller, op):
        await seed_user(memory_store, email="ada@example.org")
        result = await dispatcher.dispatch(
            op("user", {"id": "u-1"}, ["email"]), caller(ORGANIZER)
        )
        assert result.ok
        assert result.data == {"email": "ada@example.org"}

    @pytest.mark.asyncio
    async def test_unknown_field_is_a_field_error(self, dispatcher, memory_store, caller, op):
        await seed_user(memory_store)
        result = await dispatcher.dispatch(
            op("user", {"id": "u-1"}, ["name", "shoeSize"]), caller(ORGANIZER)
        )
        assert result.data == {"name": "Ada", "shoeSize": None}
        assert codes(result) == ["FIELD_RESOLUTION_ERROR"]
        assert result.errors[0].path == ["shoeSize"]

    @pytest.mark.asyncio
    async def test_list_field_errors_carry_index(self, dispatcher, memory_store, caller, op):
        await seed_user(memory_store, id="u-1", name="Ada")
        await seed_user(memory_store, id="u-2", name="Grace")

        result = await dispatcher.dispatch(op("users", fields=["name", "email"]), caller(SPONSOR))
        assert result.state is RequestState.DENIED

        # A stored document missing a non-null field fails only that item's field
        await memory_store.insert("people.User", {"id": "u-3", "name": None})
        result = await dispatcher.dispatch(op("users", fields=["id", "name"]), caller(ORGANIZER))

        assert result.state is RequestState.COMPLETED
        assert len(result.data) == 3
        assert [e.path for e in result.errors] == [[0, "name"]]
        assert result.data[0] == {"id": "u-3", "name": None}


def _failing_schema():
    def boom(parent):
        raise RuntimeError("database on fire")

    async def slow_label(parent):
        await asyncio.sleep(0)
        return parent["name"].upper()

    registry = SchemaRegistry()
    registry.register(
        SchemaFragment(
            namespace="teams",
            types=(
                TypeDeclaration(
                    name="Team",
                    fields=(
                        FieldDeclaration(name="name", type="String!"),
                        FieldDeclaration(name="label", type="String"),
                        FieldDeclaration(name="score", type="Int"),
                    ),
                ),
            ),
            queries=(
                OperationDeclaration(name="team", return_type="Team", public=True),
                OperationDeclaration(name="crash", return_type="Team", public=True),
                OperationDeclaration(name="teamCount", return_type="Int!", public=True),
                OperationDeclaration(name="writeFromQuery", return_type="Team", public=True),
            ),
            mutations=(
                OperationDeclaration(
                    name="createTwoTeams",
                    return_type="Team",
                    required_roles=frozenset({ORGANIZER}),
                ),
            ),
            resolvers={
                "team": lambda args, ctx: {"id": "t-1", "name": "Owls"},
                "crash": lambda args, ctx: 1 / 0,
                "teamCount": lambda args, ctx: ctx.store.count("Team"),
                "writeFromQuery": lambda args, ctx: ctx.store.insert("Team", {"name": "x"}),
                "createTwoTeams": _create_two_teams,
            },
            field_resolvers={"Team.label": slow_label, "Team.score": boom},
        )
    )
    return registry.compose()


async def _create_two_teams(args, ctx):
    await ctx.store.insert("Team", {"name": "first"})
    return await ctx.store.insert("Team", {"name": "second"})


@pytest.fixture
def teams():
    schema = _failing_schema()
    store = InMemoryDocumentStore()
    return Dispatcher(schema, TypeMapper(store, schema), max_writes_per_mutation=1), store


class TestResolverFailures:
    @pytest.mark.asyncio
    async def test_field_resolver_exception_leaves_siblings(self, teams, caller, op):
        dispatcher, _ = teams
        result = await dispatcher.dispatch(op("team", fields=["name", "label", "score"]), caller(None))

        assert result.state is RequestState.COMPLETED
        assert result.data == {"name": "Owls", "label": "OWLS", "score": None}
        assert codes(result) == ["FIELD_RESOLUTION_ERROR"]
        assert result.errors[0].path == ["score"]
        assert "database on fire" not in result.errors[0].message

    @pytest.mark.asyncio
    async def test_operation_exception_is_internal_error(self, teams, caller, op):
        dispatcher, _ = teams
        result = await dispatcher.dispatch(op("crash", fields=["name"]), caller(None))

        assert result.state is RequestState.FAILED
        assert result.to_response() == {
            "errors": [
                {"message": "Internal server error", "path": [], "extensions": {"code": "INTERNAL"}}
            ]
        }

    @pytest.mark.asyncio
    async def test_scalar_result_passes_through(self, teams, caller, op):
        dispatcher, _ = teams
        result = await dispatcher.dispatch(op("teamCount"), caller(None))
        assert result.to_response() == {"data": 0}

    @pytest.mark.asyncio
    async def test_queries_cannot_write(self, teams, caller, op):
        dispatcher, store = teams
        result = await dispatcher.dispatch(op("writeFromQuery", fields=["name"]), caller(None))

        assert codes(result) == ["WRITE_LIMIT_EXCEEDED"]
        assert await store.count("teams.Team") == 0

    @pytest.mark.asyncio
    async def test_mutation_write_budget(self, teams, caller, op):
        dispatcher, store = teams
        result = await dispatcher.dispatch(op("createTwoTeams", fields=["name"]), caller(ORGANIZER))

        assert result.state is RequestState.FAILED
        assert codes(result) == ["WRITE_LIMIT_EXCEEDED"]
        assert await store.count("teams.Team") == 1


class TestRequestScope:
    @pytest.mark.asyncio
    async def test_leaked_store_handle_is_closed(self, memory_store):
        leaked = {}

        async def capture(args, ctx):
            leaked["store"] = ctx.store
            return []

        registry = SchemaRegistry()
        registry.register(
            SchemaFragment(
                namespace="leaks",
                types=(TypeDeclaration(name="Leak", fields=()),),
                queries=(OperationDeclaration(name="leak", return_type="[Leak]", public=True),),
                resolvers={"leak": capture},
            )
        )
        schema = registry.compose()
        dispatcher = Dispatcher(schema, TypeMapper(memory_store, schema))

        result = await dispatcher.dispatch(
            OperationRequest(operation="leak", fields=["id"]), CallerContext.anonymous()
        )

        assert result.ok
        assert leaked["store"].closed
        with pytest.raises(RequestClosedError):
            await leaked["store"].find_all("Leak")

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_independent(self, dispatcher, memory_store, caller, op):
        await seed_user(memory_store, id="u-1", name="Ada", email="ada@example.org")

        results = await asyncio.gather(
            *(
                dispatcher.dispatch(
                    op("user", {"id": "u-1"}, ["name", "email"]),
                    caller(ORGANIZER if i % 2 else VOLUNTEER),
                )
                for i in range(10)
            )
        )

        for i, result in enumerate(results):
            if i % 2:
                assert result.ok
                assert result.data["email"] == "ada@example.org"
            else:
                assert result.data["email"] is None
                assert codes(result) == ["PERMISSION_DENIED"]


class GatedStore(InMemoryDocumentStore):
    """In-memory store that holds reads or writes until released."""

    def __init__(self):
        super().__init__()
        self.gate: str | None = None
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def _pass_gate(self, kind: str) -> None:
        if self.gate == kind:
            self.entered.set()
            await self.release.wait()

    async def find_by_id(self, collection, doc_id):
        await self._pass_gate("read")
        return await super().find_by_id(collection, doc_id)

    async def insert(self, collection, document):
        await self._pass_gate("write")
        return await super().insert(collection, document)


class TestCancellation:
    @pytest.fixture
    def handles(self, monkeypatch):
        created: list[StoreHandle] = []

        class RecordingHandle(StoreHandle):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                created.append(self)

        monkeypatch.setattr(dispatcher_module, "StoreHandle", RecordingHandle)
        return created

    @pytest_asyncio.fixture
    async def gated(self, builtin_schema):
        store = GatedStore()
        await seed_user(store, id="123")
        await store.insert("events.Event", {"id": "456", "name": "Launch"})
        return store, Dispatcher(builtin_schema, TypeMapper(store, builtin_schema), 1)

    def check_in(self, dispatcher, caller, op):
        return asyncio.create_task(
            dispatcher.dispatch(
                op("checkIn", {"input": {"user": "123", "event": "456"}}, ["id"]),
                caller(VOLUNTEER),
            )
        )

    @pytest.mark.asyncio
    async def test_cancel_during_reference_lookup_writes_nothing(
        self, gated, handles, caller, op
    ):
        store, dispatcher = gated
        store.gate = "read"

        task = self.check_in(dispatcher, caller, op)
        await store.entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        store.release.set()

        assert await store.count("checkins.CheckIn") == 0
        assert len(handles) == 1
        assert handles[0].closed
        assert handles[0].writes == 0
        with pytest.raises(RequestClosedError):
            await handles[0].find_by_id("User", "123")

    @pytest.mark.asyncio
    async def test_write_in_flight_completes_after_cancel(self, gated, handles, caller, op):
        store, dispatcher = gated
        store.gate = "write"

        task = self.check_in(dispatcher, caller, op)
        await store.entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert handles[0].closed

        store.release.set()
        for _ in range(50):
            if await store.count("checkins.CheckIn") == 1:
                break
            await asyncio.sleep(0)

        assert await store.count("checkins.CheckIn") == 1
        assert handles[0].writes == 1
