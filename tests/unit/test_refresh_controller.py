import asyncio

from graphql import DocumentNode, GraphQLSchema, build_schema, parse

from gql_workspace.errors import SchemaFetchError
from gql_workspace.obs.loading import LoadingHandler
from gql_workspace.schema.controller import RefreshState, SchemaRefreshController
from gql_workspace.schema.provider import StaticSchemaProvider

V1 = "type Query { launches: [String] }"
V2 = "type Query { launches: [String] rockets: [String] }"


def _controller(provider, client_document=None, on_published=None):
    handler = LoadingHandler()
    controller = SchemaRefreshController(
        provider=provider,
        loading_handler=handler,
        client_document=client_document or (lambda: DocumentNode(definitions=())),
        display_name="space-explorer",
        on_published=on_published,
    )
    return controller, handler


def test_refresh_publishes_and_notifies() -> None:
    published = []
    controller, handler = _controller(
        StaticSchemaProvider({"current": V1}), on_published=published.append
    )

    snapshot = asyncio.run(controller.refresh())

    assert controller.state is RefreshState.PUBLISHED
    assert controller.snapshot is snapshot
    assert published == [snapshot]
    assert snapshot.tag == "current"
    assert snapshot.version == 1
    assert snapshot.last_error is None
    assert [op.status for op in handler.operations()] == ["succeeded"]
    assert handler.operations()[0].message == "Loading schema for space-explorer"


def test_refetching_same_tag_publishes_latest_schema() -> None:
    provider = StaticSchemaProvider({"current": V1})
    published = []
    controller, _ = _controller(provider, on_published=published.append)

    async def scenario() -> None:
        await controller.refresh("current")
        provider.publish("current", V2)
        await controller.refresh("current")

    asyncio.run(scenario())

    assert len(published) == 2
    assert controller.snapshot.version == 2
    assert "rockets" in controller.snapshot.schema.query_type.fields


def test_fetch_failure_retains_previous_schema() -> None:
    provider = StaticSchemaProvider({"current": V1})
    controller, handler = _controller(provider)

    async def scenario() -> None:
        await controller.refresh()
        assert await controller.refresh("staging") is None

    asyncio.run(scenario())

    assert controller.state is RefreshState.FAILED
    assert controller.snapshot.tag == "current"
    assert controller.active_tag == "staging"
    assert handler.operations()[-1].status == "failed"
    assert "staging" in handler.messages()[-1].text


def test_merge_failure_publishes_unmerged_service_schema() -> None:
    controller, _ = _controller(
        StaticSchemaProvider({"current": V1}),
        client_document=lambda: parse("extend type Rocket { name: String }"),
    )

    snapshot = asyncio.run(controller.refresh())

    assert controller.state is RefreshState.PUBLISHED
    assert snapshot.schema is snapshot.service_schema
    assert "Rocket" in snapshot.last_error


def test_remerge_failure_falls_back_to_service_schema() -> None:
    controller, _ = _controller(
        StaticSchemaProvider({"current": V1}),
        client_document=lambda: parse("extend type Query { cart: [ID] }"),
    )
    asyncio.run(controller.refresh())
    assert "cart" in controller.snapshot.schema.query_type.fields

    snapshot = controller.remerge(parse("extend type Rocket { name: String }"))

    assert snapshot.schema is snapshot.service_schema
    assert "cart" not in snapshot.schema.query_type.fields
    assert "Rocket" in snapshot.last_error
    assert snapshot.version == 2

    recovered = controller.remerge(parse("extend type Query { wishlist: [ID] }"))
    assert recovered.last_error is None
    assert "wishlist" in recovered.schema.query_type.fields
    assert recovered.version == snapshot.version + 1


def test_remerge_with_applied_client_document_keeps_snapshot() -> None:
    controller, _ = _controller(
        StaticSchemaProvider({"current": V1}),
        client_document=lambda: parse("extend type Query { cart: [ID] }"),
    )
    published = asyncio.run(controller.refresh())

    assert controller.remerge(parse("extend type Query { cart: [ID] }")) is published
    assert controller.snapshot.version == 1


class _GatedProvider:
    def __init__(self, sdl_by_tag: dict[str, str], failing: tuple[str, ...] = ()) -> None:
        self.sdl_by_tag = sdl_by_tag
        self.gates = {tag: asyncio.Event() for tag in (*sdl_by_tag, *failing)}

    async def resolve_schema(self, tag: str) -> GraphQLSchema:
        await self.gates[tag].wait()
        if tag not in self.sdl_by_tag:
            raise SchemaFetchError(f"No schema published for tag {tag}", tag=tag)
        return build_schema(self.sdl_by_tag[tag])


def test_slow_older_refresh_does_not_override_newer_publish() -> None:
    provider = _GatedProvider({"old": V1, "new": V2})
    published = []
    controller, _ = _controller(provider, on_published=published.append)

    async def scenario():
        first = asyncio.create_task(controller.refresh("old"))
        second = asyncio.create_task(controller.refresh("new"))
        await asyncio.sleep(0)
        provider.gates["new"].set()
        newer = await second
        provider.gates["old"].set()
        older = await first
        return older, newer

    older, newer = asyncio.run(scenario())

    assert older is None
    assert newer is controller.snapshot
    assert published == [newer]
    assert controller.snapshot.tag == "new"


def test_older_refresh_failing_after_newer_publish_keeps_published_state() -> None:
    provider = _GatedProvider({"new": V2}, failing=("old",))
    controller, handler = _controller(provider)

    async def scenario():
        first = asyncio.create_task(controller.refresh("old"))
        second = asyncio.create_task(controller.refresh("new"))
        await asyncio.sleep(0)
        provider.gates["new"].set()
        newer = await second
        provider.gates["old"].set()
        older = await first
        return older, newer

    older, newer = asyncio.run(scenario())

    assert older is None
    assert controller.state is RefreshState.PUBLISHED
    assert controller.snapshot is newer
    assert handler.operations()[0].status == "failed"


def test_cancelled_refresh_fails_and_keeps_previous_schema() -> None:
    provider = _GatedProvider({"current": V1, "staging": V2})
    controller, handler = _controller(provider)

    async def scenario():
        provider.gates["current"].set()
        await controller.refresh("current")
        pending = asyncio.create_task(controller.refresh("staging"))
        await asyncio.sleep(0)
        assert handler.cancel(handler.operations()[-1].token)
        return await pending

    result = asyncio.run(scenario())

    assert result is None
    assert controller.state is RefreshState.FAILED
    assert controller.snapshot.tag == "current"
    assert controller.snapshot.version == 1
    assert handler.operations()[-1].status == "cancelled"
