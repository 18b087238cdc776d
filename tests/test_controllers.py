"""Tests for the view controllers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

import pytest

from crud_admin.adapters.memory import (
    InMemoryDataProvider,
    InMemoryNotificationChannel,
    InMemoryQueryCache,
    MemoryStore,
)
from crud_admin.config import MessageKeys
from crud_admin.controllers import (
    BulkDeleteController,
    ControllerCallbacks,
    CreateController,
    DeleteController,
    DeleteWithConfirmController,
    DeleteWithUndoController,
    EditController,
    ListController,
    RecordSelection,
    ShowController,
)
from crud_admin.data.queries import QueryService
from crud_admin.data.query_keys import get_one_key
from crud_admin.data.types import MutationMode, SortPayload
from crud_admin.mutations.coordinator import MutationCoordinator
from crud_admin.mutations.types import ErrorKind
from crud_admin.primitives.exceptions import HttpError, InvalidMutationRequestError
from crud_admin.undo.queue import UndoQueue

if TYPE_CHECKING:
    from conftest import ManualTimerFactory

# ═══════════════════════════════════════════════════════════════════════
# Show / Edit
# ═══════════════════════════════════════════════════════════════════════


class TestShowController:
    @pytest.mark.asyncio
    async def test_load_record(self, queries: QueryService) -> None:
        controller = ShowController("posts", 1, queries)
        assert controller.state.is_loading

        state = await controller.load()

        assert state.is_loaded
        assert controller.record == {"id": 1, "title": "Hello", "views": 10}
        assert state.error is None

    @pytest.mark.asyncio
    async def test_load_error_is_kept_in_state(self, queries: QueryService) -> None:
        controller = ShowController("posts", 42, queries)
        state = await controller.load()

        assert isinstance(state.error, HttpError)
        assert not state.is_loaded
        assert not state.is_loading

    def test_resource_is_required(self, queries: QueryService) -> None:
        with pytest.raises(ValueError):
            ShowController("", 1, queries)


class TestEditController:
    @pytest.mark.asyncio
    async def test_undoable_save_then_expiry(
        self,
        queries: QueryService,
        coordinator: MutationCoordinator,
        provider: InMemoryDataProvider,
        cache: InMemoryQueryCache,
        notifications: InMemoryNotificationChannel,
        timers: ManualTimerFactory,
    ) -> None:
        saved: list[Any] = []
        controller = EditController(
            "posts", 1, queries, coordinator, on_success=saved.append
        )
        await controller.load()

        result = await controller.save({"title": "B"})

        assert result.pending
        assert controller.record == {"id": 1, "title": "B", "views": 10}
        assert controller.is_saving
        notifications.assert_notified("notification.updated")

        timers.last.fire()
        await coordinator.drain()

        assert not controller.is_saving
        assert provider.records("posts")[0]["title"] == "B"
        assert cache.get_query_data(get_one_key("posts", 1))["title"] == "B"
        assert saved == [{"id": 1, "title": "B", "views": 10}]

    @pytest.mark.asyncio
    async def test_pessimistic_failure_keeps_loaded_record(
        self,
        queries: QueryService,
        coordinator: MutationCoordinator,
        provider: InMemoryDataProvider,
    ) -> None:
        errors: list[BaseException] = []
        controller = EditController(
            "posts",
            1,
            queries,
            coordinator,
            mutation_mode="pessimistic",
            on_error=errors.append,
        )
        await controller.load()
        provider.fail_next("update", HttpError("Invalid title", 422))

        result = await controller.save({"title": ""})

        assert result.error is ErrorKind.PROVIDER_FAILURE
        assert controller.record is not None
        assert controller.record["title"] == "Hello"
        assert len(errors) == 1

    @pytest.mark.asyncio
    async def test_callbacks_can_be_replaced_before_settlement(
        self,
        queries: QueryService,
        coordinator: MutationCoordinator,
        timers: ManualTimerFactory,
    ) -> None:
        calls: list[str] = []
        controller = EditController(
            "posts", 1, queries, coordinator, on_success=lambda _d: calls.append("old")
        )
        await controller.load()
        await controller.save({"title": "B"})

        controller.callbacks.update(on_success=lambda _d: calls.append("new"))
        timers.last.fire()
        await coordinator.drain()

        assert calls == ["new"]


def test_controller_callbacks_reject_unknown_names() -> None:
    callbacks = ControllerCallbacks()
    assert callbacks.get("on_success") is None
    with pytest.raises(TypeError):
        callbacks.update(on_finish=print)


# ═══════════════════════════════════════════════════════════════════════
# Create
# ═══════════════════════════════════════════════════════════════════════


class TestCreateController:
    @pytest.mark.asyncio
    async def test_pessimistic_save_takes_id_from_provider(
        self,
        coordinator: MutationCoordinator,
        provider: InMemoryDataProvider,
        cache: InMemoryQueryCache,
        notifications: InMemoryNotificationChannel,
    ) -> None:
        created: list[Any] = []
        controller = CreateController(
            "posts",
            coordinator,
            record={"views": 0},
            transform=lambda data: {**data, "title": data["title"].strip()},
            on_success=created.append,
        )
        assert controller.record == {"views": 0}
        assert controller.mutation_mode is MutationMode.PESSIMISTIC

        result = await controller.save({"title": " New ", "views": 0})

        assert result.ok and not result.pending
        assert controller.record == {"id": 4, "title": "New", "views": 0}
        assert not controller.is_saving
        assert provider.records("posts")[-1] == {"id": 4, "title": "New", "views": 0}
        assert cache.get_query_data(get_one_key("posts", 4)) == controller.record
        assert created == [controller.record]
        notifications.assert_notified("notification.created")

    @pytest.mark.asyncio
    async def test_async_transform_and_validation_errors(
        self,
        coordinator: MutationCoordinator,
        provider: InMemoryDataProvider,
    ) -> None:
        async def add_author(data: dict[str, Any]) -> dict[str, Any]:
            return {**data, "author": "me"}

        provider.fail_next(
            "create",
            HttpError("Invalid", 422, body={"errors": {"title": ["required"]}}),
        )
        controller = CreateController("posts", coordinator, transform=add_author)

        result = await controller.save({"title": ""})

        assert result.error is ErrorKind.PROVIDER_FAILURE
        assert controller.errors == {"title": ["required"]}
        assert provider.calls_for("create")[0].data == {"title": "", "author": "me"}

        await controller.save({"title": "Fixed"})
        assert controller.errors == {}

    @pytest.mark.asyncio
    async def test_undoable_save_needs_a_client_id(
        self,
        coordinator: MutationCoordinator,
        provider: InMemoryDataProvider,
        cache: InMemoryQueryCache,
        undo_queue: UndoQueue,
    ) -> None:
        controller = CreateController("posts", coordinator, mutation_mode="undoable")

        rejected = await controller.save({"title": "No id"})
        assert rejected.error is ErrorKind.INVALID_MUTATION_REQUEST

        result = await controller.save({"id": "draft-1", "title": "Draft"})
        assert result.pending
        assert cache.get_query_data(get_one_key("posts", "draft-1"))["title"] == "Draft"

        assert result.handle is not None
        undo_queue.cancel(result.handle)
        assert get_one_key("posts", "draft-1") not in cache
        assert provider.calls_for("create") == []


# ═══════════════════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════════════════


class TestDeleteControllers:
    @pytest.mark.asyncio
    async def test_delete_unselects_record(
        self,
        queries: QueryService,
        coordinator: MutationCoordinator,
        store: MemoryStore,
        undo_queue: UndoQueue,
    ) -> None:
        await queries.get_list("posts")
        selection = RecordSelection("posts", store)
        selection.select([1, 2])
        record = await queries.get_one("posts", 1)
        controller = DeleteController("posts", record, coordinator, selection=selection)

        result = await controller.handle_delete()

        assert result.pending
        assert controller.is_pending
        assert selection.selected_ids == [2]
        assert result.handle is not None
        assert undo_queue.cancel(result.handle)
        assert not controller.is_pending

    @pytest.mark.asyncio
    async def test_delete_without_record_raises(self, coordinator: MutationCoordinator) -> None:
        controller = DeleteController("posts", None, coordinator)
        assert not controller.is_pending
        with pytest.raises(InvalidMutationRequestError, match="no record has been passed"):
            await controller.handle_delete()

    @pytest.mark.asyncio
    async def test_success_message_falls_back_to_settings(
        self,
        coordinator_factory: Callable[..., MutationCoordinator],
        notifications: InMemoryNotificationChannel,
    ) -> None:
        coordinator = coordinator_factory(messages=MessageKeys(deleted="posts.gone"))
        controller = DeleteController(
            "posts", {"id": 3, "title": "Again"}, coordinator, mutation_mode="pessimistic"
        )
        await controller.handle_delete()
        notifications.assert_notified("posts.gone")

        custom = DeleteController(
            "posts",
            {"id": 2, "title": "World"},
            coordinator,
            mutation_mode="pessimistic",
            success_message="resources.posts.notifications.deleted",
        )
        await custom.handle_delete()
        notifications.assert_notified("resources.posts.notifications.deleted")

    def test_delete_with_undo_is_always_undoable(
        self, coordinator: MutationCoordinator
    ) -> None:
        controller = DeleteWithUndoController("posts", {"id": 1}, coordinator)
        assert controller.mutation_mode is MutationMode.UNDOABLE
        with pytest.raises(TypeError):
            DeleteWithUndoController(
                "posts", {"id": 1}, coordinator, mutation_mode="pessimistic"
            )

    @pytest.mark.asyncio
    async def test_delete_with_confirm(
        self,
        coordinator: MutationCoordinator,
        provider: InMemoryDataProvider,
    ) -> None:
        controller = DeleteWithConfirmController("posts", {"id": 2}, coordinator)
        assert controller.mutation_mode is MutationMode.PESSIMISTIC
        controller.open()
        assert controller.is_open

        result = await controller.confirm()

        assert result.ok and not result.pending
        assert not controller.is_open
        assert [r["id"] for r in provider.records("posts")] == [1, 3]

        controller.open()
        controller.close()
        assert not controller.is_open

    @pytest.mark.asyncio
    async def test_confirm_closes_dialog_on_error(self, coordinator: MutationCoordinator) -> None:
        controller = DeleteWithConfirmController("posts", None, coordinator)
        controller.open()
        with pytest.raises(InvalidMutationRequestError):
            await controller.confirm()
        assert not controller.is_open


# ═══════════════════════════════════════════════════════════════════════
# List / selection / bulk delete
# ═══════════════════════════════════════════════════════════════════════


class TestListController:
    @pytest.mark.asyncio
    async def test_load_and_paginate(self, queries: QueryService, store: MemoryStore) -> None:
        controller = ListController("posts", queries, store, per_page=2)

        state = await controller.load()
        assert [r["id"] for r in state.data] == [1, 2]
        assert state.total == 3
        assert state.has_next_page and not state.has_previous_page

        controller.set_page(2)
        state = await controller.load()
        assert [r["id"] for r in state.data] == [3]
        assert not state.has_next_page and state.has_previous_page

    @pytest.mark.asyncio
    async def test_params_persist_in_store(self, queries: QueryService, store: MemoryStore) -> None:
        controller = ListController("posts", queries, store)
        controller.set_sort("views")
        controller.set_sort("views")
        controller.set_filters({"q": "o", "empty": ""})

        stored = store.get_item("posts.listParams")
        assert stored["sort"] == "views"
        assert stored["order"] == "DESC"
        assert stored["filter"] == {"q": "o"}

        restored = ListController("posts", queries, store)
        assert restored.params == controller.params

    @pytest.mark.asyncio
    async def test_sort_and_filter_reset_page(self, queries: QueryService) -> None:
        controller = ListController("posts", queries, sort=SortPayload(field="title"))
        controller.set_page(3)
        controller.set_sort("title")
        assert controller.params.page == 1
        assert controller.params.order == "DESC"

        controller.set_page(2)
        controller.set_per_page(25)
        assert controller.params.page == 1
        assert controller.params.per_page == 25

        controller.reset()
        assert controller.params.sort == "title" and controller.params.order == "ASC"

    @pytest.mark.asyncio
    async def test_out_of_range_page_moves_to_last_page(
        self, queries: QueryService, store: MemoryStore
    ) -> None:
        controller = ListController("posts", queries, store, per_page=2)
        controller.set_page(5)

        state = await controller.load()

        assert controller.params.page == 2
        assert [r["id"] for r in state.data] == [3]

    @pytest.mark.asyncio
    async def test_store_key_false_keeps_params_in_memory(
        self, queries: QueryService, store: MemoryStore
    ) -> None:
        controller = ListController("posts", queries, store, store_key=False)
        controller.set_page(2)
        assert store.get_item("posts.listParams") is None

    @pytest.mark.asyncio
    async def test_invalid_stored_params_are_ignored(
        self, queries: QueryService, store: MemoryStore
    ) -> None:
        store.set_item("posts.listParams", {"page": 0})
        controller = ListController("posts", queries, store)
        assert controller.params.page == 1

    @pytest.mark.asyncio
    async def test_load_error_keeps_previous_data(
        self, queries: QueryService, provider: InMemoryDataProvider
    ) -> None:
        controller = ListController("posts", queries)
        await controller.load()
        provider.fail_next("get_list", HttpError("offline", 503))

        state = await controller.refresh()

        assert isinstance(state.error, HttpError)
        assert len(state.data) == 3


class TestRecordSelection:
    def test_select_toggle_unselect(self, store: MemoryStore) -> None:
        selection = RecordSelection("posts", store)
        seen: list[Any] = []
        selection.subscribe(seen.append)

        selection.select([1, "1", 2])
        assert selection.selected_ids == [1, 2]
        selection.toggle("2")
        assert selection.selected_ids == [1]
        selection.toggle(3)
        assert selection.is_selected("3")
        selection.unselect_all()

        assert selection.selected_ids == []
        assert store.get_item("posts.selectedIds") == []
        assert seen[-1] == []


class TestBulkDeleteController:
    @pytest.mark.asyncio
    async def test_deletes_selection_and_clears_it(
        self,
        queries: QueryService,
        coordinator: MutationCoordinator,
        provider: InMemoryDataProvider,
        store: MemoryStore,
        timers: ManualTimerFactory,
    ) -> None:
        lister = ListController("posts", queries, store)
        await lister.load()
        assert lister.selection is not None
        lister.selection.select([1, 3])
        controller = BulkDeleteController(lister, coordinator)

        result = await controller.handle_delete()

        assert result.pending
        assert lister.selection.selected_ids == []
        state = await lister.load()
        assert [r["id"] for r in state.data] == [2]

        timers.last.fire()
        await coordinator.drain()
        assert [r["id"] for r in provider.records("posts")] == [2]

    @pytest.mark.asyncio
    async def test_failure_refreshes_list(
        self,
        queries: QueryService,
        coordinator: MutationCoordinator,
        provider: InMemoryDataProvider,
        store: MemoryStore,
    ) -> None:
        lister = ListController("posts", queries, store)
        await lister.load()
        assert lister.selection is not None
        lister.selection.select([1])
        provider.fail_next("delete_many", HttpError("locked", 423))
        controller = BulkDeleteController(lister, coordinator, mutation_mode="optimistic")

        await controller.handle_delete()
        await coordinator.drain()

        assert [r["id"] for r in lister.state.data] == [1, 2, 3]
        assert len(provider.calls_for("get_list")) == 2

    @pytest.mark.asyncio
    async def test_empty_selection_raises(
        self, queries: QueryService, coordinator: MutationCoordinator, store: MemoryStore
    ) -> None:
        controller = BulkDeleteController(ListController("posts", queries, store), coordinator)
        with pytest.raises(InvalidMutationRequestError):
            await controller.handle_delete()

    def test_requires_selection_store(
        self, queries: QueryService, coordinator: MutationCoordinator
    ) -> None:
        with pytest.raises(ValueError):
            BulkDeleteController(ListController("posts", queries), coordinator)
