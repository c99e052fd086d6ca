"""
Tests for BulkUpdateActionExecutor and the action registrar.

Uses an in-test action and data source so page counts, failures and
cancellation are fully controlled.
"""

import pytest

from catalog_spine.bulk.executor import BulkUpdateActionExecutor
from catalog_spine.bulk.models import ActionResult, BulkUpdateContext
from catalog_spine.bulk.registrar import BulkUpdateActionDefinition, BulkUpdateActionRegistrar
from catalog_spine.core.cache import PlatformCache
from catalog_spine.core.cancellation import CancellationToken
from catalog_spine.core.errors import ConfigError, OperationCancelledError
from catalog_spine.services.crud import CATALOG_REGION


class ScriptedAction:
    """Fails the chunks listed in ``failing``; raises on the chunk listed in ``raising``."""

    def __init__(self, context, *, valid=True, failing=(), raising=None):
        self.context = context
        self.valid = valid
        self.failing = set(failing)
        self.raising = raising
        self.chunks = []

    async def validate(self):
        return ActionResult.success() if self.valid else ActionResult.fail("bad input", "worse input")

    async def execute(self, items):
        self.chunks.append(list(items))
        chunk = len(self.chunks)
        if chunk == self.raising:
            raise RuntimeError("store went away")
        if chunk in self.failing:
            return ActionResult.fail(f"chunk {chunk} failed")
        return ActionResult.success()


class ListDataSource:
    def __init__(self, ids, page_size):
        self._ids = list(ids)
        self._page_size = page_size
        self._offset = 0
        self.items = []

    async def get_total_count(self):
        return len(self._ids)

    async def fetch(self):
        if self._offset >= len(self._ids):
            self.items = []
            return False
        self.items = self._ids[self._offset:self._offset + self._page_size]
        self._offset += len(self.items)
        return True


def build(**action_options):
    registrar = BulkUpdateActionRegistrar()
    actions = []

    def make_action(context):
        action = ScriptedAction(context, **action_options)
        actions.append(action)
        return action

    registrar.register(
        BulkUpdateActionDefinition(
            name="Scripted",
            action_factory=make_action,
            data_source_factory=lambda context: ListDataSource(context.product_ids, 50),
        )
    )
    cache = PlatformCache()
    return BulkUpdateActionExecutor(registrar, cache), cache, actions


def context(count=250):
    return BulkUpdateContext(action_name="Scripted", product_ids=[f"p-{i}" for i in range(count)])


class Recorder:
    def __init__(self):
        self.reports = []

    def __call__(self, progress):
        self.reports.append(progress)

    @property
    def messages(self):
        return [r.description for r in self.reports]


class TestBulkUpdateActionExecutor:
    @pytest.mark.asyncio
    async def test_pages_with_item_errors(self):
        """250 items in pages of 50, two pages failing: every page runs, errors accumulate."""
        executor, _, actions = build(failing=(2, 4))
        recorder = Recorder()

        result = await executor.execute(context(), recorder)

        assert recorder.messages == [
            "Validation has started…",
            "Validation completed successfully.",
            "Update has started…",
            "50 out of 250 have been updated.",
            "100 out of 250 have been updated.",
            "150 out of 250 have been updated.",
            "200 out of 250 have been updated.",
            "Update completed with errors: 250 out of 250 have been updated.",
        ]
        assert result.errors == ["chunk 2 failed", "chunk 4 failed"]
        assert result.processed_count == 250
        assert [len(c) for c in actions[0].chunks] == [50] * 5

    @pytest.mark.asyncio
    async def test_clean_run(self):
        executor, _, _ = build()
        recorder = Recorder()

        result = await executor.execute(context(30), recorder)

        assert recorder.messages[-1] == "Update completed: 30 out of 30 have been updated."
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_reports_are_snapshots(self):
        executor, _, _ = build(failing=(1,))
        recorder = Recorder()

        await executor.execute(context(100), recorder)

        assert recorder.reports[3].errors == ["chunk 1 failed"]
        assert recorder.reports[2].errors == []

    @pytest.mark.asyncio
    async def test_async_callback(self):
        executor, _, _ = build()
        seen = []

        async def callback(progress):
            seen.append(progress.description)

        await executor.execute(context(10), callback)
        assert seen[-1] == "Update completed: 10 out of 10 have been updated."

    @pytest.mark.asyncio
    async def test_failed_validation_skips_update(self):
        executor, _, actions = build(valid=False)
        recorder = Recorder()

        result = await executor.execute(context(), recorder)

        assert recorder.messages == [
            "Validation has started…",
            "Validation completed with errors.",
            "Update completed with errors: 0 out of 0 have been updated.",
        ]
        assert result.errors == ["bad input", "worse input"]
        assert actions[0].chunks == []

    @pytest.mark.asyncio
    async def test_exception_ends_batch_with_partial_counts(self):
        executor, _, _ = build(raising=3)
        recorder = Recorder()

        result = await executor.execute(context(), recorder)

        assert recorder.messages[-1] == "Update completed with errors: 100 out of 250 have been updated."
        assert result.errors == ["store went away"]

    @pytest.mark.asyncio
    async def test_cancellation_reports_then_raises(self):
        executor, _, actions = build()
        token = CancellationToken()
        recorder = Recorder()

        def callback(progress):
            recorder(progress)
            if progress.processed_count == 50:
                token.cancel("stopped by user")

        with pytest.raises(OperationCancelledError, match="stopped by user"):
            await executor.execute(context(), callback, token)

        assert recorder.messages[-1] == "Update completed with errors: 50 out of 250 have been updated."
        assert recorder.reports[-1].errors == ["stopped by user"]
        assert len(actions[0].chunks) == 1

    @pytest.mark.asyncio
    async def test_already_cancelled_token(self):
        executor, _, actions = build()
        token = CancellationToken()
        token.cancel()
        recorder = Recorder()

        with pytest.raises(OperationCancelledError):
            await executor.execute(context(), recorder, token)
        assert recorder.reports == []
        assert actions == []

    @pytest.mark.asyncio
    async def test_unknown_action(self):
        executor, _, _ = build()
        recorder = Recorder()

        result = await executor.execute(BulkUpdateContext(action_name="Nope"), recorder)

        assert result.errors == ["Bulk update action 'Nope' is not registered"]
        assert recorder.messages[-1] == "Update completed with errors: 0 out of 0 have been updated."

    @pytest.mark.asyncio
    async def test_catalog_region_expired(self):
        executor, cache, _ = build(raising=1)
        token = cache.region(CATALOG_REGION).create_change_token()

        await executor.execute(context(10), Recorder())

        assert token.has_changed


class TestBulkUpdateActionRegistrar:
    def test_register_and_lookup(self):
        registrar = BulkUpdateActionRegistrar()
        definition = registrar.register(BulkUpdateActionDefinition(name="A", action_factory=ScriptedAction))

        assert registrar.get_by_name("A") is definition
        assert registrar.get_all() == [definition]
        assert definition.applicable_types == ["CatalogProduct"]

    def test_duplicate_name_rejected(self):
        registrar = BulkUpdateActionRegistrar()
        registrar.register(BulkUpdateActionDefinition(name="A", action_factory=ScriptedAction))
        with pytest.raises(ConfigError):
            registrar.register(BulkUpdateActionDefinition(name="A", action_factory=ScriptedAction))

    def test_unknown_name(self):
        with pytest.raises(ConfigError, match="not registered"):
            BulkUpdateActionRegistrar().get_by_name("missing")
