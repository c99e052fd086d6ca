"""
Bulk update executor.

Runs a registered action page by page over its data source, reporting
progress through a callback:

    "Validation has started…"
    "Validation completed successfully." | "Validation completed with errors."
    "Update has started…"
    "{processed} out of {total} have been updated."       (after each page but the last)
    "Update completed[ with errors]: {processed} out of {total} have been updated."

Item-level errors returned by the action accumulate and the batch keeps
going. An unexpected exception ends the batch; its message becomes the last
error and the final report carries the partial counts. A cancelled run
reports like a failed one and then re-raises the cancellation. The Catalog
cache region is expired at the end no matter what.
"""

from __future__ import annotations

import inspect

from catalog_spine.bulk.models import BulkUpdateContext, BulkUpdateProgressInfo, ProgressCallback
from catalog_spine.bulk.registrar import BulkUpdateActionRegistrar
from catalog_spine.core.cache import PlatformCache
from catalog_spine.core.cancellation import CancellationToken
from catalog_spine.core.errors import ConfigError, OperationCancelledError
from catalog_spine.core.logging import LogContext, get_logger
from catalog_spine.services.crud import CATALOG_REGION

logger = get_logger(__name__)


class BulkUpdateActionExecutor:
    def __init__(self, registrar: BulkUpdateActionRegistrar, cache: PlatformCache) -> None:
        self._registrar = registrar
        self._cache = cache

    async def execute(
        self,
        context: BulkUpdateContext,
        progress_callback: ProgressCallback,
        token: CancellationToken | None = None,
    ) -> BulkUpdateProgressInfo:
        """Run the action named by ``context``; returns the final progress report.

        Raises:
            OperationCancelledError: ``token`` was cancelled (after the final report).
        """
        token = token or CancellationToken.none()
        token.throw_if_cancellation_requested()

        total_count = 0
        processed_count = 0
        cancelled: OperationCancelledError | None = None
        progress = BulkUpdateProgressInfo(description="Validation has started…")

        async with LogContext(bulk_action=context.action_name):
            await self._report(progress_callback, progress)
            try:
                definition = self._registrar.get_by_name(context.action_name)
                action = definition.action_factory(context)

                validation = await action.validate()
                token.throw_if_cancellation_requested()

                if validation.succeeded:
                    progress.description = "Validation completed successfully."
                else:
                    progress.description = "Validation completed with errors."
                    progress.errors = list(validation.errors)
                await self._report(progress_callback, progress)

                if validation.succeeded:
                    if definition.data_source_factory is None:
                        raise ConfigError(f"Bulk update action {definition.name!r} has no data source")
                    data_source = definition.data_source_factory(context)
                    total_count = await data_source.get_total_count()

                    progress.processed_count = processed_count
                    progress.total_count = total_count
                    progress.description = "Update has started…"
                    await self._report(progress_callback, progress)
                    logger.info("bulk_update.started", total=total_count)

                    while await data_source.fetch():
                        token.throw_if_cancellation_requested()

                        result = await action.execute(data_source.items)
                        if not result.succeeded:
                            progress.errors.extend(result.errors)

                        processed_count += len(data_source.items)
                        progress.processed_count = processed_count
                        logger.info(
                            "bulk_update.chunk_processed",
                            processed=processed_count,
                            total=total_count,
                            errors=len(result.errors),
                        )

                        if processed_count != total_count:
                            progress.description = f"{processed_count} out of {total_count} have been updated."
                            await self._report(progress_callback, progress)
            except OperationCancelledError as e:
                progress.errors.append(str(e))
                cancelled = e
            except Exception as e:
                logger.error("bulk_update.failed", error=str(e), processed=processed_count, total=total_count)
                progress.errors.append(str(e))
            finally:
                completed = "Update completed with errors" if progress.errors else "Update completed"
                progress.description = f"{completed}: {processed_count} out of {total_count} have been updated."
                await self._report(progress_callback, progress)
                self._cache.expire_region(CATALOG_REGION)
                logger.info("bulk_update.completed", processed=processed_count, errors=len(progress.errors))

        if cancelled is not None:
            raise cancelled
        return progress.snapshot()

    @staticmethod
    async def _report(callback: ProgressCallback, progress: BulkUpdateProgressInfo) -> None:
        # One snapshot per report
        outcome = callback(progress.snapshot())
        if inspect.isawaitable(outcome):
            await outcome


__all__ = ["BulkUpdateActionExecutor"]
