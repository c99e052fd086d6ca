"""Platform primitives shared by every catalog service.

    errors.py        CatalogError hierarchy
    logging.py       structlog configuration and bound loggers
    settings.py      CatalogSettings (pydantic-settings)
    cache.py         PlatformCache: regions, change tokens, get-or-create
    events/          ChangeEvent, EventBus protocol, InMemoryEventBus
    protocols.py     RecordStore / RecordSession / UrlResolver / SkuGenerator
    cancellation.py  CancellationToken
"""
