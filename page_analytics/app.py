"""
Per-container application wiring.

build_app() constructs every collaborator from Settings once; handler
modules cache the result and pass it explicitly into route functions.
"""

from dataclasses import dataclass

import boto3
import httpx

from page_analytics.config import Settings
from page_analytics.geolocation import GeolocationResolver
from page_analytics.ingest import EventIngestor
from page_analytics.origins import OriginPolicy
from page_analytics.stores import AggregateStore, EventStore


@dataclass
class App:
    settings: Settings
    events: EventStore | None
    aggregates: AggregateStore | None
    geolocation: GeolocationResolver
    origins: OriginPolicy

    @property
    def ingestor(self) -> EventIngestor:
        return EventIngestor(self.events, self.geolocation)


def build_app(settings: Settings, dynamodb=None, http_client: httpx.Client | None = None) -> App:
    if dynamodb is None:
        dynamodb = boto3.resource("dynamodb", endpoint_url=settings.dynamodb_endpoint_url)

    events = EventStore(dynamodb.Table(settings.events_table)) if settings.events_table else None
    aggregates = (
        AggregateStore(dynamodb.Table(settings.aggregates_table)) if settings.aggregates_table else None
    )

    return App(
        settings=settings,
        events=events,
        aggregates=aggregates,
        geolocation=GeolocationResolver(
            settings.geolocation_url,
            timeout=settings.geolocation_timeout,
            client=http_client,
        ),
        origins=OriginPolicy(settings.allowed_origins),
    )
