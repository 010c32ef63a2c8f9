"""Pytest configuration and shared fixtures for page-analytics tests."""

import os

import boto3
import httpx
import pytest
from moto import mock_aws

from page_analytics.app import build_app
from page_analytics.config import Settings


@pytest.fixture(autouse=True)
def set_env_vars(monkeypatch):
    """Set required environment variables for all tests."""
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("APP_NAME", "page-analytics")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("EVENTS_TABLE", "test-page-events")
    monkeypatch.setenv("AGGREGATES_TABLE", "test-page-aggregates")
    monkeypatch.setenv("GEOLOCATION_URL", "http://geo.test/json/{ip}")
    monkeypatch.setenv("GEOLOCATION_TIMEOUT", "2")
    monkeypatch.setenv("ALLOWED_ORIGINS", "null,localhost,127.0.0.1,https://example.com")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-west-2")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-west-2"


@pytest.fixture
def mock_dynamodb(aws_credentials):
    """Create mocked DynamoDB tables."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-west-2")

        # Raw events
        # Schema: PK = "SESSION#{session_id}", SK = "EVENT#{timestamp}#{id}"
        # GSI1: GSI1PK = "DATE#{date}", GSI1SK = "{timestamp}#{id}"
        events_table = dynamodb.create_table(
            TableName="test-page-events",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "GSI1PK", "AttributeType": "S"},
                {"AttributeName": "GSI1SK", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "GSI1",
                    "KeySchema": [
                        {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                        {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        events_table.wait_until_exists()

        # Hourly rollups
        # Schema: PK = "PAGE#{page}", SK = "{date}#{hour:02d}#{source}"
        aggregates_table = dynamodb.create_table(
            TableName="test-page-aggregates",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        aggregates_table.wait_until_exists()

        yield dynamodb, events_table, aggregates_table


class GeoProvider:
    """Stand-in geolocation provider; records every request it receives."""

    def __init__(self):
        self.requests = []
        self.mode = "ok"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.mode == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if self.mode == "error":
            return httpx.Response(500, json={"message": "boom"})
        if self.mode == "quota":
            return httpx.Response(429, json={"error": "rate limit exceeded"})
        if self.mode == "garbage":
            return httpx.Response(200, content=b"<html>not json</html>")
        if self.mode == "fail":
            return httpx.Response(200, json={"status": "fail", "message": "reserved range"})
        return httpx.Response(
            200,
            json={
                "status": "success",
                "city": "Sydney",
                "regionName": "New South Wales",
                "country": "Australia",
            },
        )


@pytest.fixture
def geo_provider():
    return GeoProvider()


@pytest.fixture
def http_client(geo_provider):
    client = httpx.Client(transport=httpx.MockTransport(geo_provider))
    yield client
    client.close()


@pytest.fixture
def app(mock_dynamodb, http_client):
    """App wired to mocked DynamoDB and the stand-in geolocation provider."""
    dynamodb, _, _ = mock_dynamodb
    return build_app(Settings.from_env(), dynamodb=dynamodb, http_client=http_client)


@pytest.fixture
def sample_aggregates(mock_dynamodb):
    """Populate the aggregates table with rollups for /home and /about."""
    _, _, aggregates_table = mock_dynamodb

    items = [
        {"page": "/home", "date": "2024-01-01", "hour": 9, "source": "web-a",
         "page_loads": 3, "distinct_users": 2, "new_users": 2, "cumulative_daily_distinct_users": 2},
        {"page": "/home", "date": "2024-01-01", "hour": 9, "source": "web-b",
         "page_loads": 2, "distinct_users": 1, "new_users": 1, "cumulative_daily_distinct_users": 3},
        {"page": "/home", "date": "2024-01-01", "hour": 14, "source": "web-a",
         "page_loads": 5, "distinct_users": 4, "new_users": 1, "cumulative_daily_distinct_users": 4},
        {"page": "/home", "date": "2024-01-02", "hour": 9, "source": "web-a",
         "page_loads": 7, "distinct_users": 3, "new_users": 3, "cumulative_daily_distinct_users": 3},
        {"page": "/about", "date": "2024-01-01", "hour": 9, "source": "web-a",
         "page_loads": 11, "distinct_users": 1, "new_users": 1, "cumulative_daily_distinct_users": 1},
    ]

    for item in items:
        aggregates_table.put_item(Item={
            "PK": f"PAGE#{item['page']}",
            "SK": f"{item['date']}#{item['hour']:02d}#{item['source']}",
            **item,
        })

    return items


def api_event(route_key: str, path: str, method: str = "GET", **extra) -> dict:
    """Minimal API Gateway HTTP API (payload 2.0) event."""
    event = {
        "version": "2.0",
        "routeKey": route_key,
        "rawPath": path,
        "headers": {"content-type": "application/json"},
        "requestContext": {
            "http": {
                "method": method,
                "path": path,
                "sourceIp": "198.51.100.20",
            }
        },
    }
    event.update(extra)
    return event


@pytest.fixture
def make_api_event():
    return api_event
