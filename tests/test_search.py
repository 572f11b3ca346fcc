from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from elasticsearch import ConnectionError as ESConnectionError

from app.services import search_service
from app.services.search_service import build_lead_query, process_phone_number


# -------------------------------------------------------------------
# Phone normalisation
# -------------------------------------------------------------------
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+91 98765-43210", "9876543210"),
        ("+1 (555) 123-4567", "5551234567"),
        ("+971501234567", "501234567"),
        ("9876543210", "9876543210"),
        ("919876543210", "9876543210"),
        ("", ""),
        (None, ""),
    ],
)
def test_process_phone_number(raw, expected):
    assert process_phone_number(raw) == expected


# -------------------------------------------------------------------
# Query body
# -------------------------------------------------------------------
def test_query_paging_and_archive_exclusion():
    body = build_lead_query("jane", page=3, limit=20)
    assert body["from"] == 40
    assert body["size"] == 20
    assert body["query"]["bool"]["must_not"] == [{"term": {"is_archived": True}}]
    assert body["query"]["bool"]["must"][0]["multi_match"]["query"] == "jane"


def test_phone_query_is_normalised():
    body = build_lead_query("+919876543210")
    assert body["query"]["bool"]["must"][0]["multi_match"]["query"] == "9876543210"


def test_follow_up_group_uses_window():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    body = build_lead_query("jane", status_group="followUp", now=now)
    group = body["query"]["bool"]["must"][1]["bool"]
    assert group["must"][1] == {"range": {"follow_up_at": {"lte": "2026-01-02T00:00:00+00:00"}}}


def test_filters_are_added():
    body = build_lead_query("jane", status_filter="open", sales_filter="Riya Shah", created_by_filter="Admin")
    must = body["query"]["bool"]["must"]
    assert {"term": {"status.keyword": "open"}} in must
    assert len(must) == 4


def test_unknown_group_raises():
    with pytest.raises(ValueError):
        build_lead_query("jane", status_group="someday")


# -------------------------------------------------------------------
# Endpoint
# -------------------------------------------------------------------
async def _make_lead(client, headers, first_name, email, phone="+919876543210"):
    res = await client.post(
        "/api/leads/",
        json={
            "first_name": first_name,
            "last_name": "Tester",
            "contact_numbers": [phone],
            "emails": [email],
            "primary_email": email,
            "technology": ["Java"],
            "country": "India",
            "country_code": "IN",
            "visa_status": "F1",
            "lead_source": "Referral",
        },
        headers=headers,
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


@pytest.mark.asyncio
async def test_database_fallback_search(client, admin_headers):
    jane = await _make_lead(client, admin_headers, "Jane", "jane@example.com")
    await _make_lead(client, admin_headers, "Mark", "mark@example.com", phone="+14155550100")

    res = await client.get("/api/search/leads?query=jan", headers=admin_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["source"] == "database"
    assert [lead["id"] for lead in data["leads"]] == [jane["id"]]

    by_phone = await client.get("/api/search/leads", params={"query": "+919876543210"}, headers=admin_headers)
    assert [lead["id"] for lead in by_phone.json()["data"]["leads"]] == [jane["id"]]


@pytest.mark.asyncio
async def test_search_rejects_unknown_group(client, admin_headers):
    res = await client.get("/api/search/leads?query=jane&status_group=someday", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "status_group"


@pytest.mark.asyncio
async def test_elasticsearch_results_are_used(client, admin_headers, monkeypatch):
    jane = await _make_lead(client, admin_headers, "Jane", "jane@example.com")

    es = MagicMock()
    es.search = AsyncMock(return_value={"hits": {"total": {"value": 1}, "hits": [{"_source": {"id": jane["id"]}}]}})
    monkeypatch.setattr(search_service, "get_es_client", lambda: es)

    res = await client.get("/api/search/leads?query=whatever", headers=admin_headers)
    data = res.json()["data"]
    assert data["source"] == "elasticsearch"
    assert data["total"] == 1
    assert data["leads"][0]["id"] == jane["id"]
    assert es.search.await_args.kwargs["size"] == 10


@pytest.mark.asyncio
async def test_elasticsearch_failure_falls_back(client, admin_headers, monkeypatch):
    jane = await _make_lead(client, admin_headers, "Jane", "jane@example.com")

    es = MagicMock()
    es.search = AsyncMock(side_effect=ESConnectionError("cluster down"))
    monkeypatch.setattr(search_service, "get_es_client", lambda: es)

    res = await client.get("/api/search/leads?query=jane", headers=admin_headers)
    data = res.json()["data"]
    assert data["source"] == "database"
    assert [lead["id"] for lead in data["leads"]] == [jane["id"]]
