# app/services/search_service.py
"""
Lead search.

Elasticsearch is used when ELASTICSEARCH_URL is configured and the cluster
answers; otherwise (or on any cluster error) the same filters run as SQL
ILIKE queries. Indexing is best effort and never fails the write that
triggered it.
"""

import re
from datetime import datetime, timedelta, timezone

from elasticsearch import ApiError, AsyncElasticsearch, TransportError
from loguru import logger
from sqlmodel import select
from sqlalchemy import String, and_, cast, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.config import settings
from app.models.enums import (
    FOLLOW_UP_GROUP,
    FOLLOW_UP_WINDOW_HOURS,
    IN_PROCESS_GROUP,
    LEAD_STATUS_GROUPS,
    OUTSIDE_PIPELINE,
)
from app.models.lead import Lead
from app.models.user import User

THREE_DIGIT_CODES = ("256", "255", "254", "971", "966", "852")
TWO_DIGIT_CODES = ("91", "86", "44", "61", "49", "81", "82", "33", "34", "39")
ONE_DIGIT_CODES = ("1", "7")

PHONE_QUERY_RE = re.compile(r"^\+?\d+$")

SEARCH_FIELDS = [
    "first_name^3",
    "last_name^3",
    "assigned_user.firstname^2",
    "assigned_user.lastname^2",
    "creator.firstname^2",
    "creator.lastname^2",
    "country^2",
    "status^2",
    "emails",
    "primary_email",
    "processed_contact_numbers^2",
]

_client: AsyncElasticsearch | None = None


# ------------------------------------------------------------
# Phone normalisation
# ------------------------------------------------------------
def process_phone_number(phone: str | None) -> str:
    """
    Strip formatting and a leading known country code.

    "+91 98765-43210" -> "9876543210", "+1 (555) 123-4567" -> "5551234567".
    Numbers without "+" only lose a country code when they are longer than a
    plain 10-digit national number.
    """
    if not phone:
        return ""

    clean = re.sub(r"[^\d+]", "", phone)
    has_plus = clean.startswith("+")
    digits = clean.lstrip("+")

    if not has_plus and len(digits) <= 10:
        return digits

    for codes in (THREE_DIGIT_CODES, TWO_DIGIT_CODES, ONE_DIGIT_CODES):
        width = len(codes[0])
        if digits[:width] in codes:
            return digits[width:]

    return digits


def _split_name(value: str) -> tuple[str, str]:
    parts = value.strip().split()
    first = parts[0].lower() if parts else ""
    last = parts[1].lower() if len(parts) > 1 else first
    return first, last


# ------------------------------------------------------------
# Elasticsearch query body (pure)
# ------------------------------------------------------------
def _group_clause(status_group: str, now: datetime) -> dict:
    horizon = (now + timedelta(hours=FOLLOW_UP_WINDOW_HOURS)).isoformat()
    outside = {"terms": {"status.keyword": [s.value for s in OUTSIDE_PIPELINE]}}

    if status_group == FOLLOW_UP_GROUP:
        return {
            "bool": {
                "must": [
                    {"exists": {"field": "follow_up_at"}},
                    {"range": {"follow_up_at": {"lte": horizon}}},
                ],
                "must_not": [outside],
            }
        }

    if status_group == IN_PROCESS_GROUP:
        return {
            "bool": {
                "should": [
                    {"range": {"follow_up_at": {"gt": horizon}}},
                    {"bool": {"must_not": {"exists": {"field": "follow_up_at"}}}},
                ],
                "minimum_should_match": 1,
                "must_not": [outside],
            }
        }

    statuses = LEAD_STATUS_GROUPS.get(status_group)
    if statuses is None:
        raise ValueError(f"Unknown status group '{status_group}'")
    return {"terms": {"status.keyword": [s.value for s in statuses]}}


def _name_clause(prefix: str, value: str) -> dict:
    first, last = _split_name(value)
    return {
        "bool": {
            "should": [
                {"match": {f"{prefix}.firstname": first}},
                {"match": {f"{prefix}.lastname": last}},
            ],
            "minimum_should_match": 1,
        }
    }


def build_lead_query(
    query: str,
    status_group: str | None = None,
    page: int = 1,
    limit: int = 10,
    status_filter: str | None = None,
    sales_filter: str | None = None,
    created_by_filter: str | None = None,
    now: datetime | None = None,
) -> dict:
    now = now or datetime.now(timezone.utc)
    text = process_phone_number(query) if PHONE_QUERY_RE.match(query.strip()) else query.strip()

    must: list[dict] = [
        {
            "multi_match": {
                "query": text,
                "type": "best_fields",
                "fields": SEARCH_FIELDS,
                "fuzziness": "AUTO",
                "operator": "or",
            }
        }
    ]
    if status_group:
        must.append(_group_clause(status_group, now))
    if status_filter:
        must.append({"term": {"status.keyword": status_filter}})
    if sales_filter:
        must.append(_name_clause("assigned_user", sales_filter))
    if created_by_filter:
        must.append(_name_clause("creator", created_by_filter))

    return {
        "from": (page - 1) * limit,
        "size": limit,
        "query": {"bool": {"must": must, "must_not": [{"term": {"is_archived": True}}]}},
        "sort": [{"_score": "desc"}, {"id": "desc"}],
    }


# ------------------------------------------------------------
# Client
# ------------------------------------------------------------
def get_es_client() -> AsyncElasticsearch | None:
    global _client
    if not settings.ELASTICSEARCH_URL:
        return None
    if _client is None:
        _client = AsyncElasticsearch(settings.ELASTICSEARCH_URL, request_timeout=30, max_retries=3)
    return _client


async def close_es_client():
    global _client
    if _client is not None:
        await _client.close()
        _client = None


def _person(user: User | None) -> dict | None:
    if user is None:
        return None
    return {"id": user.id, "firstname": user.firstname, "lastname": user.lastname, "email": user.email}


def lead_document(lead: Lead, assigned_user: User | None = None, creator: User | None = None) -> dict:
    return {
        "id": lead.id,
        "first_name": lead.first_name,
        "last_name": lead.last_name,
        "contact_numbers": lead.contact_numbers,
        "processed_contact_numbers": lead.processed_contact_numbers,
        "emails": lead.emails,
        "primary_email": lead.primary_email,
        "technology": lead.technology,
        "country": lead.country,
        "country_code": lead.country_code,
        "visa_status": getattr(lead.visa_status, "value", lead.visa_status),
        "status": getattr(lead.status, "value", lead.status),
        "lead_source": lead.lead_source,
        "follow_up_at": lead.follow_up_at.isoformat() if lead.follow_up_at else None,
        "assigned_to": lead.assigned_to,
        "assigned_user": _person(assigned_user),
        "creator": _person(creator),
        "is_archived": lead.is_archived,
    }


async def index_lead(session: AsyncSession, lead: Lead) -> bool:
    client = get_es_client()
    if client is None:
        return False

    assigned_user = await session.get(User, lead.assigned_to) if lead.assigned_to else None
    creator = await session.get(User, lead.created_by) if lead.created_by else None

    try:
        await client.index(
            index=settings.ELASTICSEARCH_LEAD_INDEX,
            id=str(lead.id),
            document=lead_document(lead, assigned_user, creator),
        )
        return True
    except (ApiError, TransportError) as e:
        logger.warning(f"⚠️ Could not index lead {lead.id}: {e}")
        return False


# ------------------------------------------------------------
# SQL fallback
# ------------------------------------------------------------
def status_group_condition(status_group: str, now: datetime | None = None):
    """SQL twin of the Elasticsearch status-group clause."""
    now = now or datetime.now(timezone.utc)
    horizon = now + timedelta(hours=FOLLOW_UP_WINDOW_HOURS)

    if status_group == FOLLOW_UP_GROUP:
        return and_(
            Lead.follow_up_at.is_not(None),
            Lead.follow_up_at <= horizon,
            Lead.status.not_in(OUTSIDE_PIPELINE),
        )
    if status_group == IN_PROCESS_GROUP:
        return and_(
            or_(Lead.follow_up_at.is_(None), Lead.follow_up_at > horizon),
            Lead.status.not_in(OUTSIDE_PIPELINE),
        )

    statuses = LEAD_STATUS_GROUPS.get(status_group)
    if statuses is None:
        raise ValueError(f"Unknown status group '{status_group}'")
    return Lead.status.in_(statuses)


def _name_condition(user_alias, value: str):
    first, last = _split_name(value)
    return or_(
        func.lower(user_alias.firstname) == first,
        func.lower(user_alias.lastname) == last,
    )


async def _search_database(
    session: AsyncSession,
    query: str,
    status_group: str | None,
    page: int,
    limit: int,
    status_filter: str | None,
    sales_filter: str | None,
    created_by_filter: str | None,
) -> tuple[list[Lead], int]:
    term = query.strip()
    like = f"%{term}%"

    text_match = [
        Lead.first_name.ilike(like),
        Lead.last_name.ilike(like),
        Lead.primary_email.ilike(like),
        cast(Lead.emails, String).ilike(like),
        Lead.country.ilike(like),
        cast(Lead.status, String).ilike(like),
    ]
    if PHONE_QUERY_RE.match(term):
        text_match.append(cast(Lead.processed_contact_numbers, String).ilike(f"%{process_phone_number(term)}%"))

    stmt = select(Lead).where(Lead.is_archived.is_(False), or_(*text_match))

    if status_group:
        stmt = stmt.where(status_group_condition(status_group))
    if status_filter:
        stmt = stmt.where(cast(Lead.status, String) == status_filter)
    if sales_filter:
        assignee = aliased(User)
        stmt = stmt.join(assignee, assignee.id == Lead.assigned_to).where(_name_condition(assignee, sales_filter))
    if created_by_filter:
        creator = aliased(User)
        stmt = stmt.join(creator, creator.id == Lead.created_by).where(_name_condition(creator, created_by_filter))

    total = (await session.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    result = await session.execute(
        stmt.order_by(Lead.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------
async def search_leads(
    session: AsyncSession,
    query: str,
    status_group: str | None = None,
    page: int = 1,
    limit: int = 10,
    status_filter: str | None = None,
    sales_filter: str | None = None,
    created_by_filter: str | None = None,
) -> dict:
    client = get_es_client()

    if client is not None:
        body = build_lead_query(
            query, status_group, page, limit, status_filter, sales_filter, created_by_filter
        )
        try:
            response = await client.search(
                index=settings.ELASTICSEARCH_LEAD_INDEX,
                query=body["query"],
                sort=body["sort"],
                from_=body["from"],
                size=body["size"],
            )
            ids = [int(hit["_source"]["id"]) for hit in response["hits"]["hits"]]
            leads = []
            if ids:
                result = await session.execute(select(Lead).where(Lead.id.in_(ids)))
                by_id = {lead.id: lead for lead in result.scalars().all()}
                leads = [by_id[i] for i in ids if i in by_id]
            return {
                "total": response["hits"]["total"]["value"],
                "leads": leads,
                "page": page,
                "limit": limit,
                "source": "elasticsearch",
            }
        except (ApiError, TransportError) as e:
            logger.warning(f"⚠️ Elasticsearch unavailable, falling back to database search: {e}")

    leads, total = await _search_database(
        session, query, status_group, page, limit, status_filter, sales_filter, created_by_filter
    )
    return {"total": total, "leads": leads, "page": page, "limit": limit, "source": "database"}
