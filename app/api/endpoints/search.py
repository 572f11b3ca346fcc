# app/api/endpoints/search.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session
from app.core.activities import LEAD_MANAGEMENT
from app.core.errors import FieldValidationError
from app.core.rbac import RequirePermission
from app.models.enums import STATUS_GROUP_NAMES
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.schemas.lead import LeadSearchResult
from app.services.search_service import search_leads

router = APIRouter(prefix="/api/search", tags=["Search"])


@router.get("/leads", response_model=APIResponse[LeadSearchResult])
async def search_lead_records(
    query: str = Query(min_length=1),
    status_group: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status_filter: Optional[str] = Query(default=None),
    sales_filter: Optional[str] = Query(default=None),
    created_by_filter: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(LEAD_MANAGEMENT, "view")),
):
    """
    Full-text lead search. Elasticsearch serves the query when configured and
    reachable; otherwise the database answers with ILIKE matching.
    """
    if status_group and status_group not in STATUS_GROUP_NAMES:
        raise FieldValidationError.single("status_group", f"Unknown status group '{status_group}'")

    result = await search_leads(
        session,
        query,
        status_group=status_group,
        page=page,
        limit=limit,
        status_filter=status_filter,
        sales_filter=sales_filter,
        created_by_filter=created_by_filter,
    )
    return ok(result)
