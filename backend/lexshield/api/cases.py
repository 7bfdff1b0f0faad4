"""
Case API endpoints.

WHY: Cases are the firm-owned resource the security stack is exercised
against:
1. List - firm-scoped, cursor paginated (v1 clients may send ?page=)
2. Get - resource ownership check, sensitive fields masked
3. Create - sensitive fields encrypted at rest
4. Delete - full permission plus a re-authentication within five minutes

Responses are produced in the v2 shape. The router's post-processing
stages mask sensitive fields and then reshape for v1 clients.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field

from lexshield.core.deps import get_case_dao, get_field_protector
from lexshield.dao.case import CaseDAO
from lexshield.middleware.firm import current_user
from lexshield.middleware.response_pipeline import (
    masking_processor,
    post_processing_route,
    reshape_processor,
)
from lexshield.middleware.secure import secure
from lexshield.models.case import Case
from lexshield.schemas.case import CaseListResponse, CaseResponse, DeleteCaseResponse
from lexshield.security.field_protection import FieldProtector
from lexshield.security.reshape import (
    ResponseReshapeEngine,
    decode_cursor,
    encode_cursor,
    page_to_cursor,
)
from lexshield.security.step_up import CRITICAL_MAX_AGE_MINUTES


logger = logging.getLogger(__name__)


# v2 name -> v1 name
CASE_FIELD_ALIASES = {
    "caseNumber": "case_number",
    "firmId": "firm_id",
    "lawyerId": "lawyer_id",
    "nationalId": "national_id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "hasMore": "has_more",
}


router = APIRouter(
    prefix="/cases",
    tags=["cases"],
    route_class=post_processing_route(
        masking_processor(FieldProtector()),
        reshape_processor(ResponseReshapeEngine(field_aliases=CASE_FIELD_ALIASES)),
    ),
)


class CaseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    caseNumber: Optional[str] = Field(None, max_length=100)
    lawyerId: Optional[int] = None
    nationalId: Optional[str] = Field(None, max_length=50)


def case_to_payload(case: Case, protector: FieldProtector) -> Dict[str, Any]:
    """
    v2 representation of a case with sensitive fields decrypted.

    Raises:
        InvalidEncryptedData: Stored ciphertext cannot be decrypted
    """
    return protector.decrypt_fields(
        {
            "id": case.id,
            "title": case.title,
            "caseNumber": case.case_number,
            "firmId": case.firm_id,
            "lawyerId": case.lawyer_id,
            "nationalId": case.client_national_id,
            "createdAt": case.created_at,
            "updatedAt": case.updated_at,
        }
    )


@router.get(
    "",
    response_model=CaseListResponse,
    summary="List cases",
    dependencies=secure(permission="cases:view"),
)
async def list_cases(
    request: Request,
    cursor: Optional[str] = Query(None, description="Opaque cursor from a previous page"),
    page: Optional[int] = Query(None, ge=1, description="v1 page number, used when no cursor is sent"),
    limit: int = Query(20, ge=1, le=100),
    case_dao: CaseDAO = Depends(get_case_dao),
    protector: FieldProtector = Depends(get_field_protector),
) -> Dict[str, Any]:
    if cursor is None and page is not None:
        cursor = page_to_cursor({"page": page, "limit": limit})["cursor"]
    offset = decode_cursor(cursor)
    cases, total = await case_dao.list_for_firm(request.state.firm_id, offset, limit)

    return {
        "data": [case_to_payload(case, protector) for case in cases],
        "pagination": {
            "cursor": encode_cursor(offset),
            "limit": limit,
            "hasMore": offset + limit < total,
            "total": total,
        },
    }


@router.get(
    "/{id}",
    response_model=CaseResponse,
    summary="Get case",
    dependencies=secure(permission="cases:view", model="Case"),
)
async def get_case(
    request: Request,
    protector: FieldProtector = Depends(get_field_protector),
) -> Dict[str, Any]:
    return case_to_payload(request.state.resource, protector)


@router.post(
    "",
    response_model=CaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create case",
    dependencies=secure(permission="cases:edit"),
)
async def create_case(
    payload: CaseCreate,
    request: Request,
    case_dao: CaseDAO = Depends(get_case_dao),
    protector: FieldProtector = Depends(get_field_protector),
) -> Dict[str, Any]:
    user = current_user(request)
    protected = protector.encrypt_fields({"nationalId": payload.nationalId})

    case = await case_dao.create(
        title=payload.title,
        case_number=payload.caseNumber,
        lawyer_id=payload.lawyerId,
        client_national_id=protected["nationalId"],
        firm_id=request.state.firm_id,
    )
    logger.info(
        f"Case {case.id} created in firm {case.firm_id}",
        extra={"case_id": case.id, "firm_id": case.firm_id, "user_id": user.id},
    )
    return case_to_payload(case, protector)


@router.delete(
    "/{id}",
    response_model=DeleteCaseResponse,
    summary="Delete case",
    dependencies=secure(
        permission="cases:full",
        model="Case",
        recent_auth_minutes=CRITICAL_MAX_AGE_MINUTES,
    ),
)
async def delete_case(
    request: Request,
    case_dao: CaseDAO = Depends(get_case_dao),
) -> Dict[str, Any]:
    user = current_user(request)
    case = request.state.resource

    await case_dao.delete(case.id)
    logger.info(
        f"Case {case.id} deleted by user {user.id}",
        extra={"case_id": case.id, "firm_id": case.firm_id, "user_id": user.id},
    )
    return {"id": case.id, "deleted": True}
