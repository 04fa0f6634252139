"""
VendorHub — Contract & Document API routes.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vendorhub.database import get_db
from vendorhub.errors import InputValidationError, NotFoundError, envelope
from vendorhub.models.contract import Contract, Document
from vendorhub.models.vendor import Vendor
from vendorhub.routes.activity import get_recorder
from vendorhub.schemas.activity import ActivityType
from vendorhub.schemas.contract import (
    ContractCreateRequest, ContractUpdateRequest, ContractResponse,
    ContractListResponse,
    DocumentCreateRequest, DocumentResponse, DocumentListResponse,
)
from vendorhub.services.identity import get_current_user_id
from vendorhub.services.recorder import ActivityRecorder, describe_status_change

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/contracts", tags=["contracts"])
document_router = APIRouter(prefix="/documents", tags=["documents"])

_TRACKED_FIELDS = ("title", "description", "start_date", "end_date", "value", "status", "is_urgent")


def _contract_to_response(c: Contract, vendor_name: str | None) -> ContractResponse:
    resp = ContractResponse.model_validate(c)
    resp.vendor_name = vendor_name or "Unknown Vendor"
    return resp


async def _get_contract_or_404(db: AsyncSession, contract_id: str) -> tuple[Contract, str | None]:
    result = await db.execute(
        select(Contract, Vendor.name)
        .outerjoin(Vendor, Vendor.id == Contract.vendor_id)
        .where(Contract.id == contract_id)
    )
    row = result.one_or_none()
    if not row:
        raise NotFoundError("Contract", contract_id)
    return row[0], row[1]


# ═══════════════════════════════════════════════════════
#  Contracts
# ═══════════════════════════════════════════════════════

@router.get("")
async def list_contracts(
    vendor_id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    stmt = (
        select(Contract, Vendor.name)
        .outerjoin(Vendor, Vendor.id == Contract.vendor_id)
        .order_by(Contract.created_at.desc())
    )
    if vendor_id:
        stmt = stmt.where(Contract.vendor_id == vendor_id)
    result = await db.execute(stmt)
    contracts = [_contract_to_response(c, name) for c, name in result.all()]
    return envelope(ContractListResponse(contracts=contracts, total=len(contracts)))


@router.get("/{contract_id}")
async def get_contract(contract_id: str, db: AsyncSession = Depends(get_db)):
    contract, vendor_name = await _get_contract_or_404(db, contract_id)
    return envelope(_contract_to_response(contract, vendor_name))


@router.post("", status_code=201)
async def create_contract(
    req: ContractCreateRequest,
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    vendor = await db.get(Vendor, req.vendor_id)
    if not vendor:
        raise NotFoundError("Vendor", req.vendor_id)

    contract = Contract(**req.model_dump(), created_by=user_id)
    db.add(contract)
    await db.commit()
    await db.refresh(contract)
    logger.info("📝 Contract created: %s for %s", contract.title, vendor.name)

    await recorder.log_contract_activity(
        ActivityType.CONTRACT_CREATED,
        contract.id,
        vendor_id=vendor.id,
        actor_id=user_id,
        context={"contract_title": contract.title, "vendor_name": vendor.name},
    )
    return envelope(_contract_to_response(contract, vendor.name))


@router.patch("/{contract_id}")
async def update_contract(
    contract_id: str,
    req: ContractUpdateRequest,
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    contract, vendor_name = await _get_contract_or_404(db, contract_id)
    before = {f: getattr(contract, f) for f in _TRACKED_FIELDS}

    for field, value in req.model_dump(exclude_unset=True).items():
        setattr(contract, field, value)
    if contract.end_date < contract.start_date:
        await db.rollback()
        raise InputValidationError("end_date must not be before start_date", field="end_date")
    await db.commit()
    await db.refresh(contract)

    after = {f: getattr(contract, f) for f in _TRACKED_FIELDS}
    template, metadata = describe_status_change("contract", before, after)
    await recorder.log_contract_activity(
        ActivityType.CONTRACT_UPDATED,
        contract.id,
        vendor_id=contract.vendor_id,
        description=template,
        metadata=metadata,
        actor_id=user_id,
        context={"contract_title": contract.title},
    )
    return envelope(_contract_to_response(contract, vendor_name))


@router.delete("/{contract_id}")
async def delete_contract(
    contract_id: str,
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    contract, _ = await _get_contract_or_404(db, contract_id)
    title, vendor_id = contract.title, contract.vendor_id
    await db.delete(contract)
    await db.commit()

    await recorder.log_contract_activity(
        ActivityType.CONTRACT_DELETED,
        contract_id,
        vendor_id=vendor_id,
        actor_id=user_id,
        context={"contract_title": title},
    )
    return envelope({"deleted": contract_id})


# ═══════════════════════════════════════════════════════
#  Documents (metadata only, bytes live in the blob store)
# ═══════════════════════════════════════════════════════

def _document_metadata(doc: Document) -> dict:
    return {
        "entity_type": doc.entity_type,
        "entity_id": doc.entity_id,
        "file_type": doc.file_type,
        "file_size": doc.file_size,
    }


@document_router.get("")
async def list_documents(
    entity_type: str = Query(...),
    entity_id: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Document)
        .where(Document.entity_type == entity_type)
        .where(Document.entity_id == entity_id)
        .order_by(Document.created_at.desc())
    )
    docs = [DocumentResponse.model_validate(d) for d in result.scalars().all()]
    return envelope(DocumentListResponse(documents=docs, total=len(docs)))


@document_router.get("/{document_id}")
async def get_document(document_id: str, db: AsyncSession = Depends(get_db)):
    doc = await db.get(Document, document_id)
    if not doc:
        raise NotFoundError("Document", document_id)
    return envelope(DocumentResponse.model_validate(doc))


@document_router.post("", status_code=201)
async def register_document(
    req: DocumentCreateRequest,
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    doc = Document(**req.model_dump(), uploaded_by=user_id)
    db.add(doc)
    await db.commit()
    await db.refresh(doc)

    await recorder.log_document_activity(
        ActivityType.DOCUMENT_UPLOADED,
        doc.id,
        f"New document uploaded: {doc.name}".replace("{", "{{").replace("}", "}}"),
        metadata=_document_metadata(doc),
        actor_id=user_id,
    )
    return envelope(DocumentResponse.model_validate(doc))


@document_router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    doc = await db.get(Document, document_id)
    if not doc:
        raise NotFoundError("Document", document_id)
    name, metadata = doc.name, _document_metadata(doc)
    await db.delete(doc)
    await db.commit()

    await recorder.log_document_activity(
        ActivityType.DOCUMENT_DELETED,
        document_id,
        f"Document deleted: {name}".replace("{", "{{").replace("}", "}}"),
        metadata=metadata,
        actor_id=user_id,
    )
    return envelope({"deleted": document_id})
