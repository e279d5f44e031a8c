import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import config
from ..auth import get_current_user
from ..database import get_db
from ..exceptions import NotFound, ValidationFailed
from ..membership import get_family_member
from ..models import Document, FamilyChild, FamilyMember, User
from ..realtime import emit_to_family
from ..shared.validators import validate_uuid
from ..storage import get_object_store
from ..utils.helpers import display_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["Documents"])

# Allowed document and image types for uploads
ALLOWED_DOCUMENT_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
]


class DocumentResponse(BaseModel):
    id: str
    familyId: str
    title: str
    childId: Optional[str] = None
    fileUrl: str
    fileName: Optional[str] = None
    contentType: Optional[str] = None
    size: Optional[int] = None
    uploadedById: str
    uploadedByName: Optional[str] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, doc: Document, file_url: str) -> "DocumentResponse":
        return cls(
            id=doc.id,
            familyId=doc.family_id,
            title=doc.title,
            childId=doc.child_id,
            fileUrl=file_url,
            fileName=doc.file_name,
            contentType=doc.content_type,
            size=doc.size,
            uploadedById=doc.uploaded_by_id,
            uploadedByName=doc.uploaded_by_name,
            createdAt=doc.created_at,
        )


def _to_response(doc: Document) -> DocumentResponse:
    # Links are signed from the storage key on every read
    return DocumentResponse.from_model(doc, get_object_store().url_for(doc.storage_key))


def _get_document(db: Session, family_id: str, document_id: str) -> Document:
    doc = (
        db.query(Document)
        .filter(Document.id == document_id, Document.family_id == family_id)
        .first()
    )
    if not doc:
        raise NotFound("Document not found", "document-not-found")
    return doc


@router.get("/{family_id}", response_model=list[DocumentResponse])
async def get_documents(
    family_id: str,
    child_id: Optional[str] = Query(None, alias="childId"),
    member: FamilyMember = Depends(get_family_member),
    db: Session = Depends(get_db),
):
    query = db.query(Document).filter(Document.family_id == family_id)
    if child_id:
        query = query.filter(Document.child_id == child_id)
    return [_to_response(d) for d in query.order_by(Document.created_at.desc()).all()]


@router.get("/{family_id}/{document_id}", response_model=DocumentResponse)
async def get_document(
    family_id: str,
    document_id: str,
    member: FamilyMember = Depends(get_family_member),
    db: Session = Depends(get_db),
):
    return _to_response(_get_document(db, family_id, document_id))


@router.post("/{family_id}", response_model=DocumentResponse, status_code=201)
async def upload_document(
    family_id: str,
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    child_id: Optional[str] = Form(None, alias="childId"),
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upload a family document to object storage"""
    if file.content_type not in ALLOWED_DOCUMENT_TYPES:
        raise ValidationFailed("Invalid file type", "invalid-file-type")

    try:
        child_id = validate_uuid(child_id)
    except ValueError as e:
        raise ValidationFailed(str(e))
    if child_id and not (
        db.query(FamilyChild.id)
        .filter(FamilyChild.id == child_id, FamilyChild.family_id == family_id)
        .first()
    ):
        raise ValidationFailed("Child not found", "child-not-found")

    content = await file.read()
    if not content:
        raise ValidationFailed("File is empty", "empty-file")
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise ValidationFailed("File is too large", "file-too-large")

    stored = get_object_store().upload(
        content, f"families/{family_id}/documents", file.filename or "document", file.content_type
    )

    doc = Document(
        family_id=family_id,
        title=(title or "").strip()[:200] or (file.filename or "Document"),
        child_id=child_id,
        file_url=stored.url,
        storage_key=stored.key,
        file_name=file.filename,
        content_type=file.content_type,
        size=len(content),
        uploaded_by_id=current_user.id,
        uploaded_by_name=display_name(current_user.full_name, current_user.email),
    )
    db.add(doc)
    db.commit()
    db.refresh(doc)
    logger.info(f"📄 Document uploaded: {doc.id} ({doc.size} bytes) in family {family_id}")

    response = DocumentResponse.from_model(doc, stored.url)
    await emit_to_family(family_id, "document:created", response.model_dump())
    return response


@router.delete("/{family_id}/{document_id}")
async def delete_document(
    family_id: str,
    document_id: str,
    member: FamilyMember = Depends(get_family_member),
    db: Session = Depends(get_db),
):
    doc = _get_document(db, family_id, document_id)
    try:
        get_object_store().delete(doc.storage_key)
    except Exception as e:
        # The row goes regardless; an orphaned object is only wasted space
        logger.warning(f"⚠️ Failed to delete stored object {doc.storage_key}: {str(e)}")

    db.delete(doc)
    db.commit()
    await emit_to_family(family_id, "document:deleted", {"id": document_id})
    return {"message": "Document deleted"}
