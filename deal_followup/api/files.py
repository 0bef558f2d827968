"""File Routes: document uploads for the key-people agent."""

import logging
from typing import Annotated

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from ..core.dependencies import ObjectStoreDep
from ..core.exceptions import DealFollowupError
from ..schemas.files import StoredObject, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])

PDF_MIME_TYPE = "application/pdf"


@router.post("/upload-rag", response_model=UploadResponse, response_model_by_alias=True)
async def upload_rag_files(
    object_store: ObjectStoreDep,
    files: Annotated[list[UploadFile] | None, File(description="PDF documents")] = None,
):
    """
    Store uploaded PDFs in the RAG bucket.

    Files whose declared type is not PDF are skipped; the message reports how
    many of the uploads were stored.
    """
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded.",
        )

    uploaded: list[StoredObject] = []
    for upload in files:
        if upload.content_type != PDF_MIME_TYPE:
            logger.warning(f"Skipping non-PDF upload {upload.filename} ({upload.content_type})")
            continue
        data = await upload.read()
        try:
            stored = await object_store.store(data, upload.filename or "upload.pdf", upload.content_type)
        except DealFollowupError as e:
            logger.error(f"Failed to store {upload.filename}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to upload {upload.filename}: {e}",
            )
        uploaded.append(stored)

    logger.info(f"Uploaded {len(uploaded)} of {len(files)} files")
    return UploadResponse(
        message=f"{len(uploaded)} of {len(files)} files were PDFs and have been uploaded.",
        uploaded_files=uploaded,
    )
