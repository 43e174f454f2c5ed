from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

from trackhabit.application.api.dependencies import get_session_context
from trackhabit.application.api.schema import ImportResponse
from trackhabit.domain.documents.document_extractor import extract_document_text
from trackhabit.domain.errors import InvalidRequestError
from trackhabit.domain.models.entities import SessionContext

router = APIRouter(prefix="/api/import", tags=["documents"])


@router.post("", response_model=ImportResponse)
async def import_document(
    session: Annotated[SessionContext, Depends(get_session_context)],
    file: Optional[UploadFile] = File(None)
):
    """Convert an uploaded PDF or Excel file to plain text"""

    if file is None:
        raise InvalidRequestError("No file provided")

    data = await file.read()
    text = await run_in_threadpool(extract_document_text, file.filename or "", file.content_type, data)
    return ImportResponse(text=text, filename=file.filename or "")
