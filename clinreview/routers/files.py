from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status

from clinreview.core.limiter import limiter, upload_rate
from clinreview.dependencies import get_file_storage
from clinreview.services.file_storage import FileStorage, destination_path, validate_file

router = APIRouter(prefix="/files", tags=["Files"])


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(upload_rate)
async def upload_file(
    request: Request,
    staff_id: int = Form(...),
    kpi_id: int = Form(...),
    file: UploadFile = File(...),
    storage: FileStorage = Depends(get_file_storage),
):
    """Store a review attachment and return the URL to put on the review item."""
    content = await file.read()
    validate_file(file.filename, file.content_type, len(content))
    path = destination_path(staff_id, kpi_id, file.filename)
    url = storage.upload(content, file.filename, file.content_type, path)
    return {"url": url, "path": path, "size": len(content)}


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(url: str, storage: FileStorage = Depends(get_file_storage)):
    storage.delete(url)
