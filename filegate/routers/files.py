import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import StreamingResponse

from filegate.core.security import get_storage_service, require_principal
from filegate.services.storage import Download, StorageService

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anon"

# Every route here needs a bearer session; require_principal sets
# request.state.username for the handlers.
router = APIRouter(
    prefix="/storage",
    tags=["storage"],
    dependencies=[Depends(require_principal)],
)

anonymous_router = APIRouter(prefix="/anonymous", tags=["anonymous"])

dev_router = APIRouter(prefix="/anonymous", tags=["dev"])


# --- helper: size of an uploaded file without reading it into memory ---
def upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def content_disposition(filename: str) -> str:
    safe = "".join(c for c in filename if c.isprintable() and c not in '"\\')
    safe = safe or "file"
    try:
        safe.encode("ascii")
    except UnicodeEncodeError:
        ascii_name = safe.encode("ascii", "ignore").decode() or "file"
        return f"attachment; filename=\"{ascii_name}\"; filename*=utf-8''{quote(safe)}"
    return f'attachment; filename="{safe}"'


def stream_blob(download: Download):
    try:
        for chunk in download.blob.iter_chunks():
            yield chunk
    except Exception:
        # headers are already sent, so the client just sees a short body
        logger.exception(
            "download_stream_error uid=%s path=%s", download.obj.id, download.obj.path
        )
    finally:
        download.blob.close()


def store_upload(
    storage: StorageService,
    username: str,
    upload: UploadFile,
    key: str,
    path: str,
    password: str,
) -> dict:
    uid = storage.upload(
        username,
        upload.file,
        upload_size(upload),
        key=key,
        path=path,
        password=password,
        filename=upload.filename or "",
    )
    return {"uid": uid}


def download_response(storage: StorageService, key: str, password: str):
    download = storage.download(key, password)
    return StreamingResponse(
        stream_blob(download),
        media_type=download.blob.content_type,
        headers={"Content-Disposition": content_disposition(download.filename)},
    )


# --- authenticated routes ---
@router.post("/upload")
def upload_file(
    request: Request,
    file: UploadFile = File(...),
    key: str = Form(""),
    path: str = Form(""),
    password: str = Form(""),
    storage: StorageService = Depends(get_storage_service),
):
    return store_upload(storage, request.state.username, file, key, path, password)


@router.get("/download")
def download_file(
    request: Request,
    key: str = "",
    password: str = "",
    storage: StorageService = Depends(get_storage_service),
):
    logger.info("download_request user=%s key=%s", request.state.username, key)
    return download_response(storage, key, password)


@router.get("/list")
def list_files(request: Request, storage: StorageService = Depends(get_storage_service)):
    return [obj.to_dict() for obj in storage.list_for(request.state.username)]


# --- anonymous routes, acting as the "anon" user ---
@anonymous_router.post("/upload")
def anonymous_upload(
    file: UploadFile = File(...),
    key: str = Form(""),
    path: str = Form(""),
    password: str = Form(""),
    storage: StorageService = Depends(get_storage_service),
):
    return store_upload(storage, ANONYMOUS_USER, file, key, path, password)


@anonymous_router.get("/download")
def anonymous_download(
    key: str = "",
    password: str = "",
    storage: StorageService = Depends(get_storage_service),
):
    return download_response(storage, key, password)


@dev_router.get("/list")
def list_all_files(storage: StorageService = Depends(get_storage_service)):
    return [obj.to_dict() for obj in storage.list_all()]
