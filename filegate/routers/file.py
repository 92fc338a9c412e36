from urllib.parse import quote

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from filegate.config import Settings, get_settings
from filegate.dependencies import get_current_user, get_gateway
from filegate.errors import PayloadTooLarge
from filegate.models.user_model import User
from filegate.schemas.file_schema import FileList, ReturnFile
from filegate.schemas.user_schema import MessageResponse
from filegate.services.gateway import AuthorizationGateway

UPLOAD_CHUNK_SIZE = 1024 * 1024

router = APIRouter()


async def read_upload(file: UploadFile, limit: int) -> bytes:
    """Reads the upload in chunks, stopping as soon as it exceeds limit bytes."""
    if file.size is not None and file.size > limit:
        raise PayloadTooLarge()
    chunks = []
    total = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise PayloadTooLarge()
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/upload", response_model=ReturnFile,
             summary="Upload a file to the user's storage",
             description="""
                            Stores the uploaded file in object storage under a fresh key and records
                            its metadata with the logged-in user as owner.
                          """,
             responses={
                 400: {"description": "No file found in request"},
                 401: {"description": "Not authenticated"},
                 413: {"description": "Upload file is too large"},
                 502: {"description": "Failed to upload file to storage"},
                 503: {"description": "Failed to save file metadata"},
             })
async def upload_file(file: UploadFile = File(...),
                      user: User = Depends(get_current_user),
                      gateway: AuthorizationGateway = Depends(get_gateway),
                      settings: Settings = Depends(get_settings)):
    data = await read_upload(file, settings.max_upload_size)
    record = await run_in_threadpool(gateway.upload, user, file.filename, data, file.content_type)
    return ReturnFile.model_validate(record)


@router.get("/files", response_model=FileList,
            summary="Displays user files",
            description="""
                            All files uploaded by the logged-in user will be displayed
                        """,
            responses={
                401: {"description": "Not authenticated"},
                200: {"description": "File list returned successfully"}
            })
def return_files(user: User = Depends(get_current_user),
                 gateway: AuthorizationGateway = Depends(get_gateway)):
    files = gateway.list_files(user)
    return FileList(files=[ReturnFile.model_validate(file) for file in files])


@router.get("/download/{file_id}",
            summary="Downloading a file with the provided ID",
            description="""
                          The response is the file content as a binary stream with the original
                          filename and media type.
                        """,
            responses={
                401: {"description": "Not authenticated"},
                403: {"description": "Access denied: you don't own this file"},
                404: {"description": "File not found"},
                502: {"description": "Failed to download file from storage"},
                200: {"description": "User successfully downloaded file",
                      "content": {
                           "application/octet-stream": {
                               "example": "Binary content placeholder"
                           }
                      }
                      }
            })
def download_user_file(file_id: int,
                       user: User = Depends(get_current_user),
                       gateway: AuthorizationGateway = Depends(get_gateway)):
    download = gateway.download(user, file_id)
    record = download.record
    return Response(
        content=download.data,
        media_type=record.content_type,
        headers={"Content-Disposition": f"attachment; filename=\"{quote(record.filename)}\"; filename*=UTF-8''{quote(record.filename)}"},
    )


@router.delete("/files/{file_id}", response_model=MessageResponse,
               summary="Deleting a file with the provided ID",
               description="""
                           Removes the file record and its stored content, this step is irreversible.
                         """,
               responses={
                   401: {"description": "Not authenticated"},
                   403: {"description": "Access denied: you don't own this file"},
                   404: {"description": "File not found"},
               },
               status_code=status.HTTP_200_OK)
def delete_user_file(file_id: int,
                     user: User = Depends(get_current_user),
                     gateway: AuthorizationGateway = Depends(get_gateway)):
    gateway.delete(user, file_id)
    return {"detail": "File deleted"}
