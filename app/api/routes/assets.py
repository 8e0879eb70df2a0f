import logging
from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.api.deps import get_asset_service, get_optional_selection, require_selection
from app.exceptions import APIException, GitHubException, NotFoundException
from app.schemas.assets import (
    AssetListing,
    CreateFolderRequest,
    CreateFolderResult,
    DeleteFolderResult,
    FolderList,
    MoveAssetRequest,
    MoveResult,
    SuccessResponse,
    UploadRequest,
    UploadResult,
)
from app.schemas.auth import RepoSelection
from app.services.asset_service import AssetService

logger = logging.getLogger(__name__)

router = APIRouter()


def upstream_failure(
    exc: GitHubException, operation: str, detail: str, not_found: Optional[str] = None
) -> APIException:
    """Map a GitHub failure to the error returned to the client.

    The upstream message is logged, never returned.
    """
    if not_found and exc.is_not_found:
        return NotFoundException(not_found)

    logger.error(f"{operation} error ({exc.status_code}): {exc.detail}")
    return APIException(status_code=500, detail=detail)


@router.get("/assets", response_model=AssetListing)
async def list_assets(
    folder: Optional[str] = Query(None),
    selection: Optional[RepoSelection] = Depends(get_optional_selection),
    assets: AssetService = Depends(get_asset_service),
) -> AssetListing:
    """Files and direct subfolders of one folder, plus every folder path."""
    if selection is None:
        return AssetListing()

    try:
        return await assets.list_assets(selection, folder)
    except GitHubException as e:
        raise upstream_failure(e, "List assets", "Failed to fetch assets") from e


@router.get("/folders", response_model=FolderList)
async def list_folders(
    selection: Optional[RepoSelection] = Depends(get_optional_selection),
    assets: AssetService = Depends(get_asset_service),
) -> FolderList:
    if selection is None:
        return FolderList()

    try:
        return FolderList(folders=await assets.list_folders(selection))
    except GitHubException as e:
        raise upstream_failure(e, "List folders", "Failed to fetch folders") from e


@router.post("/folders", response_model=CreateFolderResult)
async def create_folder(
    body: Optional[CreateFolderRequest] = None,
    selection: RepoSelection = Depends(require_selection("creating folders")),
    assets: AssetService = Depends(get_asset_service),
) -> CreateFolderResult:
    body = body or CreateFolderRequest()
    try:
        folder = await assets.create_folder(selection, body.path)
    except GitHubException as e:
        raise upstream_failure(
            e, "Create folder", "Failed to create folder.", "Repository or branch not found."
        ) from e

    return CreateFolderResult(path=folder)


@router.delete("/folders", response_model=DeleteFolderResult)
async def delete_folder(
    path: Optional[str] = Query(None),
    selection: RepoSelection = Depends(require_selection("deleting folders")),
    assets: AssetService = Depends(get_asset_service),
) -> DeleteFolderResult:
    """Delete every asset under a folder. Not atomic; see AssetService."""
    try:
        deleted = await assets.delete_folder(selection, path)
    except GitHubException as e:
        raise upstream_failure(e, "Delete folder", "Failed to delete folder.") from e

    return DeleteFolderResult(deleted=deleted)


@router.post("/upload", response_model=UploadResult)
async def upload_asset(
    body: Optional[UploadRequest] = None,
    selection: RepoSelection = Depends(require_selection("uploading")),
    assets: AssetService = Depends(get_asset_service),
) -> UploadResult:
    body = body or UploadRequest()
    try:
        return await assets.upload(
            selection,
            folder=body.folder,
            content=body.content,
            name=body.name,
            message=body.message,
        )
    except GitHubException as e:
        raise upstream_failure(
            e, "Upload", "Upload failed", "Repository or branch not found."
        ) from e


@router.post("/assets/move", response_model=MoveResult)
async def move_asset(
    body: Optional[MoveAssetRequest] = None,
    selection: RepoSelection = Depends(require_selection("moving assets")),
    assets: AssetService = Depends(get_asset_service),
) -> MoveResult:
    """Move a file to another folder (copy, then delete the original)."""
    body = body or MoveAssetRequest()
    try:
        return await assets.move_asset(selection, body.path, body.destination_folder)
    except GitHubException as e:
        raise upstream_failure(e, "Move asset", "Failed to move asset.") from e


@router.delete("/assets", response_model=SuccessResponse)
async def delete_asset(
    path: Optional[str] = Query(None),
    sha: Optional[str] = Query(None),
    selection: RepoSelection = Depends(require_selection("deleting assets")),
    assets: AssetService = Depends(get_asset_service),
) -> SuccessResponse:
    try:
        await assets.delete_asset(selection, path, sha)
    except GitHubException as e:
        raise upstream_failure(e, "Delete asset", "Delete failed", "Asset not found.") from e

    return SuccessResponse()


@router.delete("/assets/{name}", response_model=SuccessResponse)
async def delete_root_asset(
    name: str,
    sha: Optional[str] = Query(None),
    selection: RepoSelection = Depends(require_selection("deleting assets")),
    assets: AssetService = Depends(get_asset_service),
) -> SuccessResponse:
    """Delete an asset stored directly in the asset root."""
    try:
        await assets.delete_root_asset(selection, name, sha)
    except GitHubException as e:
        raise upstream_failure(e, "Delete asset", "Delete failed", "Asset not found.") from e

    return SuccessResponse()
