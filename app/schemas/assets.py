from pydantic import BaseModel, Field
from typing import Any, List, Optional


class AssetBlobEntry(BaseModel):
    """A blob from the branch tree that lives under the asset root."""

    repo_path: str
    relative_path: str
    sha: str
    size: int = 0


class AssetFile(BaseModel):
    name: str
    path: str
    folder: str
    sha: str
    size: int
    download_url: str


class AssetFolder(BaseModel):
    path: str
    name: str
    parent: Optional[str] = None


class AssetInventory(BaseModel):
    """Folder/file hierarchy reconstructed from the flat blob tree."""

    files: List[AssetFile] = Field(default_factory=list)
    folders: List[AssetFolder] = Field(default_factory=list)


class ListedAsset(AssetFile):
    cdn_url: str


class FolderLink(BaseModel):
    name: str
    path: str


class AssetListing(BaseModel):
    """Response of ``GET /api/assets`` for one folder."""

    current_folder: str = ""
    folders: List[FolderLink] = Field(default_factory=list)
    files: List[ListedAsset] = Field(default_factory=list)
    all_folders: List[str] = Field(default_factory=list)


class FolderList(BaseModel):
    folders: List[AssetFolder] = Field(default_factory=list)


# Request bodies keep loosely typed fields so the path normalizers, not the
# schema layer, decide what is valid and which error message applies.


class CreateFolderRequest(BaseModel):
    path: Any = None


class UploadRequest(BaseModel):
    folder: Any = None
    name: Any = None
    content: Any = None
    message: Any = None


class MoveAssetRequest(BaseModel):
    path: Any = None
    destination_folder: Any = None


class UploadResult(BaseModel):
    success: bool = True
    name: str
    path: str
    folder: str
    cdn_url: str


class MoveResult(BaseModel):
    success: bool = True
    path: str
    folder: str
    cdn_url: str


class CreateFolderResult(BaseModel):
    success: bool = True
    path: str


class DeleteFolderResult(BaseModel):
    success: bool = True
    deleted: int


class SuccessResponse(BaseModel):
    success: bool = True
