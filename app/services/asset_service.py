import base64
import binascii
import logging
import re
import secrets
import time
from typing import Any, List, Optional

from app.config import Settings
from app.exceptions import (
    ConflictException,
    GitHubException,
    NotFoundException,
    ValidationException,
)
from app.schemas.assets import (
    AssetFolder,
    AssetInventory,
    AssetListing,
    FolderLink,
    ListedAsset,
    MoveResult,
    UploadResult,
)
from app.schemas.auth import RepoSelection
from app.services.github_service import ContentStatus, GitHubService
from app.services.inventory_service import (
    build_asset_inventory,
    get_asset_blob_entries,
    to_cdn_url,
)
from app.utils.asset_paths import (
    FOLDER_MARKER_NAME,
    file_name_from_path,
    join_asset_repo_path,
    join_relative_path,
    normalize_asset_relative_path,
    normalize_folder_path,
    sanitize_asset_name,
    sanitize_path_segment,
)

logger = logging.getLogger(__name__)

FOLDER_MARKER_CONTENT = base64.b64encode(b"gitcdn-folder\n").decode()

MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "application/pdf": "pdf",
    "text/plain": "txt",
    "application/json": "json",
}

_EXTENSION_PATTERN = re.compile(r"^[a-z0-9]{1,10}$")
_DATA_URL_MIME_PATTERN = re.compile(r"^data:([^;,]+)[;,]", re.IGNORECASE)


def extract_extension_from_name(name: Optional[str]) -> Optional[str]:
    if not name:
        return None

    index = name.rfind(".")
    if index <= 0 or index == len(name) - 1:
        return None

    extension = name[index + 1 :].lower()
    if not _EXTENSION_PATTERN.match(extension):
        return None

    return extension


def extract_mime_type(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None

    match = _DATA_URL_MIME_PATTERN.match(value)
    if not match:
        return None

    return match.group(1).lower()


def extension_from_mime_type(mime_type: Optional[str]) -> Optional[str]:
    if not mime_type:
        return None
    return MIME_EXTENSIONS.get(mime_type)


def generate_anonymous_asset_name(original_name: Optional[str], encoded_content: Any) -> str:
    """Build ``<epoch millis>-<16 hex>[.ext]`` for uploads without a usable name."""
    extension = extract_extension_from_name(original_name) or extension_from_mime_type(
        extract_mime_type(encoded_content)
    )
    base_name = f"{int(time.time() * 1000)}-{secrets.token_hex(8)}"
    return f"{base_name}.{extension}" if extension else base_name


def extract_base64_payload(value: Any) -> Optional[str]:
    """Return the part of a data URL after the first comma."""
    if not isinstance(value, str):
        return None

    index = value.find(",")
    if index <= 0 or index == len(value) - 1:
        return None

    return value[index + 1 :]


def is_valid_base64(payload: str) -> bool:
    try:
        base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def decoded_size(payload: str) -> int:
    """Byte length of a base64 payload once decoded."""
    compact = "".join(payload.split())
    return len(compact) * 3 // 4 - len(compact) + len(compact.rstrip("="))


class AssetService:
    """Bucket operations on the asset root of one repository branch.

    Every identifier from a request is normalized here before it reaches
    a GitHub path. Domain failures raise ``ValidationException``,
    ``NotFoundException`` or ``ConflictException``; upstream failures
    propagate as ``GitHubException``.
    """

    def __init__(self, github: GitHubService, settings: Settings):
        self.github = github
        self.settings = settings
        self.assets_root = settings.ASSETS_ROOT_PATH

    def _repo_path(self, relative_path: str) -> str:
        return join_asset_repo_path(relative_path, self.assets_root)

    def _cdn_url(self, selection: RepoSelection, repo_path: str) -> str:
        return to_cdn_url(self.settings.CDN_BASE_URL, selection, repo_path)

    def _commit_message(self, action: str) -> str:
        return f"{action} via {self.settings.PROJECT_NAME}"

    def normalize_folder(self, value: Any, field: str = "folder") -> str:
        folder = normalize_folder_path(value, self.assets_root)
        if folder is None:
            raise ValidationException(f"Invalid {field} path.")
        return folder

    async def build_inventory(self, selection: RepoSelection) -> AssetInventory:
        """Reconstruct the folder/file hierarchy of the asset root.

        A 404 on the branch or tree means nothing has been stored yet and
        yields an empty inventory.
        """
        try:
            blob_entries = await get_asset_blob_entries(self.github, selection, self.assets_root)
        except GitHubException as e:
            if e.is_not_found:
                logger.info(f"No asset tree for {selection.full_name}@{selection.branch}")
                return AssetInventory()
            raise

        return build_asset_inventory(selection, blob_entries, self.settings.RAW_BASE_URL)

    async def list_assets(self, selection: RepoSelection, folder: Any) -> AssetListing:
        requested_folder = self.normalize_folder(folder)
        inventory = await self.build_inventory(selection)

        child_folders = [
            FolderLink(name=entry.name, path=entry.path)
            for entry in inventory.folders
            if (entry.parent or "") == requested_folder
        ]

        folder_files = [
            ListedAsset(
                **asset.model_dump(),
                cdn_url=self._cdn_url(selection, self._repo_path(asset.path)),
            )
            for asset in inventory.files
            if asset.folder == requested_folder
        ]

        return AssetListing(
            current_folder=requested_folder,
            folders=child_folders,
            files=folder_files,
            all_folders=[entry.path for entry in inventory.folders],
        )

    async def list_folders(self, selection: RepoSelection) -> List[AssetFolder]:
        inventory = await self.build_inventory(selection)
        return inventory.folders

    async def create_folder(self, selection: RepoSelection, path: Any) -> str:
        """Make a folder visible by writing its ``.gitkeep`` marker blob."""
        folder = normalize_folder_path(path, self.assets_root)
        if not folder:
            raise ValidationException("Folder path is required.")

        marker_path = self._repo_path(join_relative_path(folder, FOLDER_MARKER_NAME))
        await self.github.put_file(
            selection.owner,
            selection.repo,
            marker_path,
            selection.branch,
            self._commit_message(f"Create folder {folder}"),
            FOLDER_MARKER_CONTENT,
        )
        return folder

    def resolve_upload_name(self, name: Any, content: Any) -> str:
        original_name = sanitize_asset_name(name)
        if original_name and sanitize_path_segment(original_name):
            return original_name
        return generate_anonymous_asset_name(original_name, content)

    async def upload(
        self,
        selection: RepoSelection,
        folder: Any,
        content: Any,
        name: Any = None,
        message: Any = None,
    ) -> UploadResult:
        folder_path = self.normalize_folder(folder)

        base64_content = extract_base64_payload(content)
        if not base64_content or not is_valid_base64(base64_content):
            raise ValidationException("Invalid upload payload.")

        if decoded_size(base64_content) > self.settings.MAX_UPLOAD_BYTES:
            raise ValidationException("Upload payload is too large.")

        asset_name = self.resolve_upload_name(name, content)
        if isinstance(message, str) and message.strip():
            commit_message = message.strip()
        else:
            commit_message = self._commit_message(f"Upload {asset_name}")

        relative_path = join_relative_path(folder_path, asset_name)
        repo_path = self._repo_path(relative_path)

        # Re-uploading under an existing name updates that blob
        existing_sha = await self.github.get_file_sha(
            selection.owner, selection.repo, repo_path, selection.branch
        )

        await self.github.put_file(
            selection.owner,
            selection.repo,
            repo_path,
            selection.branch,
            commit_message,
            base64_content,
            sha=existing_sha,
        )

        return UploadResult(
            name=asset_name,
            path=relative_path,
            folder=folder_path,
            cdn_url=self._cdn_url(selection, repo_path),
        )

    async def delete_asset(self, selection: RepoSelection, path: Any, sha: Any) -> str:
        """Delete one blob; GitHub refuses if ``sha`` is not the current one."""
        asset_path = normalize_asset_relative_path(path, self.assets_root)
        if not asset_path:
            raise ValidationException("path query param is required.")

        blob_sha = sha.strip() if isinstance(sha, str) else ""
        if not blob_sha:
            raise ValidationException("sha query param is required.")

        await self.github.delete_file(
            selection.owner,
            selection.repo,
            self._repo_path(asset_path),
            selection.branch,
            self._commit_message(f"Delete {asset_path}"),
            blob_sha,
        )
        return asset_path

    async def delete_root_asset(self, selection: RepoSelection, name: Any, sha: Any) -> str:
        """Delete a blob that sits directly in the asset root, by name."""
        asset_name = sanitize_asset_name(name)
        if not asset_name or not sanitize_path_segment(asset_name):
            raise ValidationException("Invalid asset name.")

        return await self.delete_asset(selection, asset_name, sha)

    async def delete_folder(self, selection: RepoSelection, path: Any) -> int:
        """Delete every blob under a folder, one commit per blob.

        Not atomic: if a delete fails partway the earlier deletes stand and
        the error propagates. Re-running only touches what is left.
        """
        folder = normalize_folder_path(path, self.assets_root)
        if not folder:
            raise ValidationException("Folder path query param is required.")

        try:
            blob_entries = await get_asset_blob_entries(
                self.github, selection, self.assets_root
            )
        except GitHubException as e:
            if e.is_not_found:
                raise NotFoundException("Folder not found or empty.") from e
            raise

        prefix = f"{folder}/"
        entries_to_delete = [
            entry for entry in blob_entries if entry.relative_path.startswith(prefix)
        ]

        if not entries_to_delete:
            raise NotFoundException("Folder not found or empty.")

        deleted = 0
        message = self._commit_message(f"Delete {folder}")
        for entry in entries_to_delete:
            try:
                await self.github.delete_file(
                    selection.owner,
                    selection.repo,
                    entry.repo_path,
                    selection.branch,
                    message,
                    entry.sha,
                )
            except GitHubException:
                logger.error(
                    f"Folder delete of {folder} stopped after {deleted} of "
                    f"{len(entries_to_delete)} blobs"
                )
                raise
            deleted += 1

        return deleted

    async def move_asset(
        self, selection: RepoSelection, path: Any, destination_folder: Any
    ) -> MoveResult:
        """Move a file by copying it to the destination and deleting the source.

        Both copies exist if the final delete fails; the error propagates
        and no compensation is attempted.
        """
        source_path = normalize_asset_relative_path(path, self.assets_root)
        if not source_path:
            raise ValidationException("Invalid source asset path.")

        destination = normalize_folder_path(destination_folder, self.assets_root)
        if destination is None:
            raise ValidationException("Invalid destination folder path.")

        target_path = join_relative_path(destination, file_name_from_path(source_path))
        if target_path == source_path:
            raise ValidationException("Source and destination are the same.")

        source_repo_path = self._repo_path(source_path)
        target_repo_path = self._repo_path(target_path)

        status = await self.github.content_exists(
            selection.owner, selection.repo, target_repo_path, selection.branch
        )
        if status is ContentStatus.EXISTS:
            raise ConflictException("A file already exists in the destination folder.")

        try:
            source_file = await self.github.get_content(
                selection.owner, selection.repo, source_repo_path, selection.branch
            )
        except GitHubException as e:
            if e.is_not_found:
                raise NotFoundException("Source asset not found.") from e
            raise

        if not isinstance(source_file, dict) or source_file.get("type") != "file":
            raise ValidationException("Source path must be a file.")

        content = (source_file.get("content") or "").replace("\n", "")
        if not content or source_file.get("encoding") != "base64":
            raise GitHubException(
                status_code=500, detail="Could not read source file content."
            )

        await self.github.put_file(
            selection.owner,
            selection.repo,
            target_repo_path,
            selection.branch,
            self._commit_message(f"Move {source_path} to {target_path}"),
            content,
        )

        try:
            await self.github.delete_file(
                selection.owner,
                selection.repo,
                source_repo_path,
                selection.branch,
                self._commit_message(f"Delete {source_path} after move"),
                source_file["sha"],
            )
        except GitHubException:
            logger.error(
                f"Move of {source_path} copied to {target_path} but the source "
                f"could not be deleted"
            )
            raise

        return MoveResult(
            path=target_path,
            folder=destination,
            cdn_url=self._cdn_url(selection, target_repo_path),
        )
