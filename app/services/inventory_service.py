"""Folder/file view over a branch's flat blob tree.

GitHub trees have no notion of an empty folder, so the hierarchy is a
projection over blob paths: every ancestor of a blob is a folder, and a
``.gitkeep`` marker blob keeps an otherwise empty folder visible.
"""

import logging
from typing import Dict, List, Set

from app.schemas.assets import AssetBlobEntry, AssetFile, AssetFolder, AssetInventory
from app.schemas.auth import RepoSelection
from app.services.github_service import GitHubService
from app.utils.asset_paths import (
    DEFAULT_ASSETS_ROOT,
    FOLDER_MARKER_NAME,
    add_folder_with_ancestors,
    file_name_from_path,
    join_asset_repo_path,
    normalize_asset_relative_path,
    parent_folder_path,
    quote_repo_path,
)

logger = logging.getLogger(__name__)


def to_raw_github_url(raw_base_url: str, selection: RepoSelection, repo_path: str) -> str:
    return (
        f"{raw_base_url}/{selection.owner}/{selection.repo}/{selection.branch}/"
        f"{quote_repo_path(repo_path)}"
    )


def to_cdn_url(cdn_base_url: str, selection: RepoSelection, repo_path: str) -> str:
    return f"{cdn_base_url}/{selection.owner}/{selection.repo}@{selection.branch}/{repo_path}"


def filter_asset_blobs(
    tree_entries: List[Dict], assets_root: str = DEFAULT_ASSETS_ROOT
) -> List[AssetBlobEntry]:
    """Keep blobs under the asset root whose relative path is valid."""
    entries = []
    prefix = f"{assets_root}/"

    for node in tree_entries:
        if node.get("type") != "blob":
            continue

        path = node.get("path")
        sha = node.get("sha")
        if not path or not sha or not path.startswith(prefix):
            continue

        relative_path = normalize_asset_relative_path(path, assets_root)
        if not relative_path:
            logger.debug(f"Skipping blob with unsupported path: {path!r}")
            continue

        entries.append(
            AssetBlobEntry(
                repo_path=join_asset_repo_path(relative_path, assets_root),
                relative_path=relative_path,
                sha=sha,
                size=node.get("size") or 0,
            )
        )

    return entries


async def get_asset_blob_entries(
    github: GitHubService, selection: RepoSelection, assets_root: str = DEFAULT_ASSETS_ROOT
) -> List[AssetBlobEntry]:
    """Fetch the branch's recursive tree and keep the asset blobs.

    A missing repository or branch surfaces as a ``GitHubException`` with
    status 404; callers decide whether that means "empty".
    """
    tree_sha = await github.get_branch_tree_sha(selection.owner, selection.repo, selection.branch)
    tree_data = await github.get_tree(selection.owner, selection.repo, tree_sha, recursive=True)
    return filter_asset_blobs(tree_data.get("tree", []), assets_root)


def build_asset_inventory(
    selection: RepoSelection,
    blob_entries: List[AssetBlobEntry],
    raw_base_url: str = "https://raw.githubusercontent.com",
) -> AssetInventory:
    files: List[AssetFile] = []
    folder_set: Set[str] = set()

    for entry in blob_entries:
        file_name = file_name_from_path(entry.relative_path)
        folder_path = parent_folder_path(entry.relative_path)
        add_folder_with_ancestors(folder_set, folder_path)

        if file_name == FOLDER_MARKER_NAME:
            continue

        files.append(
            AssetFile(
                name=file_name,
                path=entry.relative_path,
                folder=folder_path,
                sha=entry.sha,
                size=entry.size,
                download_url=to_raw_github_url(raw_base_url, selection, entry.repo_path),
            )
        )

    files.sort(key=lambda asset: asset.path)

    folders = [
        AssetFolder(
            path=folder_path,
            name=file_name_from_path(folder_path),
            parent=parent_folder_path(folder_path) or None,
        )
        for folder_path in sorted(folder_set)
    ]

    return AssetInventory(files=files, folders=folders)
