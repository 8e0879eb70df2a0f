from app.schemas.assets import AssetBlobEntry
from app.services.inventory_service import (
    build_asset_inventory,
    filter_asset_blobs,
    get_asset_blob_entries,
    to_cdn_url,
)

from conftest import MockGitHubService


def tree_node(path, node_type="blob", sha="s", size=1):
    return {"path": path, "type": node_type, "sha": sha, "size": size}


def test_gitkeep_contributes_folder_not_file(selection):
    entries = filter_asset_blobs(
        [
            tree_node("assets/x.png"),
            tree_node("assets/a/b/y.png"),
            tree_node("assets/a/.gitkeep"),
        ]
    )
    inventory = build_asset_inventory(selection, entries)

    assert {folder.path for folder in inventory.folders} == {"a", "a/b"}
    assert {(asset.name, asset.folder) for asset in inventory.files} == {
        ("x.png", ""),
        ("y.png", "a/b"),
    }


def test_folder_names_and_parents(selection):
    entries = filter_asset_blobs([tree_node("assets/a/b/c/deep.txt")])
    folders = build_asset_inventory(selection, entries).folders

    assert [(f.path, f.name, f.parent) for f in folders] == [
        ("a", "a", None),
        ("a/b", "b", "a"),
        ("a/b/c", "c", "a/b"),
    ]


def test_files_and_folders_sorted(selection):
    entries = filter_asset_blobs(
        [
            tree_node("assets/z.png"),
            tree_node("assets/b/2.png"),
            tree_node("assets/a.png"),
            tree_node("assets/b/1.png"),
            tree_node("assets/a/.gitkeep"),
        ]
    )
    inventory = build_asset_inventory(selection, entries)

    assert [asset.path for asset in inventory.files] == ["a.png", "b/1.png", "b/2.png", "z.png"]
    assert [folder.path for folder in inventory.folders] == ["a", "b"]


def test_filter_skips_trees_outside_root_and_invalid_paths():
    entries = filter_asset_blobs(
        [
            tree_node("assets", node_type="tree"),
            tree_node("assets/sub", node_type="tree"),
            tree_node("README.md"),
            tree_node("assetsx/file.png"),
            tree_node("assets/bad$name.png"),
            tree_node("assets/ok.png", sha="abc", size=10),
            tree_node("assets/nosha.png", sha=None),
            {"type": "blob", "sha": "x"},
        ]
    )

    assert entries == [
        AssetBlobEntry(repo_path="assets/ok.png", relative_path="ok.png", sha="abc", size=10)
    ]


def test_missing_size_defaults_to_zero():
    [entry] = filter_asset_blobs([tree_node("assets/a.png", size=None)])
    assert entry.size == 0


def test_download_and_cdn_urls(selection):
    entries = filter_asset_blobs([tree_node("assets/My Folder/a b.png")])
    [asset] = build_asset_inventory(selection, entries).files

    assert asset.download_url == (
        "https://raw.githubusercontent.com/octo/bucket/main/assets/My%20Folder/a%20b.png"
    )
    assert to_cdn_url("https://cdn.jsdelivr.net/gh", selection, "assets/x.png") == (
        "https://cdn.jsdelivr.net/gh/octo/bucket@main/assets/x.png"
    )


async def test_blob_entries_use_one_recursive_tree_call(selection):
    github = MockGitHubService({"assets/a/x.png": "eA==", "docs/readme.md": "eA=="})
    entries = await get_asset_blob_entries(github, selection)

    assert [entry.relative_path for entry in entries] == ["a/x.png"]
    assert [call[1] for call in github.calls] == [
        "/repos/octo/bucket/branches/main",
        "/repos/octo/bucket/git/trees/tree-sha",
    ]
