import pytest

from app.utils.asset_paths import (
    add_folder_with_ancestors,
    file_name_from_path,
    join_asset_repo_path,
    normalize_asset_relative_path,
    normalize_folder_path,
    parent_folder_path,
    quote_repo_path,
    sanitize_asset_name,
    sanitize_path_segment,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ""),
        ("", ""),
        ("   ", ""),
        ("/", ""),
        ("assets", ""),
        ("assets/", ""),
        ("a/b", "a/b"),
        ("a//b/", "a/b"),
        ("/a/b/", "a/b"),
        ("assets/a/b", "a/b"),
        ("a\\b", "a/b"),
        (" a / b ", "a/b"),
        ("My Folder/v1.2_final-x", "My Folder/v1.2_final-x"),
        ("assetsfolder", "assetsfolder"),
    ],
)
def test_normalize_folder_path_valid(value, expected):
    assert normalize_folder_path(value) == expected


@pytest.mark.parametrize(
    "value",
    [
        "assets/a/../b",
        "..",
        "a/./b",
        "a/b$c",
        "a/<script>",
        "a/" + "x" * 129,
        "ünïcode",
        123,
        ["a"],
    ],
)
def test_normalize_folder_path_invalid(value):
    assert normalize_folder_path(value) is None


def test_normalize_folder_path_custom_root():
    assert normalize_folder_path("static/img", assets_root="static") == "img"
    assert normalize_folder_path("static", assets_root="static") == ""


def test_segment_length_limit():
    assert normalize_folder_path("x" * 128) == "x" * 128


@pytest.mark.parametrize(
    "value, expected",
    [
        ("logo.png", "logo.png"),
        ("assets/logo.png", "logo.png"),
        ("a/b/logo.png", "a/b/logo.png"),
        ("/a//logo.png/", "a/logo.png"),
    ],
)
def test_normalize_asset_relative_path_valid(value, expected):
    assert normalize_asset_relative_path(value) == expected


@pytest.mark.parametrize(
    "value",
    [None, "", "  ", "/", "assets", "assets/", "a/../logo.png", "../logo.png", "a/b?.png", 7],
)
def test_normalize_asset_relative_path_invalid(value):
    assert normalize_asset_relative_path(value) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("logo.png", "logo.png"),
        ("  logo.png  ", "logo.png"),
        ("../../etc/passwd", None),
        ("a\\b.png", None),
        (".", None),
        ("..", None),
        ("", None),
        (None, None),
    ],
)
def test_sanitize_asset_name(value, expected):
    assert sanitize_asset_name(value) == expected


def test_sanitize_path_segment():
    assert sanitize_path_segment("file name.png") == "file name.png"
    assert sanitize_path_segment("..") is None
    assert sanitize_path_segment("a:b") is None


def test_path_helpers():
    assert parent_folder_path("a/b/c.png") == "a/b"
    assert parent_folder_path("c.png") == ""
    assert file_name_from_path("a/b/c.png") == "c.png"
    assert file_name_from_path("c.png") == "c.png"
    assert join_asset_repo_path("a/c.png") == "assets/a/c.png"
    assert join_asset_repo_path("") == "assets"
    assert quote_repo_path("assets/My Folder/a b.png") == "assets/My%20Folder/a%20b.png"


def test_add_folder_with_ancestors():
    folders = set()
    add_folder_with_ancestors(folders, "a/b/c")
    add_folder_with_ancestors(folders, "")
    assert folders == {"a", "a/b", "a/b/c"}
