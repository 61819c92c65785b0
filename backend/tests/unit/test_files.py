from neo.files import breadcrumb_segments
from neo.files import convert_files_to_tree
from neo.files import default_selected_file
from neo.files import language_from_extension


def test_convert_files_to_tree_nests_folders() -> None:
    files = {
        "app/page.tsx": "",
        "app/layout.tsx": "",
        "components/ui/button.tsx": "",
        "README.md": "",
    }
    assert convert_files_to_tree(files) == [
        "README.md",
        ["app", "layout.tsx", "page.tsx"],
        ["components", ["ui", "button.tsx"]],
    ]


def test_convert_files_to_tree_empty() -> None:
    assert convert_files_to_tree({}) == []


def test_convert_files_to_tree_keeps_file_and_folder_with_same_name() -> None:
    files = {"app/page.tsx": "", "app": "", "app/lib/utils.ts": ""}
    assert convert_files_to_tree(files) == [
        "app",
        ["app", ["lib", "utils.ts"], "page.tsx"],
    ]


def test_breadcrumbs_short_path_keeps_every_segment() -> None:
    crumbs = breadcrumb_segments("app/components/card.tsx")
    assert [c["label"] for c in crumbs] == ["app", "components", "card.tsx"]
    assert [c["is_current"] for c in crumbs] == [False, False, True]
    assert not any(c["is_ellipsis"] for c in crumbs)


def test_breadcrumbs_long_path_collapses_middle() -> None:
    crumbs = breadcrumb_segments("src/app/components/ui/forms/input.tsx")
    assert [c["label"] for c in crumbs] == ["src", "...", "input.tsx"]
    assert crumbs[1]["is_ellipsis"]
    assert crumbs[2]["is_current"]


def test_breadcrumbs_exactly_max_segments() -> None:
    crumbs = breadcrumb_segments("a/b/c/d.ts")
    assert [c["label"] for c in crumbs] == ["a", "b", "c", "d.ts"]


def test_language_from_extension() -> None:
    assert language_from_extension("app/page.tsx") == "tsx"
    assert language_from_extension("styles/Globals.CSS") == "css"
    assert language_from_extension("archive.tar.gz") == "gz"
    # No dot: the whole basename is returned
    assert language_from_extension("Makefile") == "makefile"
    assert language_from_extension("notes.") == "text"


def test_default_selected_file() -> None:
    assert default_selected_file({"b.ts": "", "a.ts": ""}) == "b.ts"
    assert default_selected_file({}) is None
