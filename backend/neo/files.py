"""Helpers behind the fragment file explorer: tree, breadcrumbs, languages."""

from typing import Any, Union

TreeItem = Union[str, list[Any]]

MAX_BREADCRUMB_SEGMENTS = 4
ELLIPSIS = "..."


def convert_files_to_tree(files: dict[str, str]) -> list[TreeItem]:
    """Turn flat paths into tree items.

    A file is its name; a folder is `[name, *children]`. Entries keep the order
    in which they first appear among the sorted paths. A file and a folder may
    share a name; both are kept.

    >>> convert_files_to_tree({"app/page.tsx": "", "README.md": ""})
    ['README.md', ['app', 'page.tsx']]
    """
    # Keyed by (name, is_folder)
    tree: dict[tuple[str, bool], Any] = {}
    for path in sorted(files):
        parts = path.split("/")
        node = tree
        for part in parts[:-1]:
            node = node.setdefault((part, True), {})
        node.setdefault((parts[-1], False), None)
    return _convert_node(tree)


def _convert_node(node: dict[tuple[str, bool], Any]) -> list[TreeItem]:
    items: list[TreeItem] = []
    for (name, is_folder), child in node.items():
        if is_folder:
            items.append([name, *_convert_node(child)])
        else:
            items.append(name)
    return items


def breadcrumb_segments(
    file_path: str, max_segments: int = MAX_BREADCRUMB_SEGMENTS
) -> list[dict[str, Any]]:
    """Breadcrumb items for a path, collapsing the middle of deep paths."""
    segments = file_path.split("/")
    if len(segments) <= max_segments:
        return [
            {"label": segment, "is_current": i == len(segments) - 1, "is_ellipsis": False}
            for i, segment in enumerate(segments)
        ]
    return [
        {"label": segments[0], "is_current": False, "is_ellipsis": False},
        {"label": ELLIPSIS, "is_current": False, "is_ellipsis": True},
        {"label": segments[-1], "is_current": True, "is_ellipsis": False},
    ]


# app.tsx => tsx
def language_from_extension(filename: str) -> str:
    name = filename.rsplit("/", 1)[-1]
    extension = name.rsplit(".", 1)[-1].lower()
    return extension or "text"


def default_selected_file(files: dict[str, str]) -> str | None:
    return next(iter(files), None)
