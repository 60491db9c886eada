"""Classification of paths reported by dependency queries.

Query output mixes real workspace files with labels that can never be
watched locally: files from external repositories, ``//external`` aliases
and the placeholder build file bazel reports for its default tools. The
predicates here separate those from real source and turn labels into
filesystem paths.
"""

from pathlib import PurePath

# https://github.com/bazelbuild/bazel/blob/master/tools/defaults/BUILD
DEFAULT_TOOLS_BUILDFILE = "//tools/defaults:BUILD"

EXTERNAL_WORKSPACE_MARKER = "@"
ALIAS_ROOT = "//external"

BUILDFILE_NAMES: frozenset[str] = frozenset({"BUILD", "BUILD.bazel"})
BUILDFILE_SUFFIXES: frozenset[str] = frozenset({".bzl"})


def is_default_tools_buildfile(path: str) -> bool:
    """Return True for the default tools placeholder build file."""
    return path == DEFAULT_TOOLS_BUILDFILE


def is_external_workspace(path: str) -> bool:
    """Return True for labels in an external repository (``@repo//...``)."""
    return path.startswith(EXTERNAL_WORKSPACE_MARKER)


def is_aliased(path: str) -> bool:
    """Return True for labels under the ``//external`` alias root."""
    return path.startswith(ALIAS_ROOT)


def is_watchable(path: str) -> bool:
    """Return True if a query result refers to local, user-editable source."""
    return not (
        is_external_workspace(path)
        or is_aliased(path)
        or is_default_tools_buildfile(path)
    )


def normalize(path: str) -> str:
    """Convert a query label into a workspace-relative filesystem path.

    Examples:
        >>> normalize("//pkg:file.go")
        'pkg/file.go'
        >>> normalize("//:file.go")
        'file.go'
    """
    return path.removeprefix("//:").removeprefix("//").replace(":", "/")


def is_build_definition_file(path: str) -> bool:
    """Return True if a changed path is a build file or a Starlark extension.

    Args:
        path: A filesystem path, absolute or relative.

    Returns:
        True when the final component is a canonical build file name or
        carries a build extension suffix.
    """
    name = PurePath(path).name
    if name in BUILDFILE_NAMES:
        return True
    return PurePath(name).suffix in BUILDFILE_SUFFIXES
