"""
KStorOptions and store path resolution.

Default layout (relative to the user's home directory):

    ~/.kstor/
        <app name>/
            config.json     # default store file
            custom.json     # KStorOptions(name="custom")
        mydir/
            conf.json       # KStorOptions(name="mydir/conf.json")

A user supplied `dir` replaces `~/.kstor` entirely:

    KStorOptions(name="conf.json", dir="./.configs")  ->  ./.configs/conf.json
"""

import os
import re
import tomllib
from collections.abc import Callable
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

DEFAULT_NAME = "config.json"
DEFAULT_EXTENSION = ".json"
STORE_DIRNAME = ".kstor"

_PROJECT_FILENAME = "pyproject.toml"
_HAS_EXTENSION = re.compile(r"\..+$")

Transform = Callable[[str, Any], Any]


@dataclass
class KStorOptions:
    """
    Options recognized by KStor.

    Attributes:
        name: File name, optionally with a sub-directory. Defaults to config.json.
        dir: Directory to store the file in. Defaults to ~/.kstor/<app name>.
        entrypoint: Path prefix that becomes the visible root of the store.
        encryption_key: When set, the document is encrypted at rest.
        transform: Called as transform(key, value) for each top-level field on load.
        strict: Raise DocumentDecodeError instead of falling back to an empty
            document when the file cannot be decoded.
    """

    name: str | None = None
    dir: str | None = None
    entrypoint: str | None = None
    encryption_key: str | None = None
    transform: Transform | None = None
    strict: bool = False

    def __post_init__(self) -> None:
        for attr in ("name", "dir", "entrypoint", "encryption_key"):
            value = getattr(self, attr)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(f"{attr} must be a string, got {type(value).__name__}")
            if not value.strip():
                raise ValueError(f"{attr} cannot be empty")

        if self.transform is not None and not callable(self.transform):
            raise ValueError(
                f"transform must be callable, got {type(self.transform).__name__}"
            )

    @classmethod
    def coerce(cls, options: "KStorOptions | dict | str | None") -> "KStorOptions":
        """
        Build options from the forms accepted by the store constructor.

        A string is taken as the store name; a dict may use the same field
        names as this class (camelCase `encryptionKey` is accepted too).
        """
        if options is None:
            return cls()
        if isinstance(options, KStorOptions):
            return options
        if isinstance(options, str):
            return cls(name=options)
        if isinstance(options, dict):
            known = {f.name for f in fields(cls)}
            kwargs = {}
            for key, value in options.items():
                attr = "encryption_key" if key == "encryptionKey" else key
                if attr not in known:
                    raise ValueError(f"Unknown option: {key}")
                kwargs[attr] = value
            return cls(**kwargs)
        raise ValueError(f"Unsupported options type: {type(options).__name__}")


def discover_app_name(cwd: str | None = None) -> str:
    """
    Name of the enclosing project.

    Reads `[project].name` from pyproject.toml in `cwd`, falling back to
    the base name of `cwd`.
    """
    cwd = cwd or os.getcwd()
    project_file = Path(cwd) / _PROJECT_FILENAME
    try:
        with open(project_file, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        data = {}

    name = data.get("project", {}).get("name")
    if isinstance(name, str) and name.strip():
        return name
    return os.path.basename(os.path.abspath(cwd))


def resolve_store_path(
    options: KStorOptions,
    app_name: str | None = None,
    home: str | None = None,
    cwd: str | None = None,
) -> str:
    """
    Resolve the file path a store persists to.

    Args:
        options: Store options (only `name` and `dir` are used).
        app_name: Project name; discovered from the working directory if None.
        home: Home directory; defaults to the current user's.
        cwd: Directory app name discovery starts from; defaults to os.getcwd().

    Returns:
        The store file path.
    """
    name = options.name or DEFAULT_NAME
    folder, base = os.path.split(name)

    if not _HAS_EXTENSION.search(base):
        base += DEFAULT_EXTENSION

    if options.dir is not None:
        return os.path.join(options.dir, folder, base)

    if not folder:
        folder = app_name or discover_app_name(cwd)
    root = home or os.path.expanduser("~")
    return os.path.join(root, STORE_DIRNAME, folder, base)
