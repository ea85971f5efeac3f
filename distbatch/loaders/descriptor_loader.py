"""Read package build descriptors from a distribution tree.

Layout::

    pkgs/
      bison/build.yaml
      glibc/build.yaml
      ...

Each package directory holds one YAML descriptor; the directory name is the
package name::

    version: "3.0.5-3"         # a string; quote number-like versions such as "1.10"
    builder: c                 # optional, expands to the configured builder deps
    deps: [m4-1.4.18-3]
    builder_deps: []           # extra tools, on top of the builder kind's
    runtime_deps: []
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from distbatch.core.domain.descriptor import PackageDescriptor
from distbatch.core.exceptions import DescriptorError, ResourceNotFoundError
from distbatch.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DESCRIPTOR_NAME = "build.yaml"

_LIST_KEYS = ("deps", "builder_deps", "runtime_deps")


def _string_list(path: Path, data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise DescriptorError(str(path), f"'{key}' must be a list of package names")
    return value


def load_descriptor(
    path: str | Path,
    package: str,
    builders: Mapping[str, list[str]] | None = None,
) -> PackageDescriptor:
    """Parse one build descriptor.

    Parameters
    ----------
    path : str | Path
        Descriptor file
    package : str
        Package name the descriptor belongs to
    builders : Mapping[str, list[str]] | None
        Builder kind -> dependencies every build of that kind needs

    Raises
    ------
    DescriptorError
        If the file cannot be read or parsed, or its content is invalid
    """
    path = Path(path)
    builders = builders or {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise DescriptorError(str(path), str(e)) from e
    except yaml.YAMLError as e:
        raise DescriptorError(str(path), f"YAML parsing error: {e}") from e

    if not isinstance(data, dict):
        raise DescriptorError(str(path), "descriptor must be a mapping")
    if "version" not in data:
        raise DescriptorError(str(path), "'version' is required")
    if not isinstance(data["version"], str):
        # An unquoted 1.10 has already been read as the float 1.1
        raise DescriptorError(
            str(path), f"'version' must be a quoted string, got {data['version']!r}"
        )
    unknown = set(data) - {"version", "builder", *_LIST_KEYS}
    if unknown:
        logger.warning(
            "{path}: ignoring unknown keys {keys}", path=str(path), keys=sorted(unknown)
        )

    builder = data.get("builder")
    builder_deps: list[str] = []
    if builder is not None:
        if builder not in builders:
            raise DescriptorError(
                str(path),
                f"unknown builder '{builder}' (configured: {', '.join(sorted(builders)) or 'none'})",
            )
        builder_deps.extend(builders[builder])
    builder_deps.extend(_string_list(path, data, "builder_deps"))

    try:
        return PackageDescriptor(
            package=package,
            version=data["version"],
            build_deps=_string_list(path, data, "deps"),
            builder_deps=builder_deps,
            runtime_deps=_string_list(path, data, "runtime_deps"),
            builder=builder,
        )
    except PydanticValidationError as e:
        raise DescriptorError(str(path), str(e)) from e


def load_descriptors(
    pkgs_dir: str | Path,
    descriptor_name: str = DEFAULT_DESCRIPTOR_NAME,
    builders: Mapping[str, list[str]] | None = None,
) -> list[PackageDescriptor]:
    """Load the descriptor of every package directory below ``pkgs_dir``.

    Directories are visited in sorted order; ones without a descriptor are
    skipped.

    Raises
    ------
    ResourceNotFoundError
        If ``pkgs_dir`` does not exist
    DescriptorError
        If any descriptor is invalid
    """
    pkgs_dir = Path(pkgs_dir)
    if not pkgs_dir.is_dir():
        raise ResourceNotFoundError("packages directory", str(pkgs_dir))

    descriptors = []
    for entry in sorted(pkgs_dir.iterdir()):
        if not entry.is_dir():
            continue
        descriptor_path = entry / descriptor_name
        if not descriptor_path.is_file():
            logger.debug("Skipping {dir}: no {name}", dir=entry.name, name=descriptor_name)
            continue
        descriptors.append(load_descriptor(descriptor_path, entry.name, builders))

    logger.info(
        "Loaded {count} package descriptors from {dir}", count=len(descriptors), dir=str(pkgs_dir)
    )
    return descriptors


__all__ = ["DEFAULT_DESCRIPTOR_NAME", "load_descriptor", "load_descriptors"]
