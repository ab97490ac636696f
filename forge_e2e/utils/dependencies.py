"""
Tool dependency checks

Verifies that the external command-line tools the workflow shells out to
are installed before anything is started.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .exceptions import DependencyError, ErrorCodes

LOG = logging.getLogger(__name__)


@dataclass
class Dependency:
    """An external tool and how to fix its absence"""
    name: str
    hint: str
    version_args: tuple = ("--version",)


KNOWN_DEPENDENCIES: Dict[str, Dependency] = {
    "forge": Dependency(
        "forge",
        "Missing Foundry: install via foundryup (https://book.getfoundry.sh/getting-started/installation)",
    ),
    "anvil": Dependency(
        "anvil",
        "Missing Foundry: install via foundryup (https://book.getfoundry.sh/getting-started/installation)",
    ),
    "cargo": Dependency(
        "cargo",
        "Install Rust toolchain: https://rustup.rs",
    ),
}


def required_tools(local_mode: bool) -> List[str]:
    """Tools needed for a run in the given mode"""
    tools = ["forge", "cargo"]
    if local_mode:
        tools.append("anvil")
    return tools


def tool_version(dep: Dependency) -> Optional[str]:
    """First line of `<tool> --version`, or None if the tool cannot run"""
    try:
        result = subprocess.run(
            [dep.name, *dep.version_args],
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        LOG.debug(f"{dep.name} version check failed: {e}")
        return None

    if result.returncode != 0:
        return None
    lines = (result.stdout or result.stderr).strip().splitlines()
    return lines[0] if lines else ""


def check_dependencies(names: Iterable[str]) -> Dict[str, str]:
    """
    Check that every named tool is installed.

    Args:
        names: Tool names, looked up in KNOWN_DEPENDENCIES (unknown names
            get a generic hint).

    Returns:
        Mapping of tool name to its reported version line.

    Raises:
        DependencyError: On the first tool that is missing or does not run.
    """
    versions = {}
    for name in names:
        dep = KNOWN_DEPENDENCIES.get(name) or Dependency(name, f"Install '{name}' and make sure it is on PATH")

        if shutil.which(dep.name) is None:
            raise DependencyError(
                f"{dep.name} not found. {dep.hint}",
                tool=dep.name,
                hint=dep.hint,
            )

        version = tool_version(dep)
        if version is None:
            raise DependencyError(
                f"{dep.name} is installed but '{dep.name} {' '.join(dep.version_args)}' failed. {dep.hint}",
                tool=dep.name,
                hint=dep.hint,
                code=ErrorCodes.DEPENDENCY_VERSION_FAILED,
            )

        LOG.info(f"✓ {dep.name}: {version}")
        versions[dep.name] = version

    return versions
