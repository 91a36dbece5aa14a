"""
Startup checks for the mutual capacitance estimator.

Verifies that the required Python libraries are available:
1. numpy (rasters, id grids, overlap counting)
2. scipy (ndimage labeling backend)
3. Pillow (bitmap input, component images)
"""

import importlib
import sys
from typing import List, Tuple

from mutcap_exceptions import DependencyError
from terminal_colors import RED, RESET

# (import name, package name on the index)
REQUIRED_LIBRARIES: List[Tuple[str, str]] = [
    ('numpy', 'numpy'),
    ('scipy.ndimage', 'scipy'),
    ('PIL.Image', 'Pillow'),
]


def find_missing_dependencies() -> List[str]:
    """Return the index names of required libraries that fail to import."""
    missing = []
    for module_name, package_name in REQUIRED_LIBRARIES:
        try:
            importlib.import_module(module_name)
        except ImportError:
            missing.append(package_name)
    return missing


def check_python_dependencies() -> None:
    """
    Check that required Python libraries are available.

    Raises:
        DependencyError: listing the packages to install
    """
    missing = find_missing_dependencies()
    if missing:
        raise DependencyError(missing)


def run_all_checks() -> None:
    """Run all startup checks, exiting with a message if any fails."""
    try:
        check_python_dependencies()
    except DependencyError as e:
        print(f"{RED}ERROR: {e}{RESET}")
        print("\nInstall with:")
        print(f"  pip install {' '.join(e.missing_packages)}")
        sys.exit(1)


if __name__ == '__main__':
    run_all_checks()
    print("All checks passed.")
