#!/usr/bin/env python3
"""Tests for compdb package_verification."""

import sys
from pathlib import Path
from typing import Any, Optional, Tuple
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from compdb.package_verification import check_all_packages, check_package_version


@pytest.mark.unit
class TestCheckPackageVersion:
    """Test check_package_version function."""

    def test_check_installed_package(self) -> None:
        is_installed, meets_version, installed_ver = check_package_version("colorama", "0.1.0", raise_on_error=False)

        assert is_installed is True
        assert meets_version is True
        assert installed_ver

    def test_check_installed_below_version(self) -> None:
        is_installed, meets_version, installed_ver = check_package_version("colorama", "999.0.0", raise_on_error=False)

        assert is_installed is True
        assert meets_version is False
        assert installed_ver is not None

    def test_check_not_installed(self) -> None:
        assert check_package_version("nonexistent_package_xyz123", "1.0.0", raise_on_error=False) == (False, False, None)

    def test_check_raise_on_missing_package(self) -> None:
        with pytest.raises(ImportError, match="is not installed"):
            check_package_version("nonexistent_package_xyz123", "1.0.0", raise_on_error=True)

    def test_check_raise_on_old_version(self) -> None:
        with pytest.raises(ImportError, match="is too old"):
            check_package_version("packaging", "999.0.0", raise_on_error=True)

    def test_check_use_registry_version(self) -> None:
        is_installed, _, installed_ver = check_package_version("packaging", min_version=None, raise_on_error=False)

        assert is_installed is True
        assert installed_ver is not None

    def test_check_unknown_package_no_version(self) -> None:
        with pytest.raises(ValueError, match="No version requirement specified"):
            check_package_version("unknown_pkg_xyz", min_version=None, raise_on_error=False)


@pytest.mark.unit
class TestCheckAllPackages:
    """Test check_all_packages function."""

    def test_check_all_packages_success(self, capsys: Any) -> None:
        assert check_all_packages() is True

        captured = capsys.readouterr()
        assert "msvc-compdb Package Verification" in captured.out
        assert "All required packages are available" in captured.out

    @patch("compdb.package_verification.check_package_version")
    def test_check_all_packages_missing_required(self, mock_check: Any, capsys: Any) -> None:
        def side_effect(pkg_name: str, min_ver: str, raise_on_error: bool = True) -> Tuple[bool, bool, Optional[str]]:
            if pkg_name == "colorama":
                return (False, False, None)
            return (True, True, "24.0")

        mock_check.side_effect = side_effect

        assert check_all_packages() is False

        captured = capsys.readouterr()
        assert "colorama not installed" in captured.err
        assert "pip install" in captured.out
