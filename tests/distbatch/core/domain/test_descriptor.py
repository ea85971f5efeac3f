"""Tests for PackageDescriptor."""

import pydantic
import pytest

from distbatch.core.domain.descriptor import PackageDescriptor


class TestPackageDescriptor:
    def test_full_name(self) -> None:
        assert PackageDescriptor(package="bison", version="3.0.5-3").full_name == "bison-3.0.5-3"

    def test_dependencies_merged_in_order(self) -> None:
        descriptor = PackageDescriptor(
            package="gcc",
            version="8.2.0-3",
            build_deps=["mpc-1.1.0-3", "gmp-6.1.2-3"],
            builder_deps=["make-4.2.1-3", "gmp-6.1.2-3"],
            runtime_deps=["glibc-2.27-3", "mpc-1.1.0-3"],
        )
        assert descriptor.dependencies == (
            "mpc-1.1.0-3",
            "gmp-6.1.2-3",
            "make-4.2.1-3",
            "glibc-2.27-3",
        )

    def test_defaults(self) -> None:
        descriptor = PackageDescriptor(package="a", version="1")
        assert descriptor.dependencies == ()
        assert descriptor.builder is None

    def test_frozen(self) -> None:
        descriptor = PackageDescriptor(package="a", version="1")
        with pytest.raises(pydantic.ValidationError):
            descriptor.version = "2"

    @pytest.mark.parametrize(
        ("package", "version"),
        [("", "1"), ("a", ""), ("x/y", "1")],
    )
    def test_invalid_identity(self, package: str, version: str) -> None:
        with pytest.raises(pydantic.ValidationError):
            PackageDescriptor(package=package, version=version)
