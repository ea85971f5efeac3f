"""Package build descriptors as consumed by the graph builder."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PackageDescriptor(BaseModel):
    """Declarative record of one package's identity and dependencies.

    Attributes
    ----------
    package : str
        Package name, without version (usually the package directory name)
    version : str
        Resolved version string, including any distribution revision
    build_deps : list[str]
        Full names of packages needed at build time
    builder_deps : list[str]
        Full names of tools needed only to run the build
    runtime_deps : list[str]
        Full names of packages needed at runtime
    builder : str | None
        Builder kind the builder dependencies were derived from, if any

    Examples
    --------
    >>> d = PackageDescriptor(package="bison", version="3.0.5-3", build_deps=["m4-1.4.18-3"])
    >>> d.full_name
    'bison-3.0.5-3'
    >>> d.dependencies
    ('m4-1.4.18-3',)
    """

    model_config = ConfigDict(frozen=True)

    package: str = Field(min_length=1)
    version: str = Field(min_length=1)
    build_deps: list[str] = Field(default_factory=list)
    builder_deps: list[str] = Field(default_factory=list)
    runtime_deps: list[str] = Field(default_factory=list)
    builder: str | None = None

    @field_validator("package")
    @classmethod
    def _no_path_separator(cls, value: str) -> str:
        if "/" in value:
            raise ValueError("package name must not contain '/'")
        return value

    @property
    def full_name(self) -> str:
        """The ``<package>-<version>`` business key."""
        return f"{self.package}-{self.version}"

    @property
    def dependencies(self) -> tuple[str, ...]:
        """Merged build, builder and runtime dependencies, first occurrence wins."""
        return tuple(dict.fromkeys([*self.build_deps, *self.builder_deps, *self.runtime_deps]))
