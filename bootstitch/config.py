"""bootstitch configuration.

Centralised, typed configuration for a generation run. All settings use
Pydantic v2 models so they are validated at construction time and can be
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from bootstitch.errors import ParameterError

Packaging = Literal["jar", "war"]

GROUP_ID_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$"
ARTIFACT_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_.-]*$"

DEFAULT_JAVA_VERSIONS: list[str] = ["17", "21"]


class ProjectParams(BaseModel):
    """User-supplied parameters that shape the generated project."""

    group_id: str = Field(default="com.example", pattern=GROUP_ID_PATTERN)
    artifact_id: str = Field(
        default="demo",
        pattern=ARTIFACT_ID_PATTERN,
        description="Base artifact id; also the name of the generated root folder",
    )
    boot_version: str | None = Field(
        default=None, description="Spring Boot version; resolved from metadata when unset"
    )
    java_version: str = Field(default="17", pattern=r"^\d+$")
    packaging: Packaging = Field(default="jar")

    @property
    def backend_folder(self) -> str:
        return f"{self.artifact_id}-backend"

    @property
    def frontend_folder(self) -> str:
        return f"{self.artifact_id}-frontend"

    @property
    def parent_artifact_id(self) -> str:
        return f"{self.artifact_id}-parent"


class InitializrConfig(BaseModel):
    """Configuration for the Spring Initializr service."""

    url: str = Field(default="https://start.spring.io")
    project_type: str = Field(default="maven-project")
    language: str = Field(default="java")
    dependencies: list[str] = Field(default_factory=lambda: ["web"])
    timeout: int = Field(default=60, ge=5, description="Per-request timeout in seconds")


class FrontendConfig(BaseModel):
    """Configuration for the frontend scaffolding CLI."""

    npm: str = Field(default="npm")
    create_package: str = Field(default="vite@latest")
    template: str = Field(default="react-ts")
    dist_dir: str = Field(default="dist", description="Build output directory inside the frontend")
    timeout: int = Field(default=600, ge=30, description="Per-command timeout in seconds")


class MavenConfig(BaseModel):
    """Configuration for the backend build tool."""

    command: str = Field(default="mvn")
    goals: list[str] = Field(default_factory=lambda: ["clean", "install"])
    timeout: int = Field(default=1800, ge=60, description="Build timeout in seconds")


class Config(BaseModel):
    """Global bootstitch configuration.

    Holds every tuneable parameter and derived path used by the pipeline.
    Instances are created once by the CLI entry point and then passed to
    ``Pipeline``.
    """

    output_dir: Path = Field(default=Path("."))
    project: ProjectParams = Field(default_factory=ProjectParams)
    initializr: InitializrConfig = Field(default_factory=InitializrConfig)
    frontend: FrontendConfig = Field(default_factory=FrontendConfig)
    maven: MavenConfig = Field(default_factory=MavenConfig)

    interactive: bool = Field(default=True, description="Prompt for parameters not supplied")
    skip_backend_build: bool = Field(default=False)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def root_path(self) -> Path:
        """Root folder of the generated project."""
        return self.output_dir / self.project.artifact_id

    @property
    def backend_path(self) -> Path:
        return self.root_path / self.project.backend_folder

    @property
    def frontend_path(self) -> Path:
        return self.root_path / self.project.frontend_folder

    @property
    def backend_pom_path(self) -> Path:
        """Path to the backend build descriptor merged by the pipeline."""
        return self.backend_path / "pom.xml"

    @property
    def parent_pom_path(self) -> Path:
        """Path to the aggregator descriptor at the generated root."""
        return self.root_path / "pom.xml"

    @property
    def frontend_dist_path(self) -> Path:
        return self.frontend_path / self.frontend.dist_dir

    @property
    def frontend_asset_relative_path(self) -> str:
        """Compiled frontend location, relative to the generated root."""
        return f"{self.project.frontend_folder}/{self.frontend.dist_dir}"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            BOOTSTITCH_OUTPUT_DIR, BOOTSTITCH_GROUP_ID, BOOTSTITCH_ARTIFACT_ID,
            BOOTSTITCH_BOOT_VERSION, BOOTSTITCH_JAVA_VERSION,
            BOOTSTITCH_PACKAGING, BOOTSTITCH_INITIALIZR_URL,
            BOOTSTITCH_INITIALIZR_TIMEOUT, BOOTSTITCH_NPM,
            BOOTSTITCH_VITE_TEMPLATE, BOOTSTITCH_MAVEN_COMMAND,
            BOOTSTITCH_MAVEN_TIMEOUT.

        Raises:
            ParameterError: If a variable holds an invalid value.
        """
        try:
            return cls._from_env()
        except ValueError as exc:
            raise ParameterError(f"Invalid BOOTSTITCH_* environment variable: {exc}") from exc

    @classmethod
    def _from_env(cls) -> "Config":
        initializr_kwargs: dict[str, Any] = {}
        if os.environ.get("BOOTSTITCH_INITIALIZR_URL"):
            initializr_kwargs["url"] = os.environ["BOOTSTITCH_INITIALIZR_URL"]
        if os.environ.get("BOOTSTITCH_INITIALIZR_TIMEOUT"):
            initializr_kwargs["timeout"] = int(os.environ["BOOTSTITCH_INITIALIZR_TIMEOUT"])

        frontend_kwargs: dict[str, Any] = {}
        if os.environ.get("BOOTSTITCH_NPM"):
            frontend_kwargs["npm"] = os.environ["BOOTSTITCH_NPM"]
        if os.environ.get("BOOTSTITCH_VITE_TEMPLATE"):
            frontend_kwargs["template"] = os.environ["BOOTSTITCH_VITE_TEMPLATE"]

        maven_kwargs: dict[str, Any] = {}
        if os.environ.get("BOOTSTITCH_MAVEN_COMMAND"):
            maven_kwargs["command"] = os.environ["BOOTSTITCH_MAVEN_COMMAND"]
        if os.environ.get("BOOTSTITCH_MAVEN_TIMEOUT"):
            maven_kwargs["timeout"] = int(os.environ["BOOTSTITCH_MAVEN_TIMEOUT"])

        return cls(
            output_dir=Path(os.environ.get("BOOTSTITCH_OUTPUT_DIR", ".")),
            project=ProjectParams(**project_overrides_from_env()),
            initializr=InitializrConfig(**initializr_kwargs),
            frontend=FrontendConfig(**frontend_kwargs),
            maven=MavenConfig(**maven_kwargs),
        )


_PROJECT_ENV_VARS: tuple[tuple[str, str], ...] = (
    ("BOOTSTITCH_GROUP_ID", "group_id"),
    ("BOOTSTITCH_ARTIFACT_ID", "artifact_id"),
    ("BOOTSTITCH_BOOT_VERSION", "boot_version"),
    ("BOOTSTITCH_JAVA_VERSION", "java_version"),
    ("BOOTSTITCH_PACKAGING", "packaging"),
)


def project_overrides_from_env() -> dict[str, str]:
    """Return the ``ProjectParams`` fields set through ``BOOTSTITCH_*`` variables.

    Only variables that are present and non-empty are included, so the result
    can be told apart from defaults.
    """
    return {
        field_name: os.environ[env_name]
        for env_name, field_name in _PROJECT_ENV_VARS
        if os.environ.get(env_name)
    }
