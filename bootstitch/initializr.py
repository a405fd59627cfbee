"""Async client for the Spring Initializr API.

Wraps the two Initializr endpoints the generator needs:

* ``/metadata/client`` for the selectable Spring Boot and Java versions,
* ``/starter.zip`` for the backend skeleton archive, which is extracted into
  the backend folder.

Typical usage::

    client = InitializrClient()
    metadata = await client.fetch_metadata()
    pom_path = await client.download_starter(params, Path("shop/shop-backend"))
"""

from __future__ import annotations

import asyncio
import io
import shutil
import zipfile
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, Field

from bootstitch.config import DEFAULT_JAVA_VERSIONS, InitializrConfig, ProjectParams
from bootstitch.errors import ExternalToolFailure
from bootstitch.utils import Stage

_VERSION_SUFFIXES = (".RELEASE", ".BUILD-SNAPSHOT", ".SNAPSHOT")


class BootVersion(BaseModel):
    """A selectable Spring Boot version."""

    id: str = Field(..., description="Normalised version id sent back to Initializr")
    name: str = Field(default="", description="Display name from the metadata")


class BootMetadata(BaseModel):
    """The subset of Initializr client metadata used for prompting."""

    boot_versions: list[BootVersion] = Field(default_factory=list)
    default_boot_version: str | None = None
    java_versions: list[str] = Field(default_factory=lambda: list(DEFAULT_JAVA_VERSIONS))
    default_java_version: str = "17"

    @property
    def boot_version_ids(self) -> list[str]:
        return [version.id for version in self.boot_versions]


def normalize_version(version_id: str) -> str:
    """Strip legacy release qualifiers from an Initializr version id.

    Examples::

        normalize_version("2.7.18.RELEASE") -> "2.7.18"
        normalize_version("3.4.0.BUILD-SNAPSHOT") -> "3.4.0"
    """
    for suffix in _VERSION_SUFFIXES:
        version_id = version_id.replace(suffix, "")
    return version_id


def parse_metadata(data: dict[str, Any]) -> BootMetadata:
    """Turn a raw ``/metadata/client`` payload into ``BootMetadata``.

    Snapshot versions are dropped from the choices.
    """
    boot = data.get("bootVersion") or {}
    versions = [
        BootVersion(id=normalize_version(value["id"]), name=value.get("name", value["id"]))
        for value in boot.get("values", [])
        if "SNAPSHOT" not in value.get("id", "SNAPSHOT")
    ]
    default = boot.get("default")

    java = data.get("javaVersion") or {}
    java_versions = [value["id"] for value in java.get("values", []) if value.get("id")]

    metadata = BootMetadata(
        boot_versions=versions,
        default_boot_version=normalize_version(default) if default else None,
    )
    if java_versions:
        metadata.java_versions = java_versions
        metadata.default_java_version = java.get("default") or java_versions[0]
    return metadata


class InitializrClient:
    """Async client for a Spring Initializr instance.

    The client uses ``httpx.AsyncClient`` for non-blocking HTTP. Any
    transport error or non-2xx status is raised as ``ExternalToolFailure``.
    """

    def __init__(self, config: InitializrConfig | None = None) -> None:
        self.config = config or InitializrConfig()
        self.base_url = self.config.url.rstrip("/")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.config.timeout, connect=10.0),
            follow_redirects=True,
        )

    async def _get(self, path: str, stage: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.get(path, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as exc:
            raise ExternalToolFailure(
                stage,
                f"Spring Initializr returned HTTP {exc.response.status_code} for {path}",
                exc.response.text[:2000],
            ) from exc
        except httpx.TimeoutException as exc:
            raise ExternalToolFailure(
                stage,
                f"Request to Spring Initializr timed out after {self.config.timeout}s",
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalToolFailure(
                stage,
                f"Cannot reach Spring Initializr at {self.base_url}: {exc}",
            ) from exc

    def starter_params(self, params: ProjectParams) -> dict[str, str]:
        """Query parameters for ``/starter.zip``."""
        query = {
            "type": self.config.project_type,
            "language": self.config.language,
            "groupId": params.group_id,
            "artifactId": params.artifact_id,
            "javaVersion": params.java_version,
            "packaging": params.packaging,
            "dependencies": ",".join(self.config.dependencies),
        }
        if params.boot_version:
            query["bootVersion"] = params.boot_version
        return query

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_metadata(self, stage: str = Stage.PROMPTING) -> BootMetadata:
        """Fetch the selectable Spring Boot and Java versions."""
        response = await self._get(
            "/metadata/client",
            stage,
            headers={"Accept": "application/json"},
        )
        try:
            data = response.json()
        except ValueError as exc:
            raise ExternalToolFailure(
                stage, "Spring Initializr metadata is not valid JSON", response.text[:2000]
            ) from exc
        return parse_metadata(data)

    async def download_starter(self, params: ProjectParams, destination: Path) -> Path:
        """Download the backend skeleton and extract it into *destination*.

        Returns:
            Path to the extracted ``pom.xml``.

        Raises:
            ExternalToolFailure: On network errors, non-2xx responses, or an
                archive that is not a zip or lacks ``pom.xml``.
        """
        response = await self._get(
            "/starter.zip", Stage.FETCH_BACKEND, params=self.starter_params(params)
        )
        await asyncio.to_thread(extract_starter, response.content, destination)

        pom = destination / "pom.xml"
        if not pom.is_file():
            raise ExternalToolFailure(
                Stage.FETCH_BACKEND, "Backend skeleton archive contains no pom.xml"
            )
        return pom


# ---------------------------------------------------------------------------
# Archive extraction
# ---------------------------------------------------------------------------


def extract_starter(archive: bytes, destination: Path) -> None:
    """Extract a starter archive, flattening a single wrapping directory.

    Initializr archives either hold the project at their root or inside one
    top-level folder named after the artifact; both end up with ``pom.xml``
    directly under *destination*.
    """
    try:
        bundle = zipfile.ZipFile(io.BytesIO(archive))
    except zipfile.BadZipFile as exc:
        raise ExternalToolFailure(
            Stage.FETCH_BACKEND, "Backend skeleton is not a valid zip archive"
        ) from exc

    destination.mkdir(parents=True, exist_ok=True)
    with bundle:
        bundle.extractall(destination)

    entries = list(destination.iterdir())
    if len(entries) == 1 and entries[0].is_dir() and not (destination / "pom.xml").exists():
        # Renamed first so an entry sharing the wrapper's name can move up.
        wrapper = entries[0].rename(destination / f".{entries[0].name}.extracting")
        for item in wrapper.iterdir():
            shutil.move(str(item), str(destination / item.name))
        wrapper.rmdir()

    wrapper_script = destination / "mvnw"
    if wrapper_script.exists():
        wrapper_script.chmod(0o755)
